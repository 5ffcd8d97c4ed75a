from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from database import Base
from utils.timeutil import utcnow

DEFAULT_PROFILE_PICTURE = "https://minifigs.me/cdn/shop/products/32.png?v=1665143878"

# Represents a user account with authentication details and system role
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")
    profile_picture = Column(String, nullable=True, default=DEFAULT_PROFILE_PICTURE)
    created_at = Column(DateTime, default=utcnow)

    push_tokens = relationship("PushToken", back_populates="user", cascade="all, delete-orphan")


# Device push token registered with the push gateway for a user
class PushToken(Base):
    __tablename__ = "push_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    token = Column(String, nullable=False, index=True)
    device = Column(String, nullable=True, default="unknown")
    created_at = Column(DateTime, default=utcnow)
    last_used = Column(DateTime, default=utcnow, index=True)

    user = relationship("User", back_populates="push_tokens")
