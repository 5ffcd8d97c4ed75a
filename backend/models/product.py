# backend/models/product.py
import enum
from sqlalchemy import Column, Integer, String, Float, Text, JSON, DateTime, CheckConstraint
from database import Base
from utils.timeutil import utcnow

PLACEHOLDER_IMAGE = "https://via.placeholder.com/300"


# Closed set of catalog categories
class ProductCategory(str, enum.Enum):
    MINIFIGURE = "Minifigure"
    SET = "Set"
    PIECE = "Piece"


# Catalog entry. Stock is the only field changed outside of admin edits
# (decremented by checkout).
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    category = Column(String, nullable=False, index=True)

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)
    pieces = Column(Integer, nullable=False, default=1)

    # List of image URLs, first one is the cover
    image_urls = Column(JSON, nullable=False, default=lambda: [PLACEHOLDER_IMAGE])

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
