from sqlalchemy import Column, Integer, String, DateTime, Boolean, Index, text
from database import SessionStoreBase
from utils.timeutil import utcnow


# Session ledger row (row store). Keyed by the SHA-256 of the signed token;
# at most one non-blacklisted row per user.
class SessionToken(SessionStoreBase):
    __tablename__ = "session_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True) # "unknown" for synthesized blacklist rows
    token_hash = Column(String(64), nullable=False, unique=True)
    token = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    blacklisted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index(
            "uq_session_tokens_active_user",
            "user_id",
            unique=True,
            sqlite_where=text("blacklisted = 0"),
            postgresql_where=text("blacklisted = false"),
        ),
    )
