# backend/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings


def _normalize_url(url: str) -> str:
    # SQLAlchemy requires postgresql:// instead of postgres://
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _make_engine(url: str):
    if "sqlite" in url:
        connect_args = {"check_same_thread": False} # SQLite only
    else:
        connect_args = {}
    return create_engine(url, connect_args=connect_args)


# 1. Document store: users, products, orders, reviews, receipts, audit logs
SQLALCHEMY_DATABASE_URL = _normalize_url(settings.DATABASE_URL)
engine = _make_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# 2. Row store: cart lines and session tokens (no foreign keys into store 1)
SESSION_DATABASE_URL = _normalize_url(settings.SESSION_DATABASE_URL)
session_engine = _make_engine(SESSION_DATABASE_URL)
SessionStoreLocal = sessionmaker(autocommit=False, autoflush=False, bind=session_engine)
SessionStoreBase = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_db():
    db = SessionStoreLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    # Register every model on the metadata of its store
    import models.users, models.product, models.order, models.review  # noqa: F401
    import models.notification, models.audit, models.cart, models.token  # noqa: F401

    Base.metadata.create_all(bind=engine)
    SessionStoreBase.metadata.create_all(bind=session_engine)
