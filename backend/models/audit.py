import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from database import Base
from utils.timeutil import utcnow


class AuditAction(str, enum.Enum):
    REGISTER = "REGISTER"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    ORDER_CREATE = "ORDER_CREATE"
    ORDER_STATUS_CHANGE = "ORDER_STATUS_CHANGE"
    PRODUCT_CREATE = "PRODUCT_CREATE"
    PRODUCT_UPDATE = "PRODUCT_UPDATE"
    PRODUCT_DELETE = "PRODUCT_DELETE"
    REVIEW_CREATE = "REVIEW_CREATE"
    REVIEW_UPDATE = "REVIEW_UPDATE"


# One audited account, catalog, order or review event. The order and product
# an event concerns are copied out of meta so they can be filtered on.
class AuditEntry(Base):
    __tablename__ = "audit_entries"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime, default=utcnow, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(32), nullable=False, index=True)
    resource = Column(String(32), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="SUCCESS")
    ip = Column(String(64), nullable=True)

    order_id = Column(String, nullable=True, index=True)
    product_id = Column(Integer, nullable=True, index=True)
    meta = Column(JSON, nullable=True)
