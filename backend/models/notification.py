from sqlalchemy import Column, Integer, String, Boolean, DateTime
from database import Base
from utils.timeutil import utcnow


# Mirror of a notification attempt, polled by clients. Never read by the
# order workflow itself.
class NotificationReceipt(Base):
    __tablename__ = "notification_receipts"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, nullable=True, index=True)
    product_id = Column(Integer, nullable=True)
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(String, nullable=False, default="orderUpdate")
    status = Column(String, nullable=False)
    previous_status = Column(String, nullable=True)
    message = Column(String, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    timestamp = Column(DateTime, default=utcnow, index=True)
    force_show = Column(Boolean, nullable=False, default=True)
    show_modal = Column(Boolean, nullable=False, default=False)
    unique_id = Column(String, nullable=True)
