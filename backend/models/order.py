import enum
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from database import Base
from utils.timeutil import utcnow


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_STATUSES = [s.value for s in OrderStatus]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    # Human readable id generated by the client; not unique
    order_id = Column(String, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    payment_method = Column(String, nullable=True)

    # Amounts as supplied by the client at checkout
    subtotal = Column(Float, nullable=False)
    shipping = Column(Float, nullable=False)
    tax = Column(Float, nullable=False)
    total = Column(Float, nullable=False)

    # Shipping snapshot
    shipping_name = Column(String, nullable=True)
    shipping_email = Column(String, nullable=True)
    shipping_phone = Column(String, nullable=True)
    shipping_address = Column(String, nullable=True)
    shipping_city = Column(String, nullable=True)
    shipping_postal_code = Column(String, nullable=True)

    order_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, index=True)
    delivered_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )

    @property
    def shipping_details(self):
        return {
            "name": self.shipping_name,
            "email": self.shipping_email,
            "phone": self.shipping_phone,
            "address": self.shipping_address,
            "city": self.shipping_city,
            "postal_code": self.shipping_postal_code,
        }


# Line snapshot; product_id is not a foreign key since the product may be gone
class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    product_name = Column(String, nullable=True)
    image_url = Column(String, nullable=True)

    order = relationship("Order", back_populates="items")
