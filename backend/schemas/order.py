from pydantic import Field
from typing import List, Optional
from datetime import datetime

from schemas.base import CamelModel
from schemas.notification import PushResult


# Shipping snapshot captured at checkout
class ShippingDetails(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None


# Input schema for one ordered line; price is taken as sent, quantity must be positive
class OrderItemIn(CamelModel):
    id: Optional[int] = None # Cart row the line came from, if any
    product_id: int
    product_name: Optional[str] = None
    price: float
    quantity: int = Field(ge=1)
    image_url: Optional[str] = Field(default=None, alias="imageURL")


# Input schema for checkout; presence is checked by the handler so that a
# missing field is a 400 with a single message
class OrderCreatePayload(CamelModel):
    order_id: Optional[str] = None
    items: Optional[List[OrderItemIn]] = None
    shipping_details: Optional[ShippingDetails] = None
    payment_method: Optional[str] = None
    subtotal: Optional[float] = None
    shipping: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    order_date: Optional[datetime] = None

    def missing_fields(self) -> List[str]:
        missing = []
        if not self.order_id:
            missing.append("orderId")
        if not self.items:
            missing.append("items")
        if self.shipping_details is None:
            missing.append("shippingDetails")
        if not self.subtotal:
            missing.append("subtotal")
        if self.shipping is None:
            missing.append("shipping")
        if self.tax is None:
            missing.append("tax")
        if not self.total:
            missing.append("total")
        return missing


# Output schema for an individual order line item
class OrderItemOut(CamelModel):
    product_id: int
    product_name: Optional[str] = None
    price: float
    quantity: int
    image_url: Optional[str] = Field(default=None, alias="imageURL")


# Output schema representing the full order details
class OrderOut(CamelModel):
    id: int
    order_id: str
    user_id: int
    items: List[OrderItemOut]
    shipping_details: ShippingDetails
    payment_method: Optional[str] = None
    subtotal: float
    shipping: float
    tax: float
    total: float
    status: str
    order_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class OrderEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: OrderOut


class OrderListEnvelope(CamelModel):
    success: bool = True
    data: List[OrderOut]


# Schema for updating order status
class OrderStatusPatch(CamelModel):
    status: Optional[str] = None


class OrderStatusUpdateResponse(CamelModel):
    success: bool = True
    message: str
    notification_sent: bool
    notification_error: Optional[str] = None
    notification_receipt_created: bool
    data: OrderOut
    status_changed: bool = True
    previous_status: str
    new_status: str
    timestamp: datetime
    force_show: bool = True


class StatusUpdateOut(CamelModel):
    order_id: str
    status: str
    updated_at: Optional[datetime] = None


class RecentStatusUpdates(CamelModel):
    success: bool = True
    data: List[StatusUpdateOut]
    timestamp: int


class TestNotificationRequest(CamelModel):
    status: Optional[str] = None


class TestNotificationResponse(CamelModel):
    success: bool = True
    message: str
    data: PushResult
