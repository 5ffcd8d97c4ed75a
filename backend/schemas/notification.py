from pydantic import BaseModel, Field
from typing import Annotated, ClassVar, List, Literal, Optional, Union
from datetime import datetime

from schemas.base import CamelModel


STATUS_PHRASES = {
    "processing": "is now being processed.",
    "shipped": "has been shipped! Your package is on the way.",
    "delivered": "has been delivered. Enjoy!",
    "cancelled": "has been cancelled.",
}


def status_message(order_id: str, status: str) -> str:
    phrase = STATUS_PHRASES.get(status, f"status has been updated to: {status}")
    return f"Your order #{order_id} {phrase}"


# ---- Push payloads ----
# Closed set of notifications the service sends. Each variant carries only
# its own fields; the push message shape is built from them in one place
# (utils.notification_service.build_push_message).

class OrderPlaced(BaseModel):
    type: Literal["orderPlaced"] = "orderPlaced"
    order_id: str
    total: Optional[float] = None
    status: Literal["pending"] = "pending"

    TITLE: ClassVar[str] = "Order Placed"
    CHANNEL_ID: ClassVar[str] = "order-updates"
    CATEGORY: ClassVar[str] = "ORDER_PLACED"

    def body(self) -> str:
        return "Your Order Placed Successfully!"

    def unique_id(self, stamp: int) -> str:
        return f"order-placed-{self.order_id}-{stamp}"

    def data(self) -> dict:
        return {"orderId": self.order_id, "status": self.status, "total": self.total}


class OrderUpdate(BaseModel):
    type: Literal["orderUpdate"] = "orderUpdate"
    order_id: str
    status: str
    previous_status: Optional[str] = None

    TITLE: ClassVar[str] = "Order Update"
    CHANNEL_ID: ClassVar[str] = "order-updates"
    CATEGORY: ClassVar[str] = "ORDER_UPDATE"

    def body(self) -> str:
        return status_message(self.order_id, self.status)

    def unique_id(self, stamp: int) -> str:
        return f"order-update-{self.order_id}-{stamp}"

    def data(self) -> dict:
        return {"orderId": self.order_id, "status": self.status, "previousStatus": self.previous_status}


class NewProduct(BaseModel):
    type: Literal["newProduct"] = "newProduct"
    product_id: int
    product_name: str

    TITLE: ClassVar[str] = "🔥 New Product Alert! 🛍️"
    CHANNEL_ID: ClassVar[str] = "product-updates"
    CATEGORY: ClassVar[str] = "NEW_PRODUCT"

    def body(self) -> str:
        return f"✨ Check out our new product: {self.product_name} 🤩"

    def unique_id(self, stamp: int) -> str:
        return f"new-product-{self.product_id}-{stamp}"

    def data(self) -> dict:
        return {"productId": self.product_id, "productName": self.product_name}


NotificationPayload = Annotated[Union[OrderPlaced, OrderUpdate, NewProduct], Field(discriminator="type")]


# Outcome of one push attempt; callers log it and move on
class PushResult(BaseModel):
    status: Literal["success", "partial", "error"]
    tickets: List[dict] = Field(default_factory=list)
    errors: List[dict] = Field(default_factory=list)
    error: Optional[str] = None
    unique_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status != "error"


# ---- Receipts ----

class ReceiptCreate(CamelModel):
    order_id: Optional[str] = None
    product_id: Optional[int] = None
    status: Optional[str] = None
    previous_status: Optional[str] = None
    message: Optional[str] = None
    timestamp: Optional[int] = None # epoch milliseconds
    force_show: Optional[bool] = None
    type: Optional[Literal["orderUpdate", "orderPlaced", "newProduct"]] = None


class ReceiptOut(CamelModel):
    id: int
    order_id: Optional[str] = None
    product_id: Optional[int] = None
    user_id: int
    type: str
    status: str
    previous_status: Optional[str] = None
    message: str
    is_read: bool
    timestamp: datetime
    force_show: bool
    show_modal: bool
    unique_id: Optional[str] = None


class ReceiptEnvelope(CamelModel):
    success: bool = True
    message: str
    data: ReceiptOut


class ReceiptList(CamelModel):
    success: bool = True
    data: List[ReceiptOut]


class ProductNotificationRequest(CamelModel):
    product_id: Optional[int] = None
    product_name: Optional[str] = None


class ProductNotificationStats(CamelModel):
    notifications_sent: int
    receipts_created: int


class ProductNotificationResponse(CamelModel):
    success: bool = True
    message: str
    data: ProductNotificationStats
