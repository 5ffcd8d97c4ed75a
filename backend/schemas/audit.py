from typing import Any, List, Optional
from datetime import datetime

from schemas.base import CamelModel


class AuditEntryOut(CamelModel):
    id: int
    ts: datetime
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    order_id: Optional[str] = None
    product_id: Optional[int] = None
    meta: Optional[Any] = None


class AuditPage(CamelModel):
    success: bool = True
    items: List[AuditEntryOut]
    total: int
    page: int
    page_size: int


# One admin status change of an order, oldest first in a history
class StatusChangeOut(CamelModel):
    changed_at: datetime
    changed_by: Optional[int] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None


class StatusHistory(CamelModel):
    success: bool = True
    order_id: str
    changes: List[StatusChangeOut]
