# backend/routes/audit.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database import get_db
from models.audit import AuditAction, AuditEntry
from models.users import User
from schemas.audit import AuditEntryOut, AuditPage, StatusChangeOut, StatusHistory
from utils.tokenJWT import require_admin

router = APIRouter(prefix="/api/logs", tags=["Audit"])


def _parse_day(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")
    # A bare YYYY-MM-DD upper bound covers the whole day
    if end_of_day and len(value) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59)
    return parsed


# Admin: audited events, newest first
@router.get("", response_model=AuditPage)
def list_audit_entries(
    page: int = Query(1, ge=1),
    pageSize: int = Query(20, ge=1, le=100),
    action: Optional[AuditAction] = Query(None),
    userId: Optional[int] = Query(None),
    orderId: Optional[str] = Query(None),
    productId: Optional[int] = Query(None),
    status: Optional[str] = Query(None, description="SUCCESS or FAIL"),
    dateFrom: Optional[str] = Query(None, description="YYYY-MM-DD or ISO timestamp"),
    dateTo: Optional[str] = Query(None, description="YYYY-MM-DD or ISO timestamp"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    query = db.query(AuditEntry)
    if action is not None:
        query = query.filter(AuditEntry.action == action.value)
    if userId is not None:
        query = query.filter(AuditEntry.user_id == userId)
    if orderId:
        query = query.filter(AuditEntry.order_id == orderId)
    if productId is not None:
        query = query.filter(AuditEntry.product_id == productId)
    if status:
        query = query.filter(AuditEntry.status == status.upper())

    since = _parse_day(dateFrom)
    if since is not None:
        query = query.filter(AuditEntry.ts >= since)
    until = _parse_day(dateTo, end_of_day=True)
    if until is not None:
        query = query.filter(AuditEntry.ts <= until)

    total = query.count()
    entries = (
        query.order_by(AuditEntry.ts.desc(), AuditEntry.id.desc())
        .offset((page - 1) * pageSize)
        .limit(pageSize)
        .all()
    )
    return {
        "success": True,
        "items": [AuditEntryOut.model_validate(e) for e in entries],
        "total": total,
        "page": page,
        "page_size": pageSize,
    }


# Admin: every status change applied to an order, in the order they happened
@router.get("/orders/{order_id}/status-history", response_model=StatusHistory)
def order_status_history(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    entries = (
        db.query(AuditEntry)
        .filter(AuditEntry.order_id == order_id, AuditEntry.action == AuditAction.ORDER_STATUS_CHANGE.value)
        .order_by(AuditEntry.ts.asc(), AuditEntry.id.asc())
        .all()
    )
    changes = [
        StatusChangeOut(
            changed_at=e.ts,
            changed_by=e.user_id,
            previous_status=(e.meta or {}).get("previous_status"),
            new_status=(e.meta or {}).get("new_status"),
        )
        for e in entries
    ]
    return {"success": True, "order_id": order_id, "changes": changes}
