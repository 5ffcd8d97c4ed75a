# backend/routes/notifications.py
import asyncio
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from database import get_db
from models.notification import NotificationReceipt
from models.users import User
from schemas.notification import (
    NewProduct, ReceiptCreate, ReceiptOut, ReceiptEnvelope, ReceiptList,
    ProductNotificationRequest, ProductNotificationResponse,
)
from utils.notification_service import dedup_stamp, send_notification, record_receipt
from utils.push_client import ExpoPushClient, get_push_client
from utils.timeutil import utcnow, from_millis
from utils.tokenJWT import get_current_user, require_admin

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])
logger = logging.getLogger(__name__)


# Store a receipt reported by the client
@router.post("/receipt", response_model=ReceiptEnvelope, status_code=status.HTTP_201_CREATED)
def create_receipt(
    payload: ReceiptCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    kind = payload.type or "orderUpdate"
    if kind == "newProduct" and not payload.product_id:
        raise HTTPException(status_code=400, detail="Missing productId for product notification")
    if kind in ("orderUpdate", "orderPlaced") and not payload.order_id:
        raise HTTPException(status_code=400, detail="Missing orderId for order notification")
    if not payload.status or not payload.message:
        raise HTTPException(status_code=400, detail="Missing status or message")

    receipt = NotificationReceipt(
        order_id=payload.order_id,
        product_id=payload.product_id,
        user_id=current_user.id,
        type=kind,
        status=payload.status,
        previous_status=payload.previous_status,
        message=payload.message,
        timestamp=from_millis(payload.timestamp) if payload.timestamp else utcnow(),
        force_show=True if payload.force_show is None else payload.force_show,
    )
    try:
        db.add(receipt)
        db.commit()
        db.refresh(receipt)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error creating notification receipt")
        raise HTTPException(status_code=500, detail=f"Failed to create notification receipt: {e}")

    logger.info("Notification receipt created for %s",
                f"product {payload.product_id}" if kind == "newProduct" else f"order {payload.order_id}")
    return {"success": True, "message": "Notification receipt created", "data": ReceiptOut.model_validate(receipt)}


# Own receipts since the given epoch ms (default 24h), newest first
@router.get("/receipts", response_model=ReceiptList)
def list_receipts(
    since: Optional[int] = Query(None),
    markAsRead: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    since_dt = from_millis(since) if since is not None else utcnow() - timedelta(hours=24)
    receipts = (
        db.query(NotificationReceipt)
        .filter(NotificationReceipt.user_id == current_user.id, NotificationReceipt.timestamp >= since_dt)
        .order_by(NotificationReceipt.timestamp.desc(), NotificationReceipt.id.desc())
        .all()
    )
    # Serialize before marking so the caller sees what was unread
    data = [ReceiptOut.model_validate(r) for r in receipts]

    if markAsRead:
        db.query(NotificationReceipt).filter(
            NotificationReceipt.user_id == current_user.id, NotificationReceipt.is_read == False  # noqa: E712
        ).update({NotificationReceipt.is_read: True}, synchronize_session=False)
        db.commit()

    return {"success": True, "data": data}


# Admin: announce a new product to every regular user with a device
@router.post("/send-product-notification", response_model=ProductNotificationResponse)
async def send_product_notification(
    payload: ProductNotificationRequest,
    db: Session = Depends(get_db),
    push: ExpoPushClient = Depends(get_push_client),
    current_user: User = Depends(require_admin),
):
    if not payload.product_id or not payload.product_name:
        raise HTTPException(status_code=400, detail="Missing productId or productName")

    users = (
        db.query(User)
        .options(selectinload(User.push_tokens))
        .filter(User.role == "user", User.push_tokens.any())
        .all()
    )
    logger.info("Found %d users with push tokens to notify about new product", len(users))

    notification = NewProduct(product_id=payload.product_id, product_name=payload.product_name)
    unique_id = notification.unique_id(dedup_stamp())

    sends = [
        send_notification(push, t.token, notification, unique_id=unique_id)
        for user in users
        for t in user.push_tokens
        if t.token
    ]
    results = await asyncio.gather(*sends)

    # One receipt per user, regardless of how many devices they have
    receipts_created = 0
    for user in users:
        receipt = record_receipt(
            db,
            product_id=payload.product_id,
            user_id=user.id,
            type=notification.type,
            status="new",
            message=f"Check out our new product: {payload.product_name}",
            timestamp=utcnow(),
            force_show=True,
            show_modal=True,
            unique_id=unique_id,
        )
        if receipt is not None:
            receipts_created += 1

    sent = sum(1 for r in results if r.success)
    return {
        "success": True,
        "message": f"Sent {sent} product notifications out of {len(users)} users",
        "data": {"notifications_sent": sent, "receipts_created": receipts_created},
    }
