# backend/routes/orders.py
from datetime import timedelta
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db, get_session_db
from utils.tokenJWT import get_current_user, require_admin
from utils.audit import try_write_log, client_ip
from models.audit import AuditAction
from utils.inventory import decrement_stock
from utils.push_client import ExpoPushClient, get_push_client
from utils.notification_service import dedup_stamp, select_push_token, send_notification, record_receipt
from utils.timeutil import utcnow, from_millis, to_millis
from models.users import User
from models.cart import CartLine
from models.order import Order, OrderItem, OrderStatus, ORDER_STATUSES
from schemas.notification import OrderPlaced, OrderUpdate, status_message
from schemas.order import (
    OrderCreatePayload, OrderOut, OrderEnvelope, OrderListEnvelope, OrderStatusPatch,
    OrderStatusUpdateResponse, StatusUpdateOut, RecentStatusUpdates,
    TestNotificationRequest, TestNotificationResponse,
)

router = APIRouter(prefix="/api/orders", tags=["Orders"])
logger = logging.getLogger(__name__)


def _find_order(db: Session, order_id: str, user_id: Optional[int] = None) -> Optional[Order]:
    # orderId is not unique; the most recently created match wins
    query = db.query(Order).filter(Order.order_id == order_id)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).first()


def _get_order_or_404(db: Session, order_id: str, user_id: Optional[int] = None) -> Order:
    order = _find_order(db, order_id, user_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


def _validate_status(value: Optional[str]) -> str:
    if value not in ORDER_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status value")
    return value


def _apply_stock_updates(db: Session, order: Order):
    """Clamp-decrements stock for every line; each failure is logged and skipped."""
    for item in order.items:
        try:
            new_stock = decrement_stock(db, item.product_id, item.quantity)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error updating stock for product %s", item.product_id)
            continue
        if new_stock is None:
            logger.warning("Product %s not found, stock not updated", item.product_id)
        else:
            logger.info("Updated stock for product %s: %d", item.product_id, new_stock)


def _clear_purchased_cart_lines(session_db: Session, user_id: int, payload: OrderCreatePayload):
    """Removes the cart rows the order came from, by cart row id or else by product id."""
    line_ids = [it.id for it in payload.items if it.id is not None]
    product_ids = [it.product_id for it in payload.items if it.id is None]
    try:
        removed = 0
        if line_ids:
            removed += session_db.query(CartLine).filter(
                CartLine.user_id == user_id, CartLine.id.in_(line_ids)
            ).delete(synchronize_session=False)
        if product_ids:
            removed += session_db.query(CartLine).filter(
                CartLine.user_id == user_id, CartLine.product_id.in_(product_ids)
            ).delete(synchronize_session=False)
        session_db.commit()
        logger.info("Removed %d cart lines for user %s", removed, user_id)
    except SQLAlchemyError:
        session_db.rollback()
        logger.exception("Error clearing cart items for user %s", user_id)


async def _notify_order_placed(db: Session, push: ExpoPushClient, user: User, order: Order):
    push_token = select_push_token(user.push_tokens)
    if not push_token:
        logger.info("User %s has no push tokens, skipping order placed notification", user.id)
        return

    payload = OrderPlaced(order_id=order.order_id, total=order.total)
    unique_id = payload.unique_id(dedup_stamp())

    result = await send_notification(push, push_token, payload, unique_id=unique_id)
    if result.success:
        logger.info("Order placed notification sent for order %s (%s)", order.order_id, result.status)
    else:
        logger.error("Failed to send order placed notification: %s", result.error)

    record_receipt(
        db,
        order_id=order.order_id,
        user_id=user.id,
        type=payload.type,
        status=OrderStatus.PENDING.value,
        message=payload.body(),
        timestamp=utcnow(),
        force_show=True,
        show_modal=True,
        unique_id=unique_id,
    )


# Place an order: persist it, then run stock, cart and push steps independently
@router.post("/create", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreatePayload,
    request: Request,
    db: Session = Depends(get_db),
    session_db: Session = Depends(get_session_db),
    push: ExpoPushClient = Depends(get_push_client),
    current_user: User = Depends(get_current_user),
):
    missing = payload.missing_fields()
    if missing:
        logger.warning("Order rejected, missing fields: %s", ", ".join(missing))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required order information")

    shipping = payload.shipping_details
    order = Order(
        order_id=payload.order_id,
        user_id=current_user.id,
        status=OrderStatus.PENDING.value,
        payment_method=payload.payment_method,
        subtotal=payload.subtotal,
        shipping=payload.shipping,
        tax=payload.tax,
        total=payload.total,
        shipping_name=shipping.name,
        shipping_email=shipping.email,
        shipping_phone=shipping.phone,
        shipping_address=shipping.address,
        shipping_city=shipping.city,
        shipping_postal_code=shipping.postal_code,
        order_date=payload.order_date or utcnow(),
        items=[
            OrderItem(
                product_id=it.product_id,
                quantity=it.quantity,
                price=it.price,
                product_name=it.product_name,
                image_url=it.image_url,
            )
            for it in payload.items
        ],
    )
    try:
        db.add(order)
        db.commit()
        db.refresh(order)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error creating order %s", payload.order_id)
        raise HTTPException(status_code=500, detail=f"Failed to create order: {e}")

    logger.info("Order %s saved with id %s", order.order_id, order.id)

    _apply_stock_updates(db, order)
    _clear_purchased_cart_lines(session_db, current_user.id, payload)

    # The order is stored; nothing in the notification step may fail the request
    try:
        await _notify_order_placed(db, push, current_user, order)
    except Exception:
        db.rollback()
        logger.exception("Error in order placed notification for %s", order.order_id)

    try_write_log(
        db, user_id=current_user.id, action=AuditAction.ORDER_CREATE, resource="orders", status="SUCCESS",
        ip=client_ip(request), meta={"order_id": order.order_id, "total": order.total},
    )

    db.refresh(order)
    return {"success": True, "message": "Order created successfully", "data": OrderOut.model_validate(order)}


# Admin: all orders, newest first
@router.get("/admin", response_model=OrderListEnvelope)
def list_all_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    orders = db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return {"success": True, "data": [OrderOut.model_validate(o) for o in orders]}


@router.get("/admin/{order_id}", response_model=OrderEnvelope)
def get_any_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    order = _get_order_or_404(db, order_id)
    return {"success": True, "data": OrderOut.model_validate(order)}


# Admin: overwrite status, then write a receipt and push to the owner
@router.patch("/admin/status/{order_id}", response_model=OrderStatusUpdateResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    push: ExpoPushClient = Depends(get_push_client),
    current_user: User = Depends(require_admin),
):
    new_status = _validate_status(payload.status)
    order = _get_order_or_404(db, order_id)

    previous_status = order.status
    now = utcnow()
    order.status = new_status
    # First entry into a terminal state wins
    if new_status == OrderStatus.DELIVERED.value and order.delivered_at is None:
        order.delivered_at = now
    elif new_status == OrderStatus.CANCELLED.value and order.cancelled_at is None:
        order.cancelled_at = now
    order.updated_at = now
    db.commit()
    db.refresh(order)
    logger.info("Order %s status %s -> %s", order_id, previous_status, new_status)

    receipt = record_receipt(
        db,
        order_id=order_id,
        user_id=order.user_id,
        type="orderUpdate",
        status=new_status,
        previous_status=previous_status,
        message=status_message(order_id, new_status),
        timestamp=utcnow(),
        force_show=True,
    )

    notification_sent = False
    notification_error = None
    try:
        owner = db.get(User, order.user_id)
        push_token = select_push_token(owner.push_tokens) if owner else None
        if push_token:
            result = await send_notification(
                push, push_token, OrderUpdate(order_id=order_id, status=new_status, previous_status=previous_status)
            )
            notification_sent = result.success
            if not result.success:
                notification_error = result.error or "Unknown error"
                logger.error("Failed to send push notification: %s", notification_error)
        else:
            logger.info("User %s doesn't have any valid push tokens configured", order.user_id)
            notification_error = "User does not have any valid push tokens configured"
    except Exception as e:
        db.rollback()
        notification_error = str(e) or e.__class__.__name__
        logger.exception("Error in notification process for order %s", order_id)

    try_write_log(
        db, user_id=current_user.id, action=AuditAction.ORDER_STATUS_CHANGE, resource="orders", status="SUCCESS",
        ip=client_ip(request),
        meta={"order_id": order_id, "previous_status": previous_status, "new_status": new_status},
    )

    return {
        "success": True,
        "message": "Order status updated successfully",
        "notification_sent": notification_sent,
        "notification_error": notification_error,
        "notification_receipt_created": receipt is not None,
        "data": OrderOut.model_validate(order),
        "status_changed": True,
        "previous_status": previous_status,
        "new_status": new_status,
        "timestamp": utcnow(),
        "force_show": True,
    }


# Admin: push a status notification for an order and apply that status
@router.post("/test-notification/{order_id}", response_model=TestNotificationResponse)
async def send_test_notification(
    order_id: str,
    payload: Optional[TestNotificationRequest] = None,
    db: Session = Depends(get_db),
    push: ExpoPushClient = Depends(get_push_client),
    current_user: User = Depends(require_admin),
):
    new_status = _validate_status((payload.status if payload else None) or OrderStatus.PROCESSING.value)
    order = _get_order_or_404(db, order_id)

    owner = db.get(User, order.user_id)
    if not owner:
        raise HTTPException(status_code=404, detail="User not found")

    push_token = select_push_token(owner.push_tokens)
    if not push_token:
        raise HTTPException(status_code=400, detail="User does not have any valid push tokens registered")

    result = await send_notification(
        push, push_token, OrderUpdate(order_id=order_id, status=new_status, previous_status=order.status)
    )
    if not result.success:
        logger.error("Failed to send test push notification: %s", result.error)
        raise HTTPException(status_code=500, detail=f"Failed to send test notification: {result.error}")

    record_receipt(
        db,
        order_id=order_id,
        user_id=order.user_id,
        type="orderUpdate",
        status=new_status,
        previous_status=order.status,
        message=status_message(order_id, new_status),
        timestamp=utcnow(),
        force_show=True,
    )

    order.status = new_status
    order.updated_at = utcnow()
    db.commit()

    return {
        "success": True,
        "message": "Test notification sent successfully and order status updated",
        "data": result,
    }


# Own orders whose status changed since lastChecked (epoch ms, default 24h)
@router.get("/recent-status-updates", response_model=RecentStatusUpdates)
def recent_status_updates(
    lastChecked: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    since = from_millis(lastChecked) if lastChecked is not None else utcnow() - timedelta(hours=24)
    orders = (
        db.query(Order)
        .filter(Order.user_id == current_user.id, Order.updated_at >= since)
        .order_by(Order.updated_at.desc())
        .all()
    )
    logger.info("Found %d orders updated since last check for user %s", len(orders), current_user.id)
    return {
        "success": True,
        "data": [StatusUpdateOut.model_validate(o) for o in orders],
        "timestamp": to_millis(utcnow()),
    }


# Own orders, newest first
@router.get("", response_model=OrderListEnvelope)
def list_my_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    orders = (
        db.query(Order)
        .filter(Order.user_id == current_user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return {"success": True, "data": [OrderOut.model_validate(o) for o in orders]}


@router.get("/{order_id}", response_model=OrderEnvelope)
def get_my_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = _get_order_or_404(db, order_id, user_id=current_user.id)
    return {"success": True, "data": OrderOut.model_validate(order)}
