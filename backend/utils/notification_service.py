# backend/utils/notification_service.py
"""
Push side-channel for order and catalog events.

Turns a NotificationPayload into an Expo push message, sends it through the
push client and reports a PushResult. Receipts (the polled mirror of what was
sent) are written by ``record_receipt``. Nothing here raises on gateway or
receipt-store failures: both are logged and reported back as values.
"""
import logging
import random
import time
from typing import Iterable, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.notification import NotificationReceipt
from models.users import PushToken
from schemas.notification import PushResult
from utils.push_client import ExpoPushClient, is_expo_push_token

logger = logging.getLogger(__name__)


def dedup_stamp() -> int:
    """Millisecond timestamp plus a random suffix, so the gateway never coalesces two sends."""
    return int(time.time() * 1000) + random.randint(0, 999)


def select_push_token(tokens: Iterable[PushToken]) -> Optional[str]:
    """Picks the token with the latest last_used, or None when the user has none."""
    candidates = [t for t in tokens if t is not None and t.token]
    if not candidates:
        return None
    latest = max(candidates, key=lambda t: (t.last_used is not None, t.last_used or 0, t.id or 0))
    return latest.token


def build_push_message(push_token: str, payload, unique_id: str) -> dict:
    title = payload.TITLE
    body = payload.body()
    data = {
        **{k: v for k, v in payload.data().items() if v is not None},
        "type": payload.type,
        "title": title,
        "body": body,
        "showModal": True,
        "forceShow": True,
        "uniqueId": unique_id,
    }
    return {
        "to": push_token,
        "sound": "default",
        "title": title,
        "body": body,
        "data": data,
        "priority": "high",
        "channelId": payload.CHANNEL_ID,
        "categoryId": payload.CATEGORY,
        "badge": 1,
        "mutableContent": True,
        "_contentAvailable": True,
        "interruptionLevel": "time-sensitive",
    }


async def send_notification(client: ExpoPushClient, push_token: Optional[str], payload,
                            unique_id: Optional[str] = None) -> PushResult:
    """Sends one payload to one device token and summarizes the gateway tickets."""
    if not push_token:
        logger.error("Push token is null or empty")
        return PushResult(status="error", error="Push token is null or empty")

    if not is_expo_push_token(push_token):
        logger.error("Push token %s is not a valid Expo push token", push_token)
        return PushResult(status="error", error="Invalid push token")

    unique_id = unique_id or payload.unique_id(dedup_stamp())
    message = build_push_message(push_token, payload, unique_id)
    logger.info("Sending %s push to %s... (%s)", payload.type, push_token[:15], unique_id)

    try:
        tickets = await client.send([message])
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Error sending push notification: %s", e)
        return PushResult(status="error", error=str(e), unique_id=unique_id)

    if not tickets:
        return PushResult(status="error", error="Push gateway returned no tickets", unique_id=unique_id)

    errors = [t for t in tickets if t.get("status") == "error"]
    if errors:
        logger.error("Errors in notification tickets: %s", errors)
        return PushResult(
            status="partial" if len(tickets) > len(errors) else "error",
            tickets=tickets,
            errors=errors,
            error=errors[0].get("message") or "Push ticket error",
            unique_id=unique_id,
        )

    return PushResult(status="success", tickets=tickets, unique_id=unique_id)


def record_receipt(db: Session, **fields) -> Optional[NotificationReceipt]:
    """Persists a receipt; returns None (after logging) when the write fails."""
    receipt = NotificationReceipt(**fields)
    try:
        db.add(receipt)
        db.commit()
        db.refresh(receipt)
        return receipt
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating notification receipt for %s",
                         fields.get("order_id") or fields.get("product_id"))
        return None
