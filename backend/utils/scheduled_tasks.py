import asyncio
import logging
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from database import SessionLocal, SessionStoreLocal
from models.users import PushToken
from utils.timeutil import utcnow
from utils.tokenJWT import sweep_expired_tokens

logger = logging.getLogger(__name__)


def cleanup_stale_push_tokens(db: Session, max_age_days: int = None) -> int:
    """Removes push tokens not used within max_age_days (PUSH_TOKEN_STALE_DAYS by default)."""
    max_age_days = settings.PUSH_TOKEN_STALE_DAYS if max_age_days is None else max_age_days
    cutoff = utcnow() - timedelta(days=max_age_days)
    try:
        removed = (
            db.query(PushToken)
            .filter((PushToken.last_used == None) | (PushToken.last_used <= cutoff))  # noqa: E711
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error during stale push token cleanup")
        return 0
    logger.info("Cleanup complete: removed %d stale push tokens", removed)
    return removed


def run_token_sweep() -> int:
    db = SessionStoreLocal()
    try:
        return sweep_expired_tokens(db)
    finally:
        db.close()


def run_push_token_cleanup() -> int:
    db = SessionLocal()
    try:
        return cleanup_stale_push_tokens(db)
    finally:
        db.close()


async def _every(interval_seconds: float, job, name: str):
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(job)
        except Exception:
            # Keep the loop alive; the next tick retries
            logger.exception("Scheduled job %s failed", name)


def start_background_tasks() -> list:
    """Runs both housekeeping jobs once, then schedules them on their intervals."""
    run_token_sweep()
    run_push_token_cleanup()

    tasks = [
        asyncio.create_task(
            _every(settings.TOKEN_SWEEP_INTERVAL_MINUTES * 60, run_token_sweep, "token-sweep")
        ),
        asyncio.create_task(
            _every(24 * 60 * 60, run_push_token_cleanup, "push-token-cleanup")
        ),
    ]
    logger.info("Scheduled token sweep every %d minutes and push token cleanup daily",
                settings.TOKEN_SWEEP_INTERVAL_MINUTES)
    return tasks
