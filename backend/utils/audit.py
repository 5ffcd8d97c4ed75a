import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from models.audit import AuditAction, AuditEntry

logger = logging.getLogger(__name__)


def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    meta = meta or {}
    entry = AuditEntry(
        user_id=user_id,
        action=AuditAction(action).value,
        resource=resource,
        status=status,
        ip=ip,
        order_id=meta.get("order_id"),
        product_id=meta.get("product_id"),
        meta=meta,
    )
    db.add(entry)
    db.commit()


def try_write_log(db: Session, **kwargs) -> bool:
    """Audit write for paths whose primary change is already committed: a failure is logged, never raised."""
    try:
        write_log(db, **kwargs)
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Audit log write failed for %s", kwargs.get("action"))
        return False


def client_ip(request) -> str:
    return request.client.host if request is not None and request.client else None
