# utils/tokenJWT.py
"""
Session token ledger.

Tokens are signed JWTs. Every issued token is also recorded in the row store
(``SessionToken``), which is what makes logout possible: a blacklisted row
rejects an otherwise valid signature. The ledger is advisory everywhere else;
when the row cannot be stored or looked up, the signature alone decides.
"""
import hashlib
import logging
import time
import uuid
from datetime import timedelta
from typing import Optional

from jose import jwt, JWTError
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from database import get_db, get_session_db
from models.token import SessionToken
from models.users import User
from utils.timeutil import utcnow, from_millis

logger = logging.getLogger(__name__)

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

STORE_ATTEMPTS = 3
STORE_RETRY_DELAY_SECONDS = 0.1

# Authorization scheme; missing credentials are reported by get_bearer_token
bearer_scheme = HTTPBearer(auto_error=False)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _expiry_of(claims: dict):
    return from_millis(int(claims["exp"]) * 1000)


# Generate a new signed JWT access token
def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    to_encode = data.copy()
    now = utcnow()
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    # jti keeps two tokens issued in the same second distinct
    to_encode.update({"exp": expire, "iat": now, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _store_session(db: Session, *, user_id: str, token: str, expires_at) -> bool:
    """Upserts the single active session row of a user, retrying on store errors."""
    last_error = None
    for attempt in range(1, STORE_ATTEMPTS + 1):
        try:
            row = (
                db.query(SessionToken)
                .filter(SessionToken.user_id == user_id, SessionToken.blacklisted.is_(False))
                .with_for_update()
                .first()
            )
            if row:
                row.token = token
                row.token_hash = hash_token(token)
                row.expires_at = expires_at
                row.created_at = utcnow()
            else:
                db.add(SessionToken(
                    user_id=user_id,
                    token=token,
                    token_hash=hash_token(token),
                    expires_at=expires_at,
                    blacklisted=False,
                ))
            db.commit()
            return True
        except SQLAlchemyError as e:
            db.rollback()
            last_error = e
            if attempt < STORE_ATTEMPTS:
                time.sleep(STORE_RETRY_DELAY_SECONDS)

    logger.error("Failed to store session token for user %s after %d attempts: %s",
                 user_id, STORE_ATTEMPTS, last_error)
    return False


def issue_session_token(db: Session, user: User, expires_delta: timedelta = None) -> str:
    """Signs a token for the user and records it as the user's active session.

    The token is returned even when the ledger write fails.
    """
    token = create_access_token(
        {"id": str(user.id), "role": user.role, "email": user.email},
        expires_delta=expires_delta,
    )
    claims = jwt.get_unverified_claims(token)
    _store_session(db, user_id=str(user.id), token=token, expires_at=_expiry_of(claims))
    return token


def verify_session_token(db: Session, token: str) -> Optional[dict]:
    """Returns the token claims, or None when the token is invalid, expired or blacklisted."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info("Rejected token: %s", e)
        return None

    try:
        row = db.query(SessionToken).filter(SessionToken.token_hash == hash_token(token)).first()
        if row is not None and row.blacklisted:
            return None
    except SQLAlchemyError:
        db.rollback()
        # Fall back to the signature check alone
        logger.exception("Session ledger lookup failed")

    return claims


def revoke_session_token(db: Session, token: str) -> bool:
    """Blacklists a token; synthesizes a blacklisted row when none was recorded."""
    try:
        row = db.query(SessionToken).filter(SessionToken.token_hash == hash_token(token)).first()
        if row:
            row.blacklisted = True
            db.commit()
            return True

        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            claims = None
        if claims and claims.get("exp"):
            try:
                db.add(SessionToken(
                    user_id=str(claims.get("id") or "unknown"),
                    token=token,
                    token_hash=hash_token(token),
                    expires_at=_expiry_of(claims),
                    blacklisted=True,
                ))
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Error creating blacklist record")
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error blacklisting token")
        return False


def sweep_expired_tokens(db: Session) -> int:
    """Deletes ledger rows whose expiry is in the past."""
    try:
        removed = (
            db.query(SessionToken)
            .filter(SessionToken.expires_at < utcnow())
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info("Expired tokens cleaned up: %d", removed)
        return removed
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error cleaning up expired tokens")
        return 0


# Extract the raw bearer token from the Authorization header
def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_token_claims(
    token: str = Depends(get_bearer_token),
    session_db: Session = Depends(get_session_db),
) -> dict:
    claims = verify_session_token(session_db, token)
    if not claims:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")
    return claims


# Retrieve the currently authenticated user based on the JWT token
def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        user_id = int(claims.get("id"))
    except (TypeError, ValueError):
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception
    return user


def is_admin(user: User) -> bool:
    return (user.role or "").lower() == "admin"


# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles):
    def _checker(current_user: User = Depends(get_current_user)):
        if allowed_roles and (current_user.role or "").lower() not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Admin privileges required." if allowed_roles == ("admin",) else "Forbidden",
            )
        return current_user
    return _checker


require_admin = role_required("admin")
