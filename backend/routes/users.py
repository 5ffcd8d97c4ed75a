# backend/routes/users.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, PushToken
from schemas.base import MessageResponse
from schemas.user import (
    UserCreate, UserUpdate, UserResponse, UserEnvelope, PushTokenRegister, PushTokenRemove,
)
from utils.hashing import get_password_hash, verify_password
from utils.scheduled_tasks import cleanup_stale_push_tokens
from utils.timeutil import utcnow
from utils.tokenJWT import get_current_user, require_admin
from utils.uploads import save_upload

router = APIRouter(prefix="/api/users", tags=["Users"])
logger = logging.getLogger(__name__)


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


# Retrieve the authenticated user's profile
@router.get("/profile", response_model=UserEnvelope)
def get_profile(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": UserResponse.model_validate(current_user)}


@router.get("/me", response_model=UserEnvelope)
def me(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": UserResponse.model_validate(current_user)}


# Update the authenticated user's profile (multipart, optional picture)
@router.put("/profile", response_model=UserEnvelope)
def update_profile(
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    currentPassword: Optional[str] = Form(None),
    newPassword: Optional[str] = Form(None),
    profilePicture: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changed = False

    if email and email.strip().lower() != current_user.email:
        normalized = email.strip().lower()
        conflict = db.query(User).filter(User.email == normalized, User.id != current_user.id).first()
        if conflict:
            raise HTTPException(status_code=400, detail="Email already in use by another account")
        current_user.email = normalized
        changed = True

    if username and username != current_user.username:
        conflict = db.query(User).filter(User.username == username, User.id != current_user.id).first()
        if conflict:
            raise HTTPException(status_code=400, detail="Username already in use by another account")
        current_user.username = username
        changed = True

    if currentPassword and newPassword:
        if not verify_password(currentPassword, current_user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        current_user.password_hash = get_password_hash(newPassword)
        changed = True

    if profilePicture is not None and profilePicture.filename:
        current_user.profile_picture = save_upload(profilePicture)
        changed = True

    if not changed:
        raise HTTPException(status_code=400, detail="No changes to update")

    db.commit()
    db.refresh(current_user)
    return {"success": True, "message": "Profile updated successfully", "data": UserResponse.model_validate(current_user)}


# ---- Push tokens ----

@router.post("/register-push-token", response_model=MessageResponse)
def register_push_token(
    payload: PushTokenRegister,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not payload.push_token:
        raise HTTPException(status_code=400, detail="Push token is required")

    existing = db.query(PushToken).filter(
        PushToken.user_id == current_user.id, PushToken.token == payload.push_token
    ).first()
    if existing:
        # Refresh so this device becomes the most recently used one
        existing.last_used = utcnow()
        if payload.device_info:
            existing.device = payload.device_info
    else:
        db.add(PushToken(
            user_id=current_user.id,
            token=payload.push_token,
            device=payload.device_info or "unknown",
        ))
    db.commit()

    logger.info("Push token registered for user %s", current_user.id)
    return {"success": True, "message": "Push token registered successfully"}


@router.delete("/remove-push-token", response_model=MessageResponse)
def remove_push_token(
    payload: PushTokenRemove,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not payload.push_token:
        raise HTTPException(status_code=400, detail="Push token is required")

    removed = db.query(PushToken).filter(
        PushToken.user_id == current_user.id, PushToken.token == payload.push_token
    ).delete(synchronize_session=False)
    db.commit()

    logger.info("%d push tokens removed for user %s", removed, current_user.id)
    return {"success": True, "message": f"{removed} push tokens removed successfully"}


@router.post("/cleanup-push-tokens", response_model=MessageResponse)
def cleanup_push_tokens(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    removed = cleanup_stale_push_tokens(db)
    return {"success": True, "message": f"Removed {removed} stale push tokens"}


# ---- Admin user management ----

@router.get("", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return db.query(User).order_by(User.id.asc()).all()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return _get_user_or_404(db, user_id)


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    email = payload.email.strip().lower()
    exists = db.query(User).filter(or_(User.email == email, User.username == payload.username)).first()
    if exists:
        raise HTTPException(status_code=400, detail="User with this email or username already exists")

    db.add(User(
        username=payload.username,
        email=email,
        password_hash=get_password_hash(payload.password),
        role=payload.role or "user",
    ))
    db.commit()
    return {"success": True, "message": "User created successfully"}


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = _get_user_or_404(db, user_id)

    if payload.email is not None:
        email = payload.email.strip().lower()
        if db.query(User).filter(User.email == email, User.id != user.id).first():
            raise HTTPException(status_code=400, detail="Email already in use by another account")
        user.email = email
    if payload.username is not None:
        if db.query(User).filter(User.username == payload.username, User.id != user.id).first():
            raise HTTPException(status_code=400, detail="Username already in use by another account")
        user.username = payload.username
    if payload.role is not None:
        user.role = payload.role
    if payload.password:
        user.password_hash = get_password_hash(payload.password)

    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = _get_user_or_404(db, user_id)

    # Prevent self-deletion
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")

    db.delete(user)
    db.commit()
    return {"success": True, "message": "User deleted successfully"}
