# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import issue_session_token, revoke_session_token, get_bearer_token, get_current_user
from utils.audit import write_log, client_ip
from models.audit import AuditAction
from models import users as models
from schemas import user as schemas
from schemas.base import MessageResponse
from database import get_db, get_session_db

router = APIRouter(prefix="/api", tags=["Auth"])

# Register a new user
@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    # Normalize email input
    normalized_email = user.email.strip().lower()

    # Check for existing user
    db_user = db.query(models.User).filter(
        or_(func.lower(models.User.email) == normalized_email, models.User.username == user.username)
    ).first()
    if db_user:
        write_log(
            db,
            user_id=None,
            action=AuditAction.REGISTER,
            resource="auth",
            status="FAIL",
            ip=client_ip(request),
            meta={"email": user.email, "reason": "Email or username exists"},
        )
        raise HTTPException(status_code=400, detail="User with this email or username already exists")

    # Create new user instance with hashed password; admins are created by admins
    new_user = models.User(
        username=user.username,
        email=normalized_email,
        password_hash=get_password_hash(user.password),
        role="user",
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    # Log successful registration event
    write_log(
        db,
        user_id=new_user.id,
        action=AuditAction.REGISTER,
        resource="auth",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"email": new_user.email},
    )

    return {"success": True, "message": "User registered successfully"}


# Authenticate user and issue a session token
@router.post("/login", response_model=schemas.LoginResponse)
def login(
    payload: schemas.UserLogin,
    request: Request,
    db: Session = Depends(get_db),
    session_db: Session = Depends(get_session_db),
):
    db_user = db.query(models.User).filter(models.User.email == payload.email.strip().lower()).first()

    # Validate credentials and log failure on error
    if not db_user or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action=AuditAction.LOGIN, resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"email": payload.email})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = issue_session_token(session_db, db_user)

    # Log successful login event
    write_log(db, user_id=db_user.id, action=AuditAction.LOGIN, resource="auth",
              status="SUCCESS", ip=client_ip(request), meta={"email": db_user.email})

    return {"token": token, "role": db_user.role, "user_id": db_user.id}


# Invalidate the presented token
@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    session_db: Session = Depends(get_session_db),
):
    if not revoke_session_token(session_db, token):
        raise HTTPException(status_code=500, detail="Failed to log out")

    write_log(db, user_id=current_user.id, action=AuditAction.LOGOUT, resource="auth",
              status="SUCCESS", ip=client_ip(request))
    return {"success": True, "message": "Logged out successfully"}
