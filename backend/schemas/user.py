from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime

from schemas.base import CamelModel

# Shared properties for user models
class UserBase(CamelModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(CamelModel):
    email: str
    password: str

# Schema for user registration requests
class UserCreate(UserBase):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: str = "user"  # default role

# Schema for administrative edits; password is optional
class UserUpdate(CamelModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[str] = None
    password: Optional[str] = None

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    username: str
    role: str
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None

class UserEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: UserResponse

# Schema for the login response
class LoginResponse(CamelModel):
    token: str
    role: str
    user_id: int

# Push token registration payloads
class PushTokenRegister(CamelModel):
    push_token: Optional[str] = None
    device_info: Optional[str] = None

class PushTokenRemove(CamelModel):
    push_token: Optional[str] = None
