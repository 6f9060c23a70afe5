from datetime import datetime

from pydantic import BaseModel, EmailStr


class UserInDB(BaseModel):
    """Full user document as stored in MongoDB."""
    email: EmailStr
    hashed_password: str
    display_name: str
    is_admin: bool = False
    is_banned: bool = False
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime


class UserLogin(BaseModel):
    """Request body for login."""
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    display_name: str
    is_admin: bool
