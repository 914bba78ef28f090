import re
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, EmailStr, Field, StringConstraints, field_validator

from photoshare.config import get_policy
from photoshare.models.user import AccountStatus, UserRole
from photoshare.schemas.common import CamelModel, sanitize_text

_policy = get_policy()

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
PASSWORD_MIN_LENGTH = 8

Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=30, pattern=USERNAME_PATTERN)]
Bio = Annotated[str, StringConstraints(strip_whitespace=True, max_length=_policy.bio_max_length)]


def check_password_strength(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    return value


class UserCreate(BaseModel):
    username: Username
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)


class ProfileUpdate(BaseModel):
    username: Optional[Username] = None
    bio: Optional[Bio] = None

    @field_validator("bio")
    @classmethod
    def _sanitize_bio(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_text(v)


class EmailUpdate(BaseModel):
    email: EmailStr
    current_password: str = Field(..., min_length=1, alias="currentPassword")

    model_config = {"populate_by_name": True}

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class PasswordUpdate(BaseModel):
    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")

    model_config = {"populate_by_name": True}

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)


class AccountDelete(BaseModel):
    password: str = Field(..., min_length=1)


class AuthorInfo(CamelModel):
    id: int
    username: str
    profile_image: Optional[str] = None


class UserPublic(CamelModel):
    """Profile as seen by anyone other than its owner"""
    id: int
    username: str
    profile_image: Optional[str] = None
    bio: str = ""
    post_count: int = 0
    total_likes_received: int = 0
    created_at: datetime


class UserPrivate(UserPublic):
    """Profile as seen by its owner (and administrators)"""
    email: str
    role: UserRole
    status: AccountStatus
    updated_at: datetime
