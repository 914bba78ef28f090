from typing import Optional

from pydantic import BaseModel, Field

from photoshare.models.user import AccountStatus, UserRole
from photoshare.schemas.common import CamelModel
from photoshare.schemas.user_schema import UserPrivate


class UserAdminUpdate(BaseModel):
    status: Optional[AccountStatus] = None
    role: Optional[UserRole] = None


class UserActivity(CamelModel):
    posts: int = 0
    comments: int = 0
    likes_given: int = 0


class UserDetails(UserPrivate):
    stats: UserActivity


class UserMetrics(CamelModel):
    total: int
    active: int
    suspended: int
    new_last_24h: int = Field(alias="newLast24h")


class PostMetrics(CamelModel):
    total: int
    new_last_24h: int = Field(alias="newLast24h")


class TotalMetric(CamelModel):
    total: int


class Metrics(CamelModel):
    users: UserMetrics
    posts: PostMetrics
    comments: TotalMetric
    likes: TotalMetric
