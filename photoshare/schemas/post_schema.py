from datetime import datetime
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, StringConstraints, field_validator

from photoshare.config import get_policy
from photoshare.schemas.common import CamelModel, sanitize_text
from photoshare.schemas.user_schema import AuthorInfo

_policy = get_policy()

Caption = Annotated[str, StringConstraints(strip_whitespace=True, max_length=_policy.caption_max_length)]


class FeedMode(str, Enum):
    RECENT = "recent"
    TRENDING = "trending"


class PostCreate(BaseModel):
    caption: Caption = ""

    @field_validator("caption")
    @classmethod
    def _sanitize(cls, v: str) -> str:
        return sanitize_text(v)


class PostUpdate(BaseModel):
    caption: Optional[Caption] = None

    @field_validator("caption")
    @classmethod
    def _sanitize(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_text(v)


class PostOut(CamelModel):
    id: int
    author: AuthorInfo
    image: str
    caption: str
    like_count: int
    comment_count: int
    created_at: datetime
    updated_at: datetime
    is_owner: bool = False
    has_liked: bool = False


class LikeStatus(CamelModel):
    like_count: int
    has_liked: bool
