from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, StringConstraints, field_validator

from photoshare.config import get_policy
from photoshare.schemas.common import CamelModel, sanitize_text
from photoshare.schemas.user_schema import AuthorInfo

_policy = get_policy()

CommentText = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=_policy.comment_max_length),
]


class CommentCreate(BaseModel):
    content: CommentText

    @field_validator("content")
    @classmethod
    def _sanitize(cls, v: str) -> str:
        return sanitize_text(v)


class CommentUpdate(CommentCreate):
    pass


class CommentOut(CamelModel):
    id: int
    author: AuthorInfo
    post: int
    content: str
    is_edited: bool
    created_at: datetime
    updated_at: datetime
    is_owner: bool = False
