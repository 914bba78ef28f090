import html
from math import ceil
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response models are serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Trim and HTML-escape user supplied free text."""
    if value is None:
        return value
    return html.escape(value.strip(), quote=True)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=ceil(total / limit) if limit else 0)


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Success envelope: {success, message?, data?}"""
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
