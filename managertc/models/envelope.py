from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField


class Envelope(BaseModel):
    """Response wrapper shared by HTTP routes and socket replies."""

    model_config = ConfigDict(populate_by_name=True)

    done: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None
    detail: Optional[str] = None
    total_count: Optional[int] = PydanticField(default=None, alias="totalCount")
    stats: Optional[dict[str, Any]] = None
    pagination: Optional[dict[str, Any]] = None


def ok(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    """Success envelope as a plain dict, omitting unset keys."""
    envelope = Envelope(done=True, data=data, message=message, **extra)
    return envelope.model_dump(by_alias=True, exclude_none=True)
