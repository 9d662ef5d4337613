"""Shared schema base: snake_case in Python, camelCase on the wire."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tripshare.utils.timeutil import as_utc


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuccessResponse(ApiModel):
    success: bool = True
    message: Optional[str] = None


def iso(dt: Optional[datetime]) -> Optional[str]:
    """Render a UTC datetime as ISO 8601 with a Z suffix."""
    if dt is None:
        return None
    return as_utc(dt).replace(tzinfo=None).isoformat() + "Z"
