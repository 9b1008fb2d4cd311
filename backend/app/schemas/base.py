"""
Base schemas with standardized field types for consistent API responses.

Request and response bodies use camelCase on the wire while accepting
snake_case input as well.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from ..core.timezone_utils import isoformat_z

# Instants always leave the API as second-precision UTC with a trailing Z
UTCDateTime = Annotated[datetime, PlainSerializer(isoformat_z, return_type=str, when_used="json")]


class StandardizedModel(BaseModel):
    """Base model with camelCase aliases and standardized JSON encoding."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class ResponseModel(StandardizedModel):
    """Response base built from ORM rows."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        from_attributes=True,
    )


class PaginationMeta(StandardizedModel):
    total: int
    page: int
    limit: int
    total_pages: int
    count: int
