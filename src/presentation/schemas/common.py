"""Shared schema building blocks: camelCase wire names and UTC timestamps."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ``yyyy-MM-ddTHH:mm:ss.SSSZ`` in UTC.

    Naive values are taken to be UTC already (SQLite drops tzinfo).

    Example:
        >>> format_timestamp(datetime(2024, 1, 15, 10, 30, tzinfo=UTC))
        '2024-01-15T10:30:00.000Z'
    """
    value = value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


UtcTimestamp = Annotated[
    datetime,
    PlainSerializer(format_timestamp, return_type=str, when_used="json"),
]


class CamelModel(BaseModel):
    """Base schema exposing camelCase names on the wire.

    Snake_case field names are still accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
