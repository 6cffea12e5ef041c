"""Attribute declarations shared by all API object models.

Each resource kind is a pydantic model. Fields carry an ``APIAttr`` marker in
their ``Annotated`` metadata describing how the field behaves against the
server:

- required: must be given when the object is created
- readonly: cannot be changed with ``update`` or attribute assignment
- do_not_send: never included in POST/PUT bodies

Tables of these flags are built once per model class by ``build_attr_table``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from enum import Enum
from typing import Annotated
from typing import Any

from pydantic import AfterValidator
from pydantic import BaseModel
from pydantic import PlainSerializer

from .exceptions import MissingFieldError


@dataclass(frozen=True)
class APIAttr:
    """Server-facing behavior of a single model field."""

    required: bool = False
    readonly: bool = False
    do_not_send: bool = False


# Common combinations
PLAIN = APIAttr()
REQUIRED = APIAttr(required=True)
READONLY = APIAttr(readonly=True)
SERVER_ONLY = APIAttr(readonly=True, do_not_send=True)


class AndOr(str, Enum):
    """How a criterion is joined to the one before it."""

    AND = "and"
    OR = "or"

    @classmethod
    def from_api(cls, value: Any) -> AndOr:
        """Convert the wire boolean (``"and": true/false``) to an AndOr."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(value.lower())
        return cls.OR if value is False else cls.AND

    def to_api(self) -> bool:
        return self is AndOr.AND


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def time_to_api(value: datetime) -> str:
    """Format a timestamp the way the server stores them."""
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


UTCDatetime = Annotated[
    datetime,
    AfterValidator(ensure_utc),
    PlainSerializer(time_to_api, return_type=str, when_used="json"),
]


def build_attr_table(model_cls: type[BaseModel]) -> dict[str, APIAttr]:
    """Collect the APIAttr marker of every field of a model class.

    Fields declared without a marker behave as PLAIN.
    """
    table: dict[str, APIAttr] = {}
    for name, info in model_cls.model_fields.items():
        attr = next((m for m in info.metadata if isinstance(m, APIAttr)), PLAIN)
        table[name] = attr
    return table


def required_fields(table: dict[str, APIAttr]) -> list[str]:
    return [name for name, attr in table.items() if attr.required]


def sendable_fields(table: dict[str, APIAttr]) -> set[str]:
    return {name for name, attr in table.items() if not attr.do_not_send}


def validate_required(kind: str, table: dict[str, APIAttr], data: dict[str, Any]) -> None:
    """Raise MissingFieldError if any required attribute is absent or None.

    Args:
        kind: Name of the resource kind, for the error message
        table: The attribute table of the kind
        data: Attribute values keyed by local field name
    """
    missing = [name for name in required_fields(table) if data.get(name) is None]
    if missing:
        raise MissingFieldError(f"Missing required attribute(s) for {kind}: {', '.join(missing)}")
