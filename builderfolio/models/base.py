"""
Base Models and Common Types

Foundation classes for all Builderfolio models. API payloads use camelCase
field names (the frontend contract); Python code and stored node properties
use snake_case.
"""

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def convert_neo4j_datetime(value: Any) -> datetime:
    """Convert a Neo4j DateTime, ISO string or naive datetime to an aware datetime."""
    if value is None:
        return datetime.now(UTC)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    if hasattr(value, "to_native"):
        native: datetime = value.to_native()
        return native
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


def utc_now() -> datetime:
    return datetime.now(UTC)


def _address_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


# Wallet fields in request bodies. Non-strings become "" so that every
# malformed address is rejected by the route with a 400.
AddressInput = Annotated[str, BeforeValidator(_address_text)]


class BuilderfolioModel(BaseModel):
    """Base model for all Builderfolio entities and API payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )
