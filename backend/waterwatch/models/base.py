"""
Base model for all MongoDB document models in WaterWatch.

Provides MongoBaseModel with automatic created_at/updated_at timestamps,
UUID generation helpers, and Pydantic v2 configuration for MongoDB compatibility.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

Clock = Callable[[], datetime]


def generate_uuid() -> str:
    """Generate a new UUID v4 string for use as an application-level identifier."""
    return str(uuid4())


def utc_now() -> datetime:
    """Return the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class MongoBaseModel(BaseModel):
    """
    Base model for all MongoDB documents.

    Provides:
    - Automatic created_at and updated_at timestamps (UTC).
    - Pydantic v2 configuration for MongoDB compatibility:
      - populate_by_name: allows field population by alias or field name.
      - use_enum_values: enums are stored as their plain string values.
      - validate_default: defaults go through the same coercion.
      - from_attributes: supports ORM-style attribute access.
    """

    model_config = {
        "populate_by_name": True,
        "use_enum_values": True,
        "validate_default": True,
        "from_attributes": True,
        "json_schema_extra": {
            "description": "WaterWatch MongoDB document base model."
        },
    }

    created_at: datetime = Field(
        default_factory=utc_now,
        description="Document creation timestamp (UTC).",
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last modification timestamp (UTC).",
    )

    def to_document(self) -> dict[str, Any]:
        """Dump the model as a BSON-ready dict (datetimes kept native)."""
        return self.model_dump(mode="python")
