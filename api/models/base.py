# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

from datetime import datetime, timezone
from typing import Any, Dict
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class DocumentModel(BaseModel):
    """Base for models persisted as camelCase MongoDB documents."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Stored documents use camelCase keys
        alias_generator=to_camel,
    )

    def to_document(self) -> Dict[str, Any]:
        """Dump to a MongoDB-ready dictionary with camelCase keys."""
        return self.model_dump(by_alias=True)


class BaseEntity(DocumentModel):
    """Base entity with common fields for all stored aggregates."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")
    schema_version: int = Field(default=1, description="Schema version for migrations")

    def to_document(self) -> Dict[str, Any]:
        """Dump to a MongoDB document, mapping ``id`` to ``_id``."""
        document = super().to_document()
        document["_id"] = ObjectId(document.pop("id"))
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        """Build an entity from a raw MongoDB document."""
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)
