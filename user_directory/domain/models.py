"""
Domain models for the user directory.

Value objects exchanged with the identity resolver (profiles, resolved
identities) and the field descriptors that make up the record schema.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

_SQL_TYPE_PATTERN = re.compile(r"^[A-Z][A-Z ]*(\(\d+(,\s*\d+)?\))?(\[\])?$")


class IdentityKind(str, Enum):
    """What a resolved identity string points at."""

    INDIVIDUAL = "individual"
    COLLECTIVE = "collective"
    OTHER = "other"


class ResolvedIdentity(BaseModel):
    """
    Result of resolving a free-form identity string.

    Collective identities carry a negative `id`, individuals a positive one.
    """

    kind: IdentityKind
    id: int

    model_config = {"frozen": True}


class Profile(BaseModel):
    """Descriptive data fetched for an identity that has not been seen yet."""

    display_name: str = Field(..., description="First name, or the group name.")
    secondary_name: str = Field("", description="Last name; empty for collectives.")

    model_config = {"frozen": True}


class FieldDescriptor(BaseModel):
    """
    Definition of one persisted record field.
    """

    sql_type: str = Field(..., description="Column type, e.g. INTEGER or VARCHAR(64).")
    default: Any = Field(None, description="Value used when the store has none.")
    nullable: bool = Field(True, description="Whether the column accepts NULL.")

    model_config = {"frozen": True}

    @field_validator("sql_type")
    @classmethod
    def _check_sql_type(cls, value: str) -> str:
        normalized = " ".join(value.upper().split())
        if not _SQL_TYPE_PATTERN.match(normalized):
            raise ValueError(f"Unsupported column type '{value}'")
        return normalized


BIGINT = FieldDescriptor(sql_type="BIGINT")
INTEGER = FieldDescriptor(sql_type="INTEGER")
TEXT = FieldDescriptor(sql_type="TEXT")
BOOLEAN = FieldDescriptor(sql_type="BOOLEAN")
DOUBLE = FieldDescriptor(sql_type="DOUBLE PRECISION")
JSONB = FieldDescriptor(sql_type="JSONB")
TIMESTAMPTZ = FieldDescriptor(sql_type="TIMESTAMPTZ")


__all__ = [
    "BIGINT",
    "BOOLEAN",
    "DOUBLE",
    "FieldDescriptor",
    "INTEGER",
    "IdentityKind",
    "JSONB",
    "Profile",
    "ResolvedIdentity",
    "TEXT",
    "TIMESTAMPTZ",
]
