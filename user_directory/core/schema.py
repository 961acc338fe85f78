"""
Additive field schema for user records.

Feature modules declare the extra columns they need on the shared record
before the store materializes its table. Names are never removed or redefined.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from user_directory.domain.errors import DuplicateFieldError
from user_directory.domain.models import BIGINT, FieldDescriptor

BASE_FIELDS: Tuple[Tuple[str, FieldDescriptor], ...] = (
    ("identity", BIGINT.model_copy(update={"nullable": False})),
    ("display_name", FieldDescriptor(sql_type="TEXT", default="", nullable=False)),
    ("secondary_name", FieldDescriptor(sql_type="TEXT", default="", nullable=False)),
)


class FieldSchema:
    """
    Ordered, append-only mapping of field name to descriptor.

    Parameters
    ----------
    base : mapping, optional
        Initial fields. Defaults to the identity and name fields every record has.
    """

    def __init__(self, base: Optional[Mapping[str, FieldDescriptor]] = None) -> None:
        self._fields: Dict[str, FieldDescriptor] = dict(base if base is not None else BASE_FIELDS)
        self._frozen = False

    def declare(self, name: str, descriptor: FieldDescriptor) -> None:
        """
        Add a field.

        Raises
        ------
        DuplicateFieldError
            If `name` is already declared. The schema is left unchanged.
        """
        if name in self._fields:
            raise DuplicateFieldError(name)
        self._fields[name] = descriptor

    @property
    def fields(self) -> Mapping[str, FieldDescriptor]:
        return MappingProxyType(dict(self._fields))

    @property
    def frozen(self) -> bool:
        """True once a store has materialized a table from this schema."""
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def names(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    def defaults(self) -> Dict[str, object]:
        return {name: descriptor.default for name, descriptor in self._fields.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)


__all__ = ["BASE_FIELDS", "FieldSchema"]
