"""
Store interface and the in-memory implementation.

A store turns the directory's field schema into a table (`define_schema`,
`ensure_schema_synced`), rehydrates records by identity, constructs fresh
records without persisting them (`materialize`), and owns when changes are
written through its save center.
"""

from __future__ import annotations

import abc
import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Protocol, Type, runtime_checkable

from user_directory.domain.models import FieldDescriptor
from user_directory.domain.record import UserRecord
from user_directory.infrastructure.save_center import SaveCenter


@dataclass(frozen=True)
class ModelHandle:
    """A schema bound to a table and the record class built from its rows."""

    table: str
    fields: Mapping[str, FieldDescriptor]
    record_cls: Type[UserRecord]


@runtime_checkable
class Store(Protocol):
    """
    Persistence capability consumed by the directory.

    "Not found" is an absent result, never an error; transport failures
    propagate unchanged.
    """

    def define_schema(
        self, fields: Mapping[str, FieldDescriptor], record_cls: Type[UserRecord]
    ) -> ModelHandle:
        ...

    async def ensure_schema_synced(self, handle: ModelHandle) -> None:
        ...

    async def find_by_identity(self, identity: int) -> Optional[UserRecord]:
        ...

    def materialize(self, data: Mapping[str, Any]) -> UserRecord:
        ...

    async def save(self, record: UserRecord) -> None:
        ...

    async def count(self) -> int:
        ...

    async def flush(self) -> int:
        ...

    async def close(self) -> None:
        ...


class BaseStore(abc.ABC):
    """
    Shared record construction and change tracking for concrete stores.

    Subclasses implement the row I/O: `ensure_schema_synced`, `_fetch_row`,
    `_write_row` and `count`.
    """

    def __init__(self, table: str = "users", autosave_interval: float = 0.0) -> None:
        self.table = table
        self._handle: Optional[ModelHandle] = None
        self.save_center = SaveCenter(self.save, interval=autosave_interval)

    @property
    def handle(self) -> ModelHandle:
        if self._handle is None:
            raise RuntimeError("define_schema() must be called before the store is used")
        return self._handle

    def define_schema(
        self, fields: Mapping[str, FieldDescriptor], record_cls: Type[UserRecord] = UserRecord
    ) -> ModelHandle:
        self._handle = ModelHandle(
            table=self.table,
            fields=MappingProxyType(dict(fields)),
            record_cls=record_cls,
        )
        return self._handle

    def _build(self, data: Mapping[str, Any]) -> UserRecord:
        handle = self.handle
        values = {
            name: data[name] if name in data else copy.deepcopy(descriptor.default)
            for name, descriptor in handle.fields.items()
        }
        record = handle.record_cls(**values)
        record.track_changes(self.save_center.track)
        return record

    def materialize(self, data: Mapping[str, Any]) -> UserRecord:
        """Construct a record that will be written on the next flush."""
        record = self._build(data)
        self.save_center.track(record)
        return record

    async def find_by_identity(self, identity: int) -> Optional[UserRecord]:
        row = await self._fetch_row(identity)
        if row is None:
            return None
        record = self._build(row)
        record.mark_persisted()
        return record

    async def save(self, record: UserRecord) -> None:
        """
        Write the record's current values.

        A record changed while its row was being written stays queued, so the
        newer values go out on the next flush.
        """
        version = record.version
        await self._write_row(record.to_dict())
        if record.version != version:
            self.save_center.track(record)
            return
        record.mark_persisted()
        self.save_center.discard(record)

    async def flush(self) -> int:
        return await self.save_center.flush()

    async def close(self) -> None:
        await self.save_center.stop()

    @abc.abstractmethod
    async def ensure_schema_synced(self, handle: ModelHandle) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    async def count(self) -> int:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    async def _fetch_row(self, identity: int) -> Optional[Mapping[str, Any]]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    async def _write_row(self, values: Dict[str, Any]) -> None:  # pragma: no cover
        raise NotImplementedError


class InMemoryStore(BaseStore):
    """Dict-backed store for tests and single-process embedding."""

    def __init__(self, table: str = "users", autosave_interval: float = 0.0) -> None:
        super().__init__(table=table, autosave_interval=autosave_interval)
        self._rows: Dict[int, Dict[str, Any]] = {}
        self.fetch_calls = 0

    @property
    def rows(self) -> Mapping[int, Dict[str, Any]]:
        return MappingProxyType(self._rows)

    async def ensure_schema_synced(self, handle: ModelHandle) -> None:
        # Additive sync: existing rows gain new columns with their defaults.
        for row in self._rows.values():
            for name, descriptor in handle.fields.items():
                row.setdefault(name, copy.deepcopy(descriptor.default))
        self.save_center.start()

    async def count(self) -> int:
        return len(self._rows)

    async def _fetch_row(self, identity: int) -> Optional[Mapping[str, Any]]:
        self.fetch_calls += 1
        row = self._rows.get(identity)
        return copy.deepcopy(row) if row is not None else None

    async def _write_row(self, values: Dict[str, Any]) -> None:
        self._rows[values["identity"]] = copy.deepcopy(values)


__all__ = ["BaseStore", "InMemoryStore", "ModelHandle", "Store"]
