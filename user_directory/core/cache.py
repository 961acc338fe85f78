"""
In-memory record cache.

Entries live for the lifetime of the process: there is no eviction, TTL or
size bound, since the number of identities is bounded by the platform's
population. A present key always maps to a fully composed record.
"""

from __future__ import annotations

from typing import Dict, Iterator, Optional

from user_directory.domain.record import UserRecord


class RecordCache:
    def __init__(self) -> None:
        self._records: Dict[int, UserRecord] = {}

    def get(self, identity: int) -> Optional[UserRecord]:
        return self._records.get(identity)

    def put(self, identity: int, record: UserRecord) -> None:
        self._records[identity] = record

    def values(self) -> Iterator[UserRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["RecordCache"]
