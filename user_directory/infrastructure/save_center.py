"""
Write-behind for mutated records.

Records report every field assignment to the save center of the store that
produced them; the store writes them on `flush()`, either when asked or from
a periodic background task.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, Callable, Dict, Optional, Tuple

from user_directory.domain.record import UserRecord
from user_directory.utils.logging import get_logger

log = get_logger(__name__)

SaveFn = Callable[[UserRecord], Awaitable[None]]


class SaveCenter:
    """
    Tracks dirty records and persists them in batches.

    Parameters
    ----------
    save : callable
        Coroutine function writing one record.
    interval : float
        Seconds between background flushes. 0 disables the background task.
    """

    def __init__(self, save: SaveFn, interval: float = 0.0) -> None:
        self._save = save
        self.interval = interval
        self._dirty: Dict[int, UserRecord] = {}
        self._task: Optional[asyncio.Task] = None

    def track(self, record: UserRecord) -> None:
        self._dirty[record.identity] = record

    def discard(self, record: UserRecord) -> None:
        if self._dirty.get(record.identity) is record:
            del self._dirty[record.identity]

    @property
    def pending(self) -> Tuple[UserRecord, ...]:
        return tuple(self._dirty.values())

    async def flush(self) -> int:
        """
        Save every dirty record.

        Returns the number of records written. On failure the unsaved records
        stay queued and the error propagates.
        """
        batch = list(self._dirty.values())
        self._dirty.clear()
        saved = 0
        try:
            for record in batch:
                await self._save(record)
                saved += 1
        except BaseException:
            for record in batch[saved:]:
                self._dirty.setdefault(record.identity, record)
            raise
        if saved:
            log.debug(f"Flushed {saved} record(s)", extra={"saved": saved})
        return saved

    def start(self) -> None:
        """Start the background flush loop on the running event loop."""
        if self.interval <= 0 or self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.flush()
            except Exception:  # noqa: BLE001
                log.exception("Autosave flush failed", extra={"pending": len(self._dirty)})

    async def stop(self) -> None:
        """Stop the background loop and write whatever is still pending."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self.flush()


__all__ = ["SaveCenter", "SaveFn"]
