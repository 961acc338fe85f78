"""
Database connection factory for the user directory.

Opens psycopg async connection pools with retry logic for transient
connection failures using tenacity.
"""

from __future__ import annotations

import logging
from typing import Optional

import psycopg
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from user_directory.config import build_dsn
from user_directory.utils.logging import get_logger

log = get_logger(__name__)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, PoolTimeout)),
    before_sleep=before_sleep_log(log, logging.WARNING),
    reraise=True,
)
async def open_async_pool(
    dsn: Optional[str] = None,
    min_size: int = 1,
    max_size: int = 10,
    timeout: float = 10.0,
) -> AsyncConnectionPool:
    """
    Open an asynchronous connection pool with automatic retry.

    Retries up to 3 times with exponential backoff when the server cannot be
    reached.

    Parameters
    ----------
    dsn : str, optional
        Connection string. Defaults to the DSN built from settings.
    min_size : int
        Minimum number of idle connections to keep.
    max_size : int
        Maximum total connections in the pool.
    timeout : float
        Seconds to wait for the pool to fill `min_size` connections.

    Returns
    -------
    AsyncConnectionPool
        An opened pool; the caller owns it and must close it.

    Raises
    ------
    PoolTimeout
        If the pool could not connect after all retry attempts.
    """
    pool = AsyncConnectionPool(
        conninfo=dsn or build_dsn(),
        min_size=min_size,
        max_size=max_size,
        open=False,
    )
    try:
        await pool.open(wait=True, timeout=timeout)
    except BaseException:
        await pool.close()
        raise
    return pool


__all__ = ["open_async_pool"]
