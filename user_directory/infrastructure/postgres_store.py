"""
PostgreSQL-backed store.

Uses a psycopg async connection pool. Schema sync is additive: the table is
created when missing and every declared field is added with
`ADD COLUMN IF NOT EXISTS`; nothing is ever dropped or altered in type.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from user_directory.config import Settings, build_dsn, get_settings
from user_directory.domain.models import FieldDescriptor
from user_directory.infrastructure.db_factory import open_async_pool
from user_directory.infrastructure.store import BaseStore, ModelHandle
from user_directory.utils.logging import get_logger

log = get_logger(__name__)

PRIMARY_KEY = "identity"
_JSON_TYPES = {"JSON", "JSONB"}
_LITERAL_DEFAULT_TYPES = (bool, int, float, str)


def _column_definition(name: str, descriptor: FieldDescriptor, for_alter: bool = False) -> sql.Composed:
    parts = [sql.Identifier(name), sql.SQL(" "), sql.SQL(descriptor.sql_type)]
    if name == PRIMARY_KEY and not for_alter:
        parts.append(sql.SQL(" PRIMARY KEY"))
        return sql.Composed(parts)
    has_default = isinstance(descriptor.default, _LITERAL_DEFAULT_TYPES)
    if has_default:
        parts.extend([sql.SQL(" DEFAULT "), sql.Literal(descriptor.default)])
    # A NOT NULL column can only be added to a populated table with a default.
    if not descriptor.nullable and (has_default or not for_alter):
        parts.append(sql.SQL(" NOT NULL"))
    return sql.Composed(parts)


class PostgresStore(BaseStore):
    """
    Persist user records in a PostgreSQL table keyed by `identity`.

    Parameters
    ----------
    dsn : str, optional
        Connection string; defaults to the DSN built from settings.
    table : str, optional
        Table name; defaults to `settings.users_table`.
    pool : AsyncConnectionPool, optional
        An already opened pool. When given, the store does not close it.
    autosave_interval : float, optional
        Seconds between background flushes; defaults to settings.
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        table: Optional[str] = None,
        pool: Optional[AsyncConnectionPool] = None,
        autosave_interval: Optional[float] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        super().__init__(
            table=table or settings.users_table,
            autosave_interval=(
                settings.autosave_interval_seconds if autosave_interval is None else autosave_interval
            ),
        )
        self._dsn = dsn or build_dsn(settings)
        self._pool = pool
        self._owns_pool = pool is None
        self._pool_min_size = settings.db_pool_min_size
        self._pool_max_size = settings.db_pool_max_size

    async def _get_pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            self._pool = await open_async_pool(
                self._dsn, min_size=self._pool_min_size, max_size=self._pool_max_size
            )
        return self._pool

    async def ensure_schema_synced(self, handle: ModelHandle) -> None:
        table = sql.Identifier(handle.table)
        create = sql.SQL("CREATE TABLE IF NOT EXISTS {table} ({columns})").format(
            table=table,
            columns=sql.SQL(", ").join(
                _column_definition(name, descriptor) for name, descriptor in handle.fields.items()
            ),
        )
        alters = [
            sql.SQL("ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {column}").format(
                table=table, column=_column_definition(name, descriptor, for_alter=True)
            )
            for name, descriptor in handle.fields.items()
            if name != PRIMARY_KEY
        ]

        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(create)
                for statement in alters:
                    await cur.execute(statement)
        # Start write-behind only once the table exists.
        self.save_center.start()
        log.info(
            f"Schema synced for table '{handle.table}'",
            extra={"table": handle.table, "columns": list(handle.fields)},
        )

    async def count(self) -> int:
        query = sql.SQL("SELECT COUNT(*) FROM {table}").format(table=sql.Identifier(self.handle.table))
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query)
                row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def _fetch_row(self, identity: int) -> Optional[Mapping[str, Any]]:
        query = sql.SQL("SELECT * FROM {table} WHERE {key} = %s").format(
            table=sql.Identifier(self.handle.table), key=sql.Identifier(PRIMARY_KEY)
        )
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, (identity,))
                return await cur.fetchone()

    def _adapt(self, name: str, value: Any) -> Any:
        descriptor = self.handle.fields.get(name)
        if descriptor is not None and descriptor.sql_type in _JSON_TYPES and value is not None:
            return Jsonb(value)
        return value

    async def _write_row(self, values: Dict[str, Any]) -> None:
        columns = [name for name in values if name in self.handle.fields]
        updates = [name for name in columns if name != PRIMARY_KEY]
        conflict_action = (
            sql.SQL("DO UPDATE SET {}").format(
                sql.SQL(", ").join(
                    sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(name))
                    for name in updates
                )
            )
            if updates
            else sql.SQL("DO NOTHING")
        )
        query = sql.SQL(
            "INSERT INTO {table} ({columns}) VALUES ({placeholders}) "
            "ON CONFLICT ({key}) {action}"
        ).format(
            table=sql.Identifier(self.handle.table),
            columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
            placeholders=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
            key=sql.Identifier(PRIMARY_KEY),
            action=conflict_action,
        )
        params = [self._adapt(name, values[name]) for name in columns]
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)

    async def close(self) -> None:
        """Flush pending changes, then release the pool if this store opened it."""
        try:
            await super().close()
        finally:
            if self._pool is not None and self._owns_pool:
                await self._pool.close()
                self._pool = None


__all__ = ["PostgresStore"]
