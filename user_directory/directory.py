"""
The user directory façade.

Resolves identity strings and numeric identities to user records, creating
records on first sight and caching them for the lifetime of the process.

Usage:
    from user_directory import FieldDescriptor, UserDirectory
    from user_directory.infrastructure import PostgresStore, VkIdentityResolver

    directory = UserDirectory(PostgresStore(), VkIdentityResolver())
    directory.declare_field("balance", FieldDescriptor(sql_type="INTEGER", default=0))
    directory.create_group("wallet").add_method("deposit", deposit).finalize()

    await directory.start()
    user = await directory.resolve_or_create("https://vk.com/durov")
    user.wallet.deposit(10)

Every extension (fields, default methods, method groups) must be declared
before `start()` so that the table and all records share one shape.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, Dict, Optional, Set, Type, Union

from user_directory.config import Settings, get_settings
from user_directory.core.cache import RecordCache
from user_directory.core.events import EventEmitter, Listener
from user_directory.core.methods import Behavior, GroupBuilder, MethodGroupRegistry
from user_directory.core.schema import FieldSchema
from user_directory.domain.errors import DirectoryNotStartedError, ResolutionError
from user_directory.domain.models import FieldDescriptor, IdentityKind, Profile
from user_directory.domain.record import UserRecord
from user_directory.infrastructure.resolver import IdentityResolver
from user_directory.infrastructure.store import ModelHandle, Store
from user_directory.utils.logging import get_logger

log = get_logger(__name__)

CREATE_EVENT = "create"


def _as_method(fn: Behavior) -> Callable[..., Any]:
    @functools.wraps(fn)
    def method(record: UserRecord, *args: Any, **kwargs: Any) -> Any:
        return fn(record, *args, **kwargs)

    return method


class UserDirectory:
    """
    Create-or-get pipeline over a store and an identity resolver.

    Parameters
    ----------
    store : Store
        Persistence collaborator. Not owned, but closed by `close()`.
    resolver : IdentityResolver
        Remote lookup collaborator for identity strings and profiles.
    settings : Settings, optional
        Defaults to the cached process settings.
    dedupe_inflight_creations : bool, optional
        Whether concurrent `get_or_create` calls for one identity share a
        single lookup. Defaults to `settings.dedupe_inflight_creations`.
    """

    def __init__(
        self,
        store: Store,
        resolver: IdentityResolver,
        settings: Optional[Settings] = None,
        dedupe_inflight_creations: Optional[bool] = None,
    ) -> None:
        settings = settings or get_settings()
        self.store = store
        self.resolver = resolver
        self.schema = FieldSchema()
        self.method_groups = MethodGroupRegistry()
        self.cache = RecordCache()
        self.events = EventEmitter()
        # Per-directory subclass: default methods never leak between directories.
        self.record_cls: Type[UserRecord] = type("User", (UserRecord,), {"__module__": __name__})
        self.dedupe_inflight_creations = (
            settings.dedupe_inflight_creations
            if dedupe_inflight_creations is None
            else dedupe_inflight_creations
        )
        self._default_methods: Dict[str, Behavior] = {}
        self._group_names: Set[str] = set()
        self._inflight: Dict[int, asyncio.Task] = {}
        self._handle: Optional[ModelHandle] = None

    async def __aenter__(self) -> "UserDirectory":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Lifecycle

    @property
    def started(self) -> bool:
        return self._handle is not None

    async def start(self) -> ModelHandle:
        """Materialize the record schema in the store. Idempotent."""
        if self._handle is not None:
            return self._handle
        handle = self.store.define_schema(self.schema.fields, self.record_cls)
        await self.store.ensure_schema_synced(handle)
        self.schema.freeze()
        self._handle = handle
        log.info(
            "User directory started",
            extra={
                "table": handle.table,
                "fields": list(handle.fields),
                "method_groups": [group.name for group in self.method_groups.groups],
                "default_methods": list(self._default_methods),
            },
        )
        return handle

    async def flush(self) -> int:
        return await self.store.flush()

    async def close(self) -> None:
        """Wait for event delivery, then flush and close the store."""
        await self.events.wait_idle()
        await self.store.close()

    def _require_started(self) -> None:
        if self._handle is None:
            raise DirectoryNotStartedError()

    # Lookups

    async def get(self, identity: int) -> Optional[UserRecord]:
        """
        Return the record for `identity` from the cache or the store.

        Never creates a record; returns None when the store has none.
        """
        self._require_started()
        cached = self.cache.get(identity)
        if cached is not None:
            return cached

        record = await self.store.find_by_identity(identity)
        if record is None:
            return None
        # Another task may have cached this identity while the store was queried.
        cached = self.cache.get(identity)
        if cached is not None:
            return cached

        self.method_groups.apply_to(record)
        self.cache.put(identity, record)
        log.debug("Loaded user from store", extra={"identity": identity})
        return record

    async def get_or_create(self, identity: int) -> UserRecord:
        """Return the record for `identity`, creating it if nothing is stored."""
        self._require_started()
        cached = self.cache.get(identity)
        if cached is not None:
            return cached
        if not self.dedupe_inflight_creations:
            return await self._get_or_create(identity)

        task = self._inflight.get(identity)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._get_or_create(identity))
            self._inflight[identity] = task
            task.add_done_callback(functools.partial(self._forget_inflight, identity))
        return await asyncio.shield(task)

    async def _get_or_create(self, identity: int) -> UserRecord:
        record = await self.get(identity)
        if record is not None:
            return record
        return await self.create(identity)

    def _forget_inflight(self, identity: int, task: asyncio.Task) -> None:
        if self._inflight.get(identity) is task:
            del self._inflight[identity]

    async def fetch_profile(self, identity: int) -> Profile:
        """
        Fetch descriptive data for `identity` from the resolver.

        Negative identities are collectives: the group is looked up by its
        positive id and gets an empty secondary name.

        Raises
        ------
        ResolutionError
            If the lookup fails or finds nothing.
        """
        try:
            if identity < 0:
                group = await self.resolver.fetch_collective_profile(-identity)
                return Profile(display_name=group.display_name, secondary_name="")
            return await self.resolver.fetch_individual_profile(identity)
        except ResolutionError:
            raise
        except Exception as exc:
            raise ResolutionError(identity, str(exc) or type(exc).__name__) from exc

    async def create(self, identity: int) -> UserRecord:
        """
        Create a record for `identity` from freshly fetched profile data.

        The record is cached and announced through the `create` event. It is
        written by the store on its next flush, not here. An existing cache
        entry for the identity is replaced.

        The record starts from profile data and field defaults. Calling this
        for an identity that is already stored overwrites the stored row on the
        next flush; use `get_or_create` to keep persisted field values.
        """
        self._require_started()
        profile = await self.fetch_profile(identity)
        record = self.store.materialize(
            {
                "identity": identity,
                "display_name": profile.display_name,
                "secondary_name": profile.secondary_name,
            }
        )
        self.method_groups.apply_to(record)
        self.cache.put(identity, record)
        self.events.emit(CREATE_EVENT, record)
        log.info(
            f"New user: {record.full_name} ({record.url})",
            extra={"identity": identity},
        )
        return record

    async def resolve_identity(self, text: str) -> Optional[int]:
        """
        Resolve an identity string (link, mention, id) to an individual's id.

        Returns None when the string names a group or any other non-user
        object; string resolution is scoped to individuals.
        """
        try:
            resolved = await self.resolver.resolve_string(text)
        except ResolutionError:
            raise
        except Exception as exc:
            raise ResolutionError(text, str(exc) or type(exc).__name__) from exc
        if resolved.kind != IdentityKind.INDIVIDUAL:
            return None
        return resolved.id

    async def resolve(self, text: str) -> Optional[UserRecord]:
        identity = await self.resolve_identity(text)
        if identity is None:
            return None
        return await self.get(identity)

    async def resolve_or_create(self, text: str) -> Optional[UserRecord]:
        """
        Resolve an identity string and return its record, creating it if needed.

        Returns None, without creating anything, when the string names a group
        or any other non-user object.
        """
        identity = await self.resolve_identity(text)
        if identity is None:
            return None
        return await self.get_or_create(identity)

    async def count(self) -> int:
        """Total number of persisted records."""
        self._require_started()
        return await self.store.count()

    @property
    def records_cached(self) -> int:
        return len(self.cache)

    # Extension points

    def _check_free_name(self, name: str, what: str) -> None:
        if not name.isidentifier() or name.startswith("_") or hasattr(UserRecord, name):
            raise ValueError(f"'{name}' cannot be used as a record {what} name")

    def declare_method(self, name: str, fn: Behavior) -> None:
        """
        Add a default method available on every record as `record.<name>(...)`.

        `fn` receives the record as its first argument.
        """
        self._check_free_name(name, "method")
        if name in self.schema:
            raise ValueError(f"'{name}' is already a record field")
        if name in self._group_names:
            raise ValueError(f"'{name}' is already a method group")
        if name in self._default_methods:
            log.warning(f"Default method '{name}' redeclared", extra={"method": name})
        self._default_methods[name] = fn
        setattr(self.record_cls, name, _as_method(fn))

    def declare_field(self, name: str, descriptor: Union[FieldDescriptor, str]) -> None:
        """
        Add a persisted field to the record schema.

        `descriptor` may be a FieldDescriptor or a bare column type such as
        "INTEGER".

        Raises
        ------
        DuplicateFieldError
            If the field is already declared.
        """
        if name not in self.schema:
            self._check_free_name(name, "field")
            if name in self._default_methods:
                raise ValueError(f"'{name}' is already a default record method")
            if name in self._group_names:
                raise ValueError(f"'{name}' is already a method group")
        if isinstance(descriptor, str):
            descriptor = FieldDescriptor(sql_type=descriptor)
        self.schema.declare(name, descriptor)
        if self.schema.frozen:
            log.warning(
                f"Field '{name}' declared after the schema was synced; "
                "it is not part of the stored table",
                extra={"field": name},
            )

    def create_group(self, name: str) -> GroupBuilder:
        """
        Start building a method group exposed on records as `record.<name>`.

        Raises
        ------
        ValueError
            If `name` is taken by a record attribute, a field or a default
            method. Reusing another group's name is allowed; the later group
            wins.
        """
        self._check_free_name(name, "method group")
        if name in self.schema:
            raise ValueError(f"'{name}' is already a record field")
        if name in self._default_methods:
            raise ValueError(f"'{name}' is already a default record method")
        self._group_names.add(name)
        return self.method_groups.create_group(name)

    def apply_method_groups(self, record: UserRecord) -> UserRecord:
        return self.method_groups.apply_to(record)

    # Events

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        return self.events.on(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        self.events.off(event, listener)


__all__ = ["CREATE_EVENT", "UserDirectory"]
