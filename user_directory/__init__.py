"""
User Directory - identity resolution and extensible user-record registry.

Maps external identity strings (profile links, numeric ids, mentions) to
persisted user records, creating records on first sight and caching them for
the lifetime of the process. Feature modules extend every record with:

- Additional persisted fields (`declare_field`)
- Default methods callable on every record (`declare_method`)
- Named method groups composed onto each record (`create_group`)

and observe new records through the `create` event.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from user_directory.config import Settings, build_dsn, get_settings
from user_directory.core import (
    EventEmitter,
    FieldSchema,
    GroupBuilder,
    MethodGroup,
    MethodGroupRegistry,
    RecordCache,
)
from user_directory.directory import CREATE_EVENT, UserDirectory
from user_directory.domain import (
    BoundMethodGroup,
    ClosedGroupError,
    DirectoryNotStartedError,
    DuplicateFieldError,
    FieldDescriptor,
    IdentityKind,
    Profile,
    ResolutionError,
    ResolvedIdentity,
    UserDirectoryError,
    UserRecord,
    VkApiError,
)
from user_directory.infrastructure import (
    IdentityResolver,
    InMemoryStore,
    PostgresStore,
    Store,
    VkIdentityResolver,
)
from user_directory.stats import users_total_stats
from user_directory.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "build_dsn",
    "get_settings",
    # Directory
    "CREATE_EVENT",
    "UserDirectory",
    # Registries
    "EventEmitter",
    "FieldSchema",
    "GroupBuilder",
    "MethodGroup",
    "MethodGroupRegistry",
    "RecordCache",
    # Domain
    "BoundMethodGroup",
    "FieldDescriptor",
    "IdentityKind",
    "Profile",
    "ResolvedIdentity",
    "UserRecord",
    # Errors
    "ClosedGroupError",
    "DirectoryNotStartedError",
    "DuplicateFieldError",
    "ResolutionError",
    "UserDirectoryError",
    "VkApiError",
    # Collaborators
    "IdentityResolver",
    "InMemoryStore",
    "PostgresStore",
    "Store",
    "VkIdentityResolver",
    # Statistics
    "users_total_stats",
    # Logging
    "configure_logging",
    "get_logger",
]
