"""
Infrastructure package for the user directory.

Centralizes I/O concerns: the store implementations (in-memory and
PostgreSQL), connection pooling, and the VK API resolver. Keep this layer
focused on I/O and resource management, decoupled from directory logic.
"""

from user_directory.infrastructure.db_factory import open_async_pool
from user_directory.infrastructure.postgres_store import PostgresStore
from user_directory.infrastructure.resolver import (
    IdentityResolver,
    VkIdentityResolver,
    parse_resource,
)
from user_directory.infrastructure.save_center import SaveCenter
from user_directory.infrastructure.store import BaseStore, InMemoryStore, ModelHandle, Store
from user_directory.infrastructure.vk_api import VkApiClient, VkApiConfig

__all__ = [
    "BaseStore",
    "IdentityResolver",
    "InMemoryStore",
    "ModelHandle",
    "PostgresStore",
    "SaveCenter",
    "Store",
    "VkApiClient",
    "VkApiConfig",
    "VkIdentityResolver",
    "open_async_pool",
    "parse_resource",
]
