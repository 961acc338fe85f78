"""
Core registries of the user directory.

The field schema, method groups, record cache and event channel. None of
these perform I/O; the directory wires them to the store and the resolver.
"""

from user_directory.core.cache import RecordCache
from user_directory.core.events import EventEmitter
from user_directory.core.methods import GroupBuilder, MethodGroup, MethodGroupRegistry
from user_directory.core.schema import BASE_FIELDS, FieldSchema

__all__ = [
    "BASE_FIELDS",
    "EventEmitter",
    "FieldSchema",
    "GroupBuilder",
    "MethodGroup",
    "MethodGroupRegistry",
    "RecordCache",
]
