"""
Domain package for the user directory.

Exports the record type, value objects and the error taxonomy. Keep this
package focused on data definitions; it performs no I/O.
"""

from user_directory.domain.errors import (
    ClosedGroupError,
    DirectoryNotStartedError,
    DuplicateFieldError,
    ResolutionError,
    UserDirectoryError,
    VkApiError,
)
from user_directory.domain.models import (
    FieldDescriptor,
    IdentityKind,
    Profile,
    ResolvedIdentity,
)
from user_directory.domain.record import BoundMethodGroup, UserRecord

__all__ = [
    "BoundMethodGroup",
    "ClosedGroupError",
    "DirectoryNotStartedError",
    "DuplicateFieldError",
    "FieldDescriptor",
    "IdentityKind",
    "Profile",
    "ResolutionError",
    "ResolvedIdentity",
    "UserDirectoryError",
    "UserRecord",
    "VkApiError",
]
