"""
Error taxonomy for the user directory.

Every error raised by this package derives from UserDirectoryError. Store
failures are not wrapped: they propagate from the persistence driver as-is.
"""

from __future__ import annotations

from typing import Optional


class UserDirectoryError(Exception):
    """Base class for user directory errors."""


class DuplicateFieldError(UserDirectoryError):
    """A field name was declared twice on the record schema."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Field '{name}' is already declared")
        self.name = name


class ClosedGroupError(UserDirectoryError):
    """A method was added to a group that has already been finalized."""

    def __init__(self, group: str, method: str) -> None:
        super().__init__(f"Cannot add method '{method}': group '{group}' is finalized")
        self.group = group
        self.method = method


class ResolutionError(UserDirectoryError):
    """An identity string or profile could not be resolved."""

    def __init__(self, target: object, reason: Optional[str] = None) -> None:
        message = f"Could not resolve {target!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.target = target
        self.reason = reason


class VkApiError(ResolutionError):
    """The VK API answered with an error payload."""

    def __init__(self, method: str, code: int, message: str) -> None:
        super().__init__(method, f"VK API error {code}: {message}")
        self.method = method
        self.code = code
        self.api_message = message


class DirectoryNotStartedError(UserDirectoryError):
    """A lookup was attempted before the record schema was materialized."""

    def __init__(self) -> None:
        super().__init__("UserDirectory.start() must complete before records are loaded")


__all__ = [
    "ClosedGroupError",
    "DirectoryNotStartedError",
    "DuplicateFieldError",
    "ResolutionError",
    "UserDirectoryError",
    "VkApiError",
]
