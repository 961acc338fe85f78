"""
Identity resolution against the VK platform.

`parse_resource` recognizes everything that can be decided locally (numeric
ids, mentions, `id123`/`club5` handles, profile links); free-form screen names
are looked up with `utils.resolveScreenName`.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Protocol, Union, runtime_checkable

from user_directory.domain.errors import ResolutionError
from user_directory.domain.models import IdentityKind, Profile, ResolvedIdentity
from user_directory.infrastructure.vk_api import VkApiClient, VkApiConfig
from user_directory.utils.logging import get_logger

log = get_logger(__name__)

_NUMERIC = re.compile(r"^-?\d+$")
_MENTION = re.compile(r"^\[(id|club|public|event)(\d+)\|[^\]]*\]$", re.IGNORECASE)
_PREFIXED = re.compile(r"^(id|club|public|event)(\d+)$", re.IGNORECASE)
_OBJECT = re.compile(
    r"^(wall|photo|video|audio|topic|album|market|doc)(-?\d+)_\d+$", re.IGNORECASE
)
_LINK = re.compile(
    r"^(?:https?://)?(?:www\.|m\.)?vk\.(?:com|ru)/([^/?#\s]+)/?(?:[?#].*)?$", re.IGNORECASE
)
_SCREEN_NAME = re.compile(r"^[A-Za-z0-9_.]+$")

_COLLECTIVE_TYPES = {"group", "page", "event"}


@runtime_checkable
class IdentityResolver(Protocol):
    """Resolution capability consumed by the directory."""

    async def resolve_string(self, text: str) -> ResolvedIdentity:
        ...

    async def fetch_individual_profile(self, identity: int) -> Profile:
        ...

    async def fetch_collective_profile(self, group_id: int) -> Profile:
        ...


def _from_prefix(prefix: str, number: str) -> ResolvedIdentity:
    if prefix.lower() == "id":
        return ResolvedIdentity(kind=IdentityKind.INDIVIDUAL, id=int(number))
    return ResolvedIdentity(kind=IdentityKind.COLLECTIVE, id=-int(number))


def parse_resource(text: str) -> Union[ResolvedIdentity, str]:
    """
    Decide what `text` refers to without calling the API.

    Returns a ResolvedIdentity when the string carries the id itself, or the
    bare screen name that still has to be looked up.

    Raises
    ------
    ResolutionError
        If `text` is empty or cannot name a VK resource.
    """
    value = text.strip()
    if not value:
        raise ResolutionError(text, "empty identity string")

    if _NUMERIC.match(value):
        number = int(value)
        kind = IdentityKind.COLLECTIVE if number < 0 else IdentityKind.INDIVIDUAL
        return ResolvedIdentity(kind=kind, id=number)

    mention = _MENTION.match(value)
    if mention:
        return _from_prefix(*mention.groups())

    if value[0] in "@*":
        value = value[1:]
    else:
        link = _LINK.match(value)
        if link:
            value = link.group(1)

    prefixed = _PREFIXED.match(value)
    if prefixed:
        return _from_prefix(*prefixed.groups())

    obj = _OBJECT.match(value)
    if obj:
        return ResolvedIdentity(kind=IdentityKind.OTHER, id=int(obj.group(2)))

    if value and _SCREEN_NAME.match(value):
        return value
    raise ResolutionError(text, "not a VK id, mention, link or screen name")


class VkIdentityResolver:
    """
    IdentityResolver backed by the VK API.

    Parameters
    ----------
    client : VkApiClient, optional
        API client; built from settings when omitted.
    """

    def __init__(self, client: Optional[VkApiClient] = None) -> None:
        self.client = client or VkApiClient(VkApiConfig.from_settings())

    async def resolve_string(self, text: str) -> ResolvedIdentity:
        target = parse_resource(text)
        if isinstance(target, ResolvedIdentity):
            return target

        response = await self.client.acall("utils.resolveScreenName", screen_name=target)
        # Unknown screen names come back as an empty list.
        if not response or not isinstance(response, dict):
            raise ResolutionError(text, "screen name not found")

        object_type = response.get("type")
        object_id = int(response["object_id"])
        if object_type == "user":
            return ResolvedIdentity(kind=IdentityKind.INDIVIDUAL, id=object_id)
        if object_type in _COLLECTIVE_TYPES:
            return ResolvedIdentity(kind=IdentityKind.COLLECTIVE, id=-object_id)
        return ResolvedIdentity(kind=IdentityKind.OTHER, id=object_id)

    async def fetch_individual_profile(self, identity: int) -> Profile:
        response = await self.client.acall("users.get", user_ids=str(identity))
        if not response:
            raise ResolutionError(identity, "user not found")
        user = response[0]
        return Profile(
            display_name=user.get("first_name", ""),
            secondary_name=user.get("last_name", ""),
        )

    async def fetch_collective_profile(self, group_id: int) -> Profile:
        response = await self.client.acall("groups.getById", group_id=str(group_id))
        groups = _extract_groups(response)
        if not groups:
            raise ResolutionError(-group_id, "group not found")
        return Profile(display_name=groups[0].get("name", ""), secondary_name="")

    def close(self) -> None:
        self.client.close()


def _extract_groups(response: Any) -> list:
    # API 5.194 wrapped the list in {"groups": [...], "profiles": [...]}.
    if isinstance(response, dict):
        return list(response.get("groups") or [])
    return list(response or [])


__all__ = ["IdentityResolver", "VkIdentityResolver", "parse_resource"]
