from __future__ import annotations

from typing import Any

import pytest

from user_directory.domain.errors import ResolutionError, VkApiError
from user_directory.domain.models import IdentityKind, ResolvedIdentity
from user_directory.infrastructure.resolver import VkIdentityResolver, parse_resource


class _FakeApiClient:
    def __init__(self, responses: dict[str, Any]) -> None:
        self._responses = responses
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def acall(self, method: str, **params: Any) -> Any:
        self.calls.append((method, params))
        response = self._responses[method]
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        pass


@pytest.mark.parametrize(
    ("text", "kind", "identity"),
    [
        ("123", IdentityKind.INDIVIDUAL, 123),
        ("-123", IdentityKind.COLLECTIVE, -123),
        ("  42 ", IdentityKind.INDIVIDUAL, 42),
        ("[id7|Pavel]", IdentityKind.INDIVIDUAL, 7),
        ("[club5|Some group]", IdentityKind.COLLECTIVE, -5),
        ("[public9|Page]", IdentityKind.COLLECTIVE, -9),
        ("id15", IdentityKind.INDIVIDUAL, 15),
        ("club3", IdentityKind.COLLECTIVE, -3),
        ("@id8", IdentityKind.INDIVIDUAL, 8),
        ("https://vk.com/id1", IdentityKind.INDIVIDUAL, 1),
        ("http://m.vk.com/club22?w=wall", IdentityKind.COLLECTIVE, -22),
        ("vk.ru/event4/", IdentityKind.COLLECTIVE, -4),
        ("https://vk.com/wall-1_10", IdentityKind.OTHER, -1),
    ],
)
def test_parse_resource_decides_locally(text: str, kind: IdentityKind, identity: int) -> None:
    assert parse_resource(text) == ResolvedIdentity(kind=kind, id=identity)


@pytest.mark.parametrize(
    ("text", "screen_name"),
    [
        ("durov", "durov"),
        ("@durov", "durov"),
        ("*team", "team"),
        ("https://vk.com/durov", "durov"),
        ("www.vk.com/apiclub", "apiclub"),
    ],
)
def test_parse_resource_returns_screen_names(text: str, screen_name: str) -> None:
    assert parse_resource(text) == screen_name


@pytest.mark.parametrize("text", ["", "   ", "@", "not a handle!", "https://example.com/id1"])
def test_parse_resource_rejects_garbage(text: str) -> None:
    with pytest.raises(ResolutionError):
        parse_resource(text)


@pytest.mark.asyncio
async def test_resolve_string_skips_api_for_local_ids() -> None:
    client = _FakeApiClient({})
    resolver = VkIdentityResolver(client)  # type: ignore[arg-type]

    resolved = await resolver.resolve_string("[id100|Ann]")

    assert resolved == ResolvedIdentity(kind=IdentityKind.INDIVIDUAL, id=100)
    assert client.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("object_type", "kind", "identity"),
    [
        ("user", IdentityKind.INDIVIDUAL, 1),
        ("group", IdentityKind.COLLECTIVE, -1),
        ("page", IdentityKind.COLLECTIVE, -1),
        ("event", IdentityKind.COLLECTIVE, -1),
        ("application", IdentityKind.OTHER, 1),
    ],
)
async def test_resolve_string_maps_screen_name_types(
    object_type: str, kind: IdentityKind, identity: int
) -> None:
    client = _FakeApiClient({"utils.resolveScreenName": {"type": object_type, "object_id": 1}})
    resolver = VkIdentityResolver(client)  # type: ignore[arg-type]

    resolved = await resolver.resolve_string("https://vk.com/durov")

    assert resolved == ResolvedIdentity(kind=kind, id=identity)
    assert client.calls == [("utils.resolveScreenName", {"screen_name": "durov"})]


@pytest.mark.asyncio
async def test_resolve_string_unknown_screen_name_raises() -> None:
    resolver = VkIdentityResolver(_FakeApiClient({"utils.resolveScreenName": []}))  # type: ignore[arg-type]

    with pytest.raises(ResolutionError, match="screen name not found"):
        await resolver.resolve_string("nobody_here")


@pytest.mark.asyncio
async def test_fetch_individual_profile() -> None:
    client = _FakeApiClient({"users.get": [{"id": 100, "first_name": "Ann", "last_name": "Lee"}]})
    resolver = VkIdentityResolver(client)  # type: ignore[arg-type]

    profile = await resolver.fetch_individual_profile(100)

    assert (profile.display_name, profile.secondary_name) == ("Ann", "Lee")
    assert client.calls == [("users.get", {"user_ids": "100"})]


@pytest.mark.asyncio
async def test_fetch_individual_profile_without_match_raises() -> None:
    resolver = VkIdentityResolver(_FakeApiClient({"users.get": []}))  # type: ignore[arg-type]

    with pytest.raises(ResolutionError):
        await resolver.fetch_individual_profile(100)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        [{"id": 5, "name": "Group5"}],
        {"groups": [{"id": 5, "name": "Group5"}], "profiles": []},
    ],
)
async def test_fetch_collective_profile_handles_both_response_shapes(response: Any) -> None:
    client = _FakeApiClient({"groups.getById": response})
    resolver = VkIdentityResolver(client)  # type: ignore[arg-type]

    profile = await resolver.fetch_collective_profile(5)

    assert profile.display_name == "Group5"
    assert profile.secondary_name == ""
    assert client.calls == [("groups.getById", {"group_id": "5"})]


@pytest.mark.asyncio
async def test_api_errors_surface_as_resolution_errors() -> None:
    error = VkApiError("users.get", 18, "User was deleted or banned")
    resolver = VkIdentityResolver(_FakeApiClient({"users.get": error}))  # type: ignore[arg-type]

    with pytest.raises(ResolutionError) as excinfo:
        await resolver.fetch_individual_profile(1)

    assert excinfo.value is error
