from __future__ import annotations

import logging

import pytest

from user_directory.core.methods import MethodGroupRegistry
from user_directory.domain.errors import ClosedGroupError
from user_directory.domain.record import UserRecord

PING_ARG = 7


def _ping(record: UserRecord, value: int) -> tuple[int, int]:
    return record.identity, value


def test_finalized_group_is_reachable_on_composed_record() -> None:
    registry = MethodGroupRegistry()
    registry.create_group("g").add_method("ping", _ping).finalize()
    record = registry.apply_to(UserRecord(100, "Ann", "Lee"))

    assert record.g.ping(PING_ARG) == (100, PING_ARG)
    assert record.g["ping"](PING_ARG) == (100, PING_ARG)
    assert record["g"] is record.g
    assert "g" in record.group_names


def test_behavior_receives_record_as_first_argument() -> None:
    seen: list[object] = []
    registry = MethodGroupRegistry()
    registry.create_group("audit").add_method(
        "touch", lambda record, *args, **kwargs: seen.append((record, args, kwargs))
    ).finalize()
    record = registry.apply_to(UserRecord(1))

    record.audit.touch(1, 2, flag=True)

    assert seen == [(record, (1, 2), {"flag": True})]


def test_namespace_is_bound_per_record() -> None:
    registry = MethodGroupRegistry()
    registry.create_group("g").add_method("who", lambda record: record.identity).finalize()
    first = registry.apply_to(UserRecord(1))
    second = registry.apply_to(UserRecord(2))

    assert first.g.who() == 1
    assert second.g.who() == 2


def test_add_method_after_finalize_raises() -> None:
    builder = MethodGroupRegistry().create_group("g").add_method("ping", _ping)
    builder.finalize()

    with pytest.raises(ClosedGroupError) as excinfo:
        builder.add_method("pong", _ping)

    assert excinfo.value.group == "g"
    assert excinfo.value.method == "pong"


def test_groups_finalized_later_are_not_on_earlier_records() -> None:
    registry = MethodGroupRegistry()
    early = registry.apply_to(UserRecord(1))
    registry.create_group("late").add_method("ping", _ping).finalize()

    with pytest.raises(AttributeError):
        early.late  # noqa: B018


def test_finalize_twice_registers_group_once(caplog: pytest.LogCaptureFixture) -> None:
    registry = MethodGroupRegistry()
    builder = registry.create_group("g").add_method("ping", _ping)
    first = builder.finalize()

    with caplog.at_level(logging.WARNING):
        second = builder.finalize()

    assert first is second
    assert len(registry) == 1
    assert "finalized more than once" in caplog.text


def test_same_name_groups_coexist_and_later_wins(caplog: pytest.LogCaptureFixture) -> None:
    registry = MethodGroupRegistry()
    registry.create_group("g").add_method("v", lambda record: "first").finalize()

    with caplog.at_level(logging.WARNING):
        registry.create_group("g").add_method("v", lambda record: "second").finalize()

    record = registry.apply_to(UserRecord(1))

    assert len(registry) == 2
    assert record.g.v() == "second"
    assert "registered twice" in caplog.text


def test_bound_group_is_read_only_and_reports_missing_methods() -> None:
    registry = MethodGroupRegistry()
    registry.create_group("g").add_method("ping", _ping).finalize()
    record = registry.apply_to(UserRecord(1))

    with pytest.raises(AttributeError):
        record.g.ping = _ping
    with pytest.raises(AttributeError, match="no method 'pong'"):
        record.g.pong  # noqa: B018
    assert list(record.g) == ["ping"]


def test_add_method_rejects_non_callables() -> None:
    with pytest.raises(TypeError):
        MethodGroupRegistry().create_group("g").add_method("x", 42)  # type: ignore[arg-type]
