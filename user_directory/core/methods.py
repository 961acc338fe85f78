"""
Method groups: named bundles of behavior composed onto every user record.

A feature module builds a group once at startup:

    directory.create_group("balance") \\
        .add_method("add", add_balance) \\
        .add_method("get", get_balance) \\
        .finalize()

and every record composed afterwards exposes `record.balance.add(10)`, which
calls `add_balance(record, 10)`.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Tuple

from user_directory.domain.errors import ClosedGroupError
from user_directory.domain.record import BoundMethodGroup, UserRecord
from user_directory.utils.logging import get_logger

log = get_logger(__name__)

Behavior = Callable[..., Any]


@dataclass(eq=False)
class MethodGroup:
    """A finalized group. Equality and hashing are by object identity."""

    name: str
    methods: Dict[str, Behavior] = field(default_factory=dict)

    def bind(self, record: UserRecord) -> BoundMethodGroup:
        bound = {
            method_name: functools.partial(fn, record)
            for method_name, fn in self.methods.items()
        }
        return BoundMethodGroup(self.name, bound)


class GroupBuilder:
    """Collects methods for one group until `finalize()` publishes it."""

    def __init__(self, registry: "MethodGroupRegistry", name: str) -> None:
        self._registry = registry
        self._group = MethodGroup(name=name)
        self._closed = False

    @property
    def name(self) -> str:
        return self._group.name

    @property
    def closed(self) -> bool:
        return self._closed

    def add_method(self, name: str, fn: Behavior) -> "GroupBuilder":
        if self._closed:
            raise ClosedGroupError(self._group.name, name)
        if not callable(fn):
            raise TypeError(f"Method '{name}' of group '{self._group.name}' is not callable")
        self._group.methods[name] = fn
        return self

    def finalize(self) -> MethodGroup:
        if self._closed:
            log.warning(
                f"Method group '{self.name}' finalized more than once",
                extra={"group": self.name},
            )
            return self._group
        self._closed = True
        self._registry.register(self._group)
        return self._group


class MethodGroupRegistry:
    """
    The set of finalized groups, kept in registration order.

    Groups are unique by identity, not by name. When two groups share a name,
    the one registered later wins the namespace on composed records.
    """

    def __init__(self) -> None:
        self._groups: Dict[int, MethodGroup] = {}

    def create_group(self, name: str) -> GroupBuilder:
        return GroupBuilder(self, name)

    def register(self, group: MethodGroup) -> None:
        if id(group) in self._groups:
            return
        if any(existing.name == group.name for existing in self._groups.values()):
            log.warning(
                f"Method group name '{group.name}' registered twice; the later group "
                "replaces the earlier namespace on records",
                extra={"group": group.name},
            )
        self._groups[id(group)] = group

    @property
    def groups(self) -> Tuple[MethodGroup, ...]:
        return tuple(self._groups.values())

    def apply_to(self, record: UserRecord) -> UserRecord:
        """
        Install every registered group on `record` as a bound namespace.

        Mutates and returns the record.
        """
        for group in self._groups.values():
            record.attach_group(group.name, group.bind(record))
        return record

    def __len__(self) -> int:
        return len(self._groups)


__all__ = ["Behavior", "GroupBuilder", "MethodGroup", "MethodGroupRegistry"]
