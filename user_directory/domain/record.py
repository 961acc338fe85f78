"""
The user record: one external identity known to the directory.

A record keeps its persisted fields in a value map so that fields declared by
other modules at runtime behave like ordinary attributes. Assignments to a
field are tracked and reported to the owning store, which decides when the
change is written.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, FrozenSet, Iterator, Mapping, Optional

from user_directory.domain.models import IdentityKind

PROFILE_URL = "https://vk.com"

ChangeListener = Callable[["UserRecord"], None]


class BoundMethodGroup(Mapping[str, Callable[..., Any]]):
    """
    Read-only namespace of group methods bound to one record.

    Usable both as a mapping (`record.stats["add"]`) and as an attribute
    namespace (`record.stats.add`).
    """

    def __init__(self, name: str, methods: Dict[str, Callable[..., Any]]) -> None:
        self.__dict__["_name"] = name
        self.__dict__["_methods"] = dict(methods)

    @property
    def name(self) -> str:
        return self.__dict__["_name"]

    def __getattr__(self, item: str) -> Callable[..., Any]:
        methods = self.__dict__.get("_methods", {})
        try:
            return methods[item]
        except KeyError:
            raise AttributeError(f"Method group '{self.name}' has no method '{item}'") from None

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError(f"Method group '{self.name}' is read-only")

    def __getitem__(self, key: str) -> Callable[..., Any]:
        return self.__dict__["_methods"][key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.__dict__["_methods"])

    def __len__(self) -> int:
        return len(self.__dict__["_methods"])

    def __repr__(self) -> str:
        return f"<BoundMethodGroup {self.name}: {', '.join(self)}>"


class UserRecord:
    """
    A persisted user or group.

    `identity` is immutable; negative values denote a collective (group),
    positive values an individual. Every other schema field is readable and
    writable as an attribute.
    """

    def __init__(
        self,
        identity: int,
        display_name: str = "",
        secondary_name: str = "",
        **fields: Any,
    ) -> None:
        values: Dict[str, Any] = {
            "identity": int(identity),
            "display_name": display_name,
            "secondary_name": secondary_name,
        }
        values.update(fields)
        object.__setattr__(self, "_values", values)
        object.__setattr__(self, "_groups", {})
        object.__setattr__(self, "_changed", set())
        object.__setattr__(self, "_on_change", None)
        object.__setattr__(self, "_persisted", False)
        object.__setattr__(self, "_version", 0)

    def __getattr__(self, name: str) -> Any:
        state = self.__dict__
        values = state.get("_values", {})
        if name in values:
            return values[name]
        groups = state.get("_groups", {})
        if name in groups:
            return groups[name]
        raise AttributeError(f"'{type(self).__name__}' record has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "identity":
            raise AttributeError("Record identity is immutable")
        values = self.__dict__["_values"]
        if name not in values:
            object.__setattr__(self, name, value)
            return
        if values[name] == value:
            return
        values[name] = value
        self._changed.add(name)
        object.__setattr__(self, "_version", self._version + 1)
        if self._on_change is not None:
            self._on_change(self)

    def __getitem__(self, name: str) -> Any:
        try:
            return getattr(self, name)
        except AttributeError:
            raise KeyError(name) from None

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} identity={self.identity} "
            f"name={self.full_name!r}>"
        )

    @property
    def is_collective(self) -> bool:
        return self.identity < 0

    @property
    def kind(self) -> IdentityKind:
        return IdentityKind.COLLECTIVE if self.is_collective else IdentityKind.INDIVIDUAL

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.display_name, self.secondary_name) if part)

    @property
    def url(self) -> str:
        if self.is_collective:
            return f"{PROFILE_URL}/club{-self.identity}"
        return f"{PROFILE_URL}/id{self.identity}"

    @property
    def changes(self) -> FrozenSet[str]:
        """Field names assigned since the record was last persisted."""
        return frozenset(self._changed)

    @property
    def version(self) -> int:
        """Number of field changes since the record was constructed."""
        return self._version

    @property
    def persisted(self) -> bool:
        return self._persisted

    @property
    def group_names(self) -> FrozenSet[str]:
        return frozenset(self._groups)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def attach_group(self, name: str, group: BoundMethodGroup) -> None:
        """Install a method-group namespace; replaces one with the same name."""
        self._groups[name] = group

    def track_changes(self, listener: Optional[ChangeListener]) -> None:
        object.__setattr__(self, "_on_change", listener)

    def mark_persisted(self) -> None:
        self._changed.clear()
        object.__setattr__(self, "_persisted", True)


__all__ = ["BoundMethodGroup", "ChangeListener", "UserRecord"]
