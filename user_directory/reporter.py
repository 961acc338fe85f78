from __future__ import annotations

from typing import Iterable, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from user_directory.domain.record import UserRecord


def build_records_table(records: Iterable[UserRecord], title: str = "Users") -> Table:
    """
    Render records as a rich table: identity, kind, name, profile link, then
    every additional schema field in declaration order.
    """
    records = list(records)
    extra_fields: list[str] = []
    for record in records:
        for name in record.to_dict():
            if name not in ("identity", "display_name", "secondary_name") and name not in extra_fields:
                extra_fields.append(name)

    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column("Identity", justify="right", style="cyan")
    table.add_column("Kind")
    table.add_column("Name", style="bold")
    table.add_column("Link", style="blue")
    for name in extra_fields:
        table.add_column(name)

    for record in records:
        values = record.to_dict()
        table.add_row(
            str(record.identity),
            record.kind.value,
            record.full_name,
            record.url,
            *(str(values.get(name, "")) for name in extra_fields),
        )
    return table


def print_records(records: Iterable[UserRecord], console: Optional[Console] = None) -> None:
    (console or Console()).print(build_records_table(records))


__all__ = ["build_records_table", "print_records"]
