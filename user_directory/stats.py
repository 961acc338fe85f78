"""
Statistics sources for an administration dashboard.

The dashboard polls named sources; each returns a chart payload with one or
more series.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from user_directory.directory import UserDirectory

USERS_TOTAL_SOURCE = "users:total"

StatsSource = Callable[[], Awaitable[Dict[str, Any]]]


async def users_total_stats(directory: UserDirectory) -> Dict[str, Any]:
    """Number of accounts persisted by the directory."""
    return {
        "series": [
            {
                "name": "Accounts",
                "data": await directory.count(),
            }
        ]
    }


def stats_sources(directory: UserDirectory) -> Dict[str, StatsSource]:
    """Sources to register with a dashboard, keyed by source name."""

    async def users_total() -> Dict[str, Any]:
        return await users_total_stats(directory)

    return {USERS_TOTAL_SOURCE: users_total}


__all__ = ["USERS_TOTAL_SOURCE", "StatsSource", "stats_sources", "users_total_stats"]
