from __future__ import annotations

import asyncio
import json
import sys
from typing import Optional

import typer

from user_directory.config import get_settings
from user_directory.directory import UserDirectory
from user_directory.domain.errors import UserDirectoryError
from user_directory.infrastructure.postgres_store import PostgresStore
from user_directory.infrastructure.resolver import VkIdentityResolver
from user_directory.reporter import print_records
from user_directory.stats import users_total_stats
from user_directory.utils.logging import configure_logging

app = typer.Typer(help="User directory CLI.")


def _build_directory() -> UserDirectory:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return UserDirectory(PostgresStore(settings=settings), VkIdentityResolver(), settings=settings)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} "
        f"table={settings.users_table} | "
        f"VK API v{settings.vk_api_version} token={'set' if settings.vk_api_token else 'missing'} | "
        f"dedupe={settings.dedupe_inflight_creations} autosave={settings.autosave_interval_seconds}s"
    )


@app.command()
def resolve(
    target: str = typer.Argument(..., help="Link, mention, screen name or numeric id."),
    create: bool = typer.Option(
        False,
        "--create",
        "-c",
        help="Create the user when it is not stored yet.",
    ),
) -> None:
    """
    Resolve an identity string to a stored user and print it.
    """

    async def _run() -> Optional[object]:
        async with _build_directory() as directory:
            if create:
                return await directory.resolve_or_create(target)
            return await directory.resolve(target)

    record = asyncio.run(_run())
    if record is None:
        typer.echo(f"No user found for '{target}'.", err=True)
        raise typer.Exit(code=1)
    print_records([record])


@app.command()
def stats() -> None:
    """
    Print dashboard statistics as JSON.
    """

    async def _run() -> dict:
        async with _build_directory() as directory:
            return await users_total_stats(directory)

    typer.echo(json.dumps(asyncio.run(_run()), indent=2))


@app.command("sync-schema")
def sync_schema() -> None:
    """
    Create the users table or add missing columns.
    """

    async def _run() -> None:
        async with _build_directory() as directory:
            handle = await directory.start()
            typer.echo(f"Table '{handle.table}' is in sync with {len(handle.fields)} column(s).")

    asyncio.run(_run())


def main() -> None:
    try:
        app()
    except UserDirectoryError as exc:
        typer.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
