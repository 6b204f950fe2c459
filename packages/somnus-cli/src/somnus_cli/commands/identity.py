"""Identity map management: link channel aliases to one canonical user."""
from __future__ import annotations

from pathlib import Path

import typer
from somnus_core.types import IdentityMap
from somnus_sleep.identity import (
    add_alias,
    build_alias_lookup,
    load_identity_map,
    resolve_canonical_user_id,
    save_identity_map,
)

from somnus_cli.commands._common import console, load_config

identity_app = typer.Typer(no_args_is_help=True)


def _map_path() -> Path:
    config = load_config()
    path = config.identity_map_path
    if path is None:
        console.print(
            "[yellow]No identity map configured.[/yellow] "
            "Set [bold]map_path[/bold] under \\[identity] in somnus.toml."
        )
        raise typer.Exit(1)
    return path


@identity_app.command("link")
def identity_link(
    canonical: str = typer.Argument(..., help="Canonical user ID"),
    alias: str = typer.Argument(..., help="Channel ID, e.g. telegram:12345"),
    label: str | None = typer.Option(
        None, "--label", help="Display name for a new canonical user"
    ),
) -> None:
    """Link a channel-specific ID to a canonical user."""
    path = _map_path()
    identity_map = load_identity_map(path) or IdentityMap()

    result = add_alias(identity_map, canonical, alias, label)
    if not result.added:
        console.print(f"[dim]{alias} is already linked to {canonical}.[/dim]")
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    save_identity_map(path, identity_map)
    console.print(
        f"[green]Linked[/green] {alias} -> [bold]{canonical}[/bold] "
        f"({len(result.entry.aliases)} alias(es))"
    )


@identity_app.command("resolve")
def identity_resolve(
    raw_id: str = typer.Argument(..., help="Channel ID to resolve"),
) -> None:
    """Show the canonical user a channel ID resolves to."""
    lookup = build_alias_lookup(load_identity_map(_map_path()))
    console.print(resolve_canonical_user_id(raw_id, lookup))
