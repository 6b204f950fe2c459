from __future__ import annotations

import typer
from rich.console import Console
from somnus_core.config import SomnusConfig
from somnus_core.errors import ConfigError

console = Console()


def load_config() -> SomnusConfig:
    """Load layered configuration for the current directory, or exit."""
    try:
        return SomnusConfig.load()
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc
