from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .settings import GuardSettings, load_settings

_STYLES = {
    "SUCCESS": ("✅", typer.colors.GREEN),
    "ERROR": ("❌", typer.colors.RED),
    "WARNING": ("⚠️ ", typer.colors.YELLOW),
    "INFO": ("ℹ️ ", typer.colors.BLUE),
}


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def print_status(status: str, message: str) -> None:
    icon, colour = _STYLES.get(status, ("", None))
    typer.secho(f"{icon} {message}".strip(), fg=colour)


def print_block(title: str, items: list, *, status: str = "INFO") -> None:
    if not items:
        return
    typer.echo("")
    print_status(status, title)
    for item in items:
        typer.echo(f"  - {item}")


def settings_from_option(config: Optional[Path]) -> GuardSettings:
    try:
        return load_settings(config)
    except FileNotFoundError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except (ValueError, TypeError) as exc:
        raise typer.BadParameter(f"Invalid settings file: {exc}") from exc


__all__ = ["configure_logging", "print_block", "print_status", "settings_from_option"]
