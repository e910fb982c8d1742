"""Shared console output helpers for the CLI."""

from __future__ import annotations

import sys
from typing import Any

import orjson
from loguru import logger
from rich.console import Console

console = Console()
err_console = Console(stderr=True)


def setup_logging(level: str = "WARNING") -> None:
    """Route loguru to stderr at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def print_error(message: str) -> None:
    err_console.print(f"[red]✗[/red] {message}")


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_info(message: str) -> None:
    console.print(f"[cyan]ℹ[/cyan] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_json(data: Any) -> None:
    """Write JSON to stdout without rich markup processing."""
    sys.stdout.write(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode("utf-8"))
    sys.stdout.write("\n")
    sys.stdout.flush()
