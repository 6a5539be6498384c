"""Provider factory functions for CLI.

Centralizes creation of the memory backend and the state persistence from
environment variables and command-line overrides. Hides configuration
details from command implementations.
"""

import os

import typer
from rich.console import Console

from ..memory import MemoryBackend, create_memory_backend
from ..session import StatePersistence
from ..settings import default_api_key

DEFAULT_MEMORY_BACKEND = "sqlite"
DEFAULT_MEMORY_PATH = "~/.streamchat/streamchat.db"

# Default console for output
_console = Console()


def resolve_memory_backend(backend: str | None = None) -> str:
    """Backend name from the option, else STREAMCHAT_MEMORY_BACKEND, else sqlite."""
    return (backend or os.getenv("STREAMCHAT_MEMORY_BACKEND") or DEFAULT_MEMORY_BACKEND).lower()


def get_memory_backend(
    backend: str | None = None,
    path: str | None = None,
    console: Console | None = None,
) -> MemoryBackend:
    """Create the key/value backend holding conversations and settings.

    Args:
        backend: "memory" or "sqlite"; overrides the environment
        path: SQLite file; overrides the environment
        console: Optional Rich console for output

    Returns:
        MemoryBackend instance

    Raises:
        SystemExit: If the backend name is unknown

    Environment variables:
        STREAMCHAT_MEMORY_BACKEND: memory or sqlite (default: sqlite)
        STREAMCHAT_MEMORY_PATH: SQLite file (default: ~/.streamchat/streamchat.db)
    """
    con = console or _console
    name = resolve_memory_backend(backend)

    if name == "sqlite":
        db_path = path or os.getenv("STREAMCHAT_MEMORY_PATH") or DEFAULT_MEMORY_PATH
        return create_memory_backend("sqlite", path=db_path)

    try:
        return create_memory_backend(name)
    except ValueError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def get_persistence(
    backend: str | None = None,
    path: str | None = None,
    console: Console | None = None,
) -> StatePersistence:
    """Create the state persistence over the configured backend.

    Environment variables:
        STREAMCHAT_API_KEY: Optional default API key when none is saved
    """
    return StatePersistence(
        get_memory_backend(backend, path, console),
        default_api_key=default_api_key(),
    )
