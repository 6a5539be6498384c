"""Factory for creating memory backends."""

from typing import Any

from .base import MemoryBackend


def create_memory_backend(
    backend: str = "memory",
    **kwargs: Any
) -> MemoryBackend:
    """Create a key/value memory backend.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration
            For sqlite:
                - path: str | Path (database file)

    Returns:
        MemoryBackend instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryBackend
        return InMemoryBackend(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteBackend
        return SQLiteBackend(**kwargs)

    raise ValueError(
        f"Unsupported memory backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
