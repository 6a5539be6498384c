"""Abstract base class for durable key/value backends.

This module defines the interface for where chat state is persisted.
The abstraction hides:
- Storage format (SQLite table, in-process dict)
- Persistence mechanism (file, in-memory)
- Connection management

Values are opaque JSON strings; keys are short names such as
`conversations` and `modelSettings`.
"""

from abc import ABC, abstractmethod


class MemoryBackend(ABC):
    """Abstract durable key/value storage.

    Provides a unified interface for reading and writing serialized
    chat state across different storage backends.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the memory backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the memory backend gracefully."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read the value stored under `key`, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write `value` under `key`, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove `key` if present."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
