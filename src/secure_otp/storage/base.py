"""Key-value storage — abstract interface plus an in-memory implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Asynchronous string key → string value persistence.

    Any method may raise; callers in this package treat a failure as
    non-fatal and keep their in-memory state.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` if *key* is absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Create or overwrite *key*."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete *key*; absent keys are ignored."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store.  Contents die with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of the current contents (useful in tests)."""
        return dict(self._data)
