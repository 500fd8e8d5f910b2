"""Metadata table: user id -> display attributes for hydrating ranked ids.

Pure key-value semantics, no ordering. A missing entry for a cached id is
tolerated by readers, which substitute a placeholder.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import threading


@dataclass(frozen=True)
class UserMetadata:
    user_name: str
    image_url: str = ""


class MetadataTable(ABC):
    backend = "abstract"

    @abstractmethod
    async def set(self, user_id: int, meta: UserMetadata) -> None: ...

    @abstractmethod
    async def set_many(self, items: Iterable[tuple[int, UserMetadata]]) -> None: ...

    @abstractmethod
    async def get(self, user_id: int) -> UserMetadata | None: ...

    @abstractmethod
    async def multi_get(self, user_ids: Sequence[int]) -> list[UserMetadata | None]:
        """Values aligned positionally with `user_ids`; None where absent."""

    @abstractmethod
    async def remove(self, user_id: int) -> None: ...

    @abstractmethod
    async def remove_many(self, user_ids: Sequence[int]) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...

    @abstractmethod
    async def size(self) -> int: ...


class MemoryMetadataTable(MetadataTable):
    backend = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[int, UserMetadata] = {}

    async def set(self, user_id: int, meta: UserMetadata) -> None:
        with self._lock:
            self._data[user_id] = meta

    async def set_many(self, items: Iterable[tuple[int, UserMetadata]]) -> None:
        with self._lock:
            self._data.update(items)

    async def get(self, user_id: int) -> UserMetadata | None:
        with self._lock:
            return self._data.get(user_id)

    async def multi_get(self, user_ids: Sequence[int]) -> list[UserMetadata | None]:
        with self._lock:
            return [self._data.get(user_id) for user_id in user_ids]

    async def remove(self, user_id: int) -> None:
        with self._lock:
            self._data.pop(user_id, None)

    async def remove_many(self, user_ids: Sequence[int]) -> None:
        with self._lock:
            for user_id in user_ids:
                self._data.pop(user_id, None)

    async def clear(self) -> None:
        with self._lock:
            self._data.clear()

    async def size(self) -> int:
        with self._lock:
            return len(self._data)
