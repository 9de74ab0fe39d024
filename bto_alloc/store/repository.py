"""Repository interface and in-memory implementation."""

from collections.abc import Callable, Hashable, Iterable, Iterator
from typing import Generic, Protocol, TypeVar

from bto_alloc.exceptions import DuplicateEntityError, EntityNotFoundError

T = TypeVar("T")


class Repository(Protocol[T]):
    """Collection of one entity type, addressed by key."""

    entity_name: str

    def find_by_id(self, key: Hashable) -> T:
        """Return the entity or raise ``EntityNotFoundError``."""
        ...

    def get(self, key: Hashable) -> T | None:
        ...

    def add(self, entity: T) -> None:
        """Insert a new entity or raise ``DuplicateEntityError``."""
        ...

    def load_all(self, entities: Iterable[T]) -> None:
        """Replace the whole collection."""
        ...

    def save_all(self) -> list[T]:
        """Snapshot of the collection in insertion order."""
        ...

    def __contains__(self, key: object) -> bool:
        ...

    def __len__(self) -> int:
        ...

    def __iter__(self) -> Iterator[T]:
        ...


class InMemoryRepository(Generic[T]):
    """Dict-backed repository preserving insertion order.

    Parameters
    ----------
    entity_name : str
        Name used in not-found messages (``Project``).
    key : Callable[[T], Hashable]
        Extracts the identity of an entity.
    """

    def __init__(self, entity_name: str, key: Callable[[T], Hashable]) -> None:
        self.entity_name = entity_name
        self._key = key
        self._items: dict[Hashable, T] = {}

    def key_of(self, entity: T) -> Hashable:
        return self._key(entity)

    def find_by_id(self, key: Hashable) -> T:
        try:
            return self._items[key]
        except KeyError:
            raise EntityNotFoundError(f"{self.entity_name} {_format_key(key)} not found") from None

    def get(self, key: Hashable) -> T | None:
        return self._items.get(key)

    def add(self, entity: T) -> None:
        key = self._key(entity)
        if key in self._items:
            raise DuplicateEntityError(f"{self.entity_name} {_format_key(key)} already exists")
        self._items[key] = entity

    def load_all(self, entities: Iterable[T]) -> None:
        self._items = {self._key(entity): entity for entity in entities}

    def save_all(self) -> list[T]:
        return list(self._items.values())

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))


def _format_key(key: Hashable) -> str:
    if isinstance(key, tuple):
        return "/".join(str(part) for part in key)
    return str(key)
