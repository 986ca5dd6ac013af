"""
In-memory repositories for catalog entities.
"""

from typing import Callable, Dict, Generic, Iterator, Optional, TypeVar

from shared.errors import ConflictError, NotFoundError
from shared.logging import get_logger

T = TypeVar("T")


class InMemoryRepository(Generic[T]):
    """Insertion-ordered repository keyed by an entity id attribute."""

    def __init__(self, entity: str, id_attr: str):
        self.entity = entity
        self.id_attr = id_attr
        self.items: Dict[str, T] = {}
        self.logger = get_logger(f"appetite.{entity.lower()}_store")

    def _key(self, item: T) -> str:
        return getattr(item, self.id_attr)

    def get(self, item_id: str) -> Optional[T]:
        return self.items.get(item_id)

    def require(self, item_id: str) -> T:
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundError(self.entity, item_id)
        return item

    def scan(self, predicate: Optional[Callable[[T], bool]] = None) -> Iterator[T]:
        for item in list(self.items.values()):
            if predicate is None or predicate(item):
                yield item

    def add(self, item: T) -> T:
        key = self._key(item)
        if key in self.items:
            raise ConflictError(f"{self.entity} {key} already exists", {"id": key})
        self.items[key] = item
        self.logger.info(f"{self.entity} added", id=key)
        return item

    def update(self, item: T) -> T:
        key = self._key(item)
        if key not in self.items:
            raise NotFoundError(self.entity, key)
        self.items[key] = item
        self.logger.info(f"{self.entity} updated", id=key)
        return item

    def remove(self, item_id: str) -> T:
        item = self.require(item_id)
        del self.items[item_id]
        self.logger.info(f"{self.entity} removed", id=item_id)
        return item

    def __contains__(self, item_id: str) -> bool:
        return item_id in self.items

    def __len__(self) -> int:
        return len(self.items)
