from abc import ABC, abstractmethod
from typing import Sequence

from ..schema import CollectionDescriptor, Point, SearchMatch


class StorageProvider(ABC):
    """Base class for vector index service backends."""

    @abstractmethod
    def ensure_collection(self, collection: CollectionDescriptor) -> None:
        """Create the collection if needed. Repeating the call with the same
        descriptor has no further effect."""
        ...

    @abstractmethod
    def upsert_points(self, collection_name: str, points: Sequence[Point]) -> None:
        """Store points as one batch, replacing any points with the same ids."""
        ...

    @abstractmethod
    def search(self, collection_name: str, vector: list[float]) -> list[SearchMatch]:
        """Return the stored points nearest to ``vector``, best match first."""
        ...
