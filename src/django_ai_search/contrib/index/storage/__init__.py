from .base import StorageProvider
from .qdrant import QdrantProvider

__all__ = [
    "StorageProvider",
    "QdrantProvider",
]
