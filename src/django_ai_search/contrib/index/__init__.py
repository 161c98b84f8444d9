from .base import SemanticIndex
from .chunking import (
    BlankLineChunkTransformer,
    ChunkTransformer,
    chunk_corpus,
)
from .embedding import (
    EmbeddingTransformer,
    HuggingFaceEmbeddingTransformer,
)
from .schema import (
    Chunk,
    CollectionDescriptor,
    Distance,
    Point,
    SearchMatch,
)
from .storage import (
    QdrantProvider,
    StorageProvider,
)

__all__ = [
    "BlankLineChunkTransformer",
    "Chunk",
    "ChunkTransformer",
    "CollectionDescriptor",
    "Distance",
    "EmbeddingTransformer",
    "HuggingFaceEmbeddingTransformer",
    "Point",
    "QdrantProvider",
    "SearchMatch",
    "SemanticIndex",
    "StorageProvider",
    "chunk_corpus",
]
