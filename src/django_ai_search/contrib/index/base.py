import logging
from pathlib import Path
from typing import TYPE_CHECKING

from django_ai_search.exceptions import NoMatchError

from .chunking import BlankLineChunkTransformer, chunk_corpus
from .embedding import HuggingFaceEmbeddingTransformer, check_dimensions
from .schema import CollectionDescriptor, Distance
from .storage.qdrant import QdrantProvider

if TYPE_CHECKING:
    from django_ai_search.conf import SearchSettings

    from .chunking import ChunkTransformer
    from .embedding import EmbeddingTransformer
    from .schema import Point, SearchMatch
    from .storage.base import StorageProvider


logger = logging.getLogger(__name__)


class SemanticIndex:
    """Binds an embedding transformer to one collection in a storage provider."""

    def __init__(
        self,
        *,
        storage_provider: "StorageProvider",
        embedding_transformer: "EmbeddingTransformer",
        collection: CollectionDescriptor,
        chunk_transformer: "ChunkTransformer | None" = None,
        max_workers: int = 1,
    ):
        self.storage_provider = storage_provider
        self.embedding_transformer = embedding_transformer
        self.collection = collection
        self.chunk_transformer = chunk_transformer or BlankLineChunkTransformer()
        self.max_workers = max_workers

    @classmethod
    def from_settings(cls, search_settings: "SearchSettings") -> "SemanticIndex":
        """Build an index wired to the Hugging Face API and Qdrant."""
        return cls(
            storage_provider=QdrantProvider.from_settings(search_settings),
            embedding_transformer=HuggingFaceEmbeddingTransformer.from_settings(
                search_settings
            ),
            collection=CollectionDescriptor(
                name=search_settings.collection_name,
                vector_size=search_settings.vector_size,
                distance=Distance.from_name(search_settings.distance),
            ),
            max_workers=search_settings.max_workers,
        )

    def ingest(self, corpus: str) -> list["Point"]:
        """
        Ingest a corpus into the collection.

        This will:
        1. Split the corpus into chunks, numbered in source order
        2. Embed every chunk
        3. Make sure the collection exists
        4. Upsert all points in one batch

        Re-ingesting the same corpus overwrites the same point ids.

        Returns:
            The points that were stored
        """
        chunks = chunk_corpus(corpus, self.chunk_transformer)
        logger.info(f"Embedding {len(chunks)} chunks")
        points = self.embedding_transformer.embed_chunks(
            chunks,
            dimensions=self.collection.vector_size,
            max_workers=self.max_workers,
        )

        logger.info(f"Ensuring collection {self.collection.name} exists")
        self.storage_provider.ensure_collection(self.collection)

        if points:
            logger.info(f"Inserting {len(points)} points into {self.collection.name}")
            self.storage_provider.upsert_points(self.collection.name, points)
        else:
            logger.warning("No chunks produced from the corpus")

        logger.info(f"Finished ingesting into {self.collection.name}")
        return points

    def ingest_file(self, path: str | Path) -> list["Point"]:
        """Read a UTF-8 corpus file and ingest it."""
        logger.info(f"Reading corpus from {path}")
        return self.ingest(Path(path).read_text(encoding="utf-8"))

    def search(self, query: str) -> list["SearchMatch"]:
        """Embed the query and return the nearest stored points, best first."""
        vector = self.embedding_transformer.embed_string(query)
        check_dimensions(vector, self.collection.vector_size, target="query")
        return self.storage_provider.search(self.collection.name, vector)

    def search_top1(self, query: str) -> int:
        """Return the id of the stored chunk most similar to the query.

        Raises:
            NoMatchError: if the collection holds no points
        """
        matches = self.search(query)
        if not matches:
            raise NoMatchError(
                "No similar vector found", operation="search", target=self.collection.name
            )
        return matches[0].id
