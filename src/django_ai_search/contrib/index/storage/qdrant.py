import logging
import math
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Sequence

import httpx
from pydantic import ValidationError
from qdrant_client import QdrantClient
from qdrant_client.http import models as qdrant_models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from django_ai_search.exceptions import (
    CollectionMismatchError,
    DeserializationError,
    RemoteRejectionError,
    RequestTimeoutError,
    TransportError,
)

from ..schema import CollectionDescriptor, Distance, Point, SearchMatch
from .base import StorageProvider

if TYPE_CHECKING:
    from django_ai_search.conf import SearchSettings

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors(operation: str, target: str) -> Iterator[None]:
    """Re-raise Qdrant client errors as pipeline errors."""
    try:
        yield
    except UnexpectedResponse as e:
        body = (
            e.content.decode(errors="replace")
            if isinstance(e.content, bytes)
            else str(e.content)
        )
        raise RemoteRejectionError(
            f"Qdrant answered {e.status_code}: {body}",
            status_code=e.status_code,
            body=body,
            operation=operation,
            target=target,
        ) from e
    except ResponseHandlingException as e:
        if isinstance(e.source, ValidationError):
            raise DeserializationError(
                f"Unexpected Qdrant response: {e.source}",
                operation=operation,
                target=target,
            ) from e
        if isinstance(e.source, httpx.TimeoutException):
            raise RequestTimeoutError(
                "Qdrant did not answer in time", operation=operation, target=target
            ) from e
        raise TransportError(str(e.source), operation=operation, target=target) from e


class QdrantProvider(StorageProvider):
    """Vector storage using Qdrant."""

    def __init__(
        self,
        *,
        url: str,
        api_key: str | None = None,
        timeout: int | None = None,
        client: QdrantClient | None = None,
    ):
        self.url = url
        # Connect lazily: no request reaches Qdrant until the first operation
        self.client = client or QdrantClient(
            url=url, api_key=api_key, timeout=timeout, check_compatibility=False
        )

    @classmethod
    def from_settings(cls, search_settings: "SearchSettings", **kwargs) -> "QdrantProvider":
        return cls(
            url=search_settings.qdrant_url,
            api_key=search_settings.qdrant_api_key,
            timeout=max(1, math.ceil(search_settings.request_timeout)),
            **kwargs,
        )

    def ensure_collection(self, collection: CollectionDescriptor):
        """Create the collection, or check an existing one has the same parameters."""
        with translate_errors("ensure_collection", collection.name):
            if not self.client.collection_exists(collection.name):
                logger.info(
                    f"Creating collection {collection.name} "
                    f"(size={collection.vector_size}, distance={collection.distance.value})"
                )
                self.client.create_collection(
                    collection_name=collection.name,
                    vectors_config=collection.to_vector_params(),
                )
                return
            info = self.client.get_collection(collection.name)

        logger.info(f"Collection {collection.name} already exists")
        self._check_existing(collection, info.config.params.vectors)

    def _check_existing(self, collection: CollectionDescriptor, vectors):
        if not isinstance(vectors, qdrant_models.VectorParams):
            raise CollectionMismatchError(
                "Existing collection uses named vectors",
                operation="ensure_collection",
                target=collection.name,
            )

        distance = Distance.from_name(vectors.distance)
        if vectors.size != collection.vector_size or distance != collection.distance:
            raise CollectionMismatchError(
                f"Existing collection has size={vectors.size}, "
                f"distance={distance.value}; requested "
                f"size={collection.vector_size}, distance={collection.distance.value}",
                operation="ensure_collection",
                target=collection.name,
            )

    def upsert_points(self, collection_name: str, points: Sequence[Point]):
        """Store all points in a single request."""
        if not points:
            logger.warning(f"No points to upsert into {collection_name}")
            return

        with translate_errors("upsert_points", collection_name):
            result = self.client.upsert(
                collection_name=collection_name,
                points=[point.to_point_struct() for point in points],
                wait=True,
            )
        logger.info(
            f"Upserted {len(points)} points into {collection_name}: {result.status}"
        )

    def search(self, collection_name: str, vector: list[float]) -> list[SearchMatch]:
        with translate_errors("search", collection_name):
            response = self.client.query_points(
                collection_name=collection_name,
                query=vector,
                with_payload=True,
            )

        matches = []
        for scored_point in response.points:
            if not isinstance(scored_point.id, int):
                raise DeserializationError(
                    f"Expected an integer point id, got {scored_point.id!r}",
                    operation="search",
                    target=collection_name,
                )
            matches.append(
                SearchMatch(
                    id=scored_point.id,
                    score=scored_point.score,
                    payload=scored_point.payload or {},
                )
            )
        return matches
