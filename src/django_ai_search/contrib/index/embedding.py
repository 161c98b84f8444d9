import logging
from abc import ABC, abstractmethod
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Sequence

import requests
from pydantic import StrictFloat, TypeAdapter, ValidationError, conlist
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from django_ai_search.conf import DEFAULT_EMBEDDING_ENDPOINT
from django_ai_search.exceptions import (
    ConfigurationError,
    DeserializationError,
    DimensionMismatchError,
    RemoteRejectionError,
    RequestTimeoutError,
    TransportError,
)

from .schema import Chunk, Point

if TYPE_CHECKING:
    from django_ai_search.conf import SearchSettings

logger = logging.getLogger(__name__)

# A single embedding: a non-empty, flat array of numbers
EmbeddingResponse = TypeAdapter(conlist(StrictFloat, min_length=1))


def check_dimensions(vector: list[float], expected: int, *, target: str = "") -> None:
    """Raise DimensionMismatchError unless the vector has ``expected`` entries."""
    if len(vector) != expected:
        raise DimensionMismatchError(
            f"Embedding has {len(vector)} dimensions, collection expects {expected}",
            operation="embed",
            target=target,
        )


class EmbeddingTransformer(ABC):
    """Base class for embedding transformers which turn Chunks into Points."""

    @property
    def transformer_id(self) -> str:
        """Get unique identifier for this transformer."""
        return self.__class__.__name__

    @abstractmethod
    def embed_string(self, text: str) -> list[float]:
        """Embed a string using the transformer."""
        pass

    def embed_chunks(
        self,
        chunks: Sequence["Chunk"],
        *,
        dimensions: int | None = None,
        max_workers: int = 1,
    ) -> list["Point"]:
        """Embed chunks into Points, preserving chunk order and ids.

        Args:
            chunks: Chunks to embed. Their ids are already assigned, so the
                order in which embeddings complete does not matter.
            dimensions: If given, every embedding is checked against it as
                soon as it arrives.
            max_workers: Number of embedding requests in flight at once.

        Returns:
            One Point per chunk, in chunk order
        """
        if not chunks:
            return []

        def embed_chunk(chunk: "Chunk") -> "Point":
            vector = self.embed_string(chunk.text)
            if dimensions is not None:
                check_dimensions(vector, dimensions, target=f"chunk {chunk.id}")
            return chunk.to_point(vector)

        if max_workers <= 1:
            return [embed_chunk(chunk) for chunk in chunks]

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(embed_chunk, chunk) for chunk in chunks]
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            # Unstarted futures come after every started one, so the first
            # failure is raised before any CancelledError.
            return [future.result() for future in futures]


class HuggingFaceEmbeddingTransformer(EmbeddingTransformer):
    """Embedding transformer that calls the Hugging Face Inference API.

    Each call sends one string as a single-element batch and expects one
    flat array of floats back. Calls are not cached.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        endpoint: str = DEFAULT_EMBEDDING_ENDPOINT,
        timeout: float = 30.0,
        max_retries: int = 0,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()

    @classmethod
    def from_settings(
        cls, search_settings: "SearchSettings", **kwargs
    ) -> "HuggingFaceEmbeddingTransformer":
        return cls(
            api_key=search_settings.embedding_api_key,
            endpoint=search_settings.embedding_endpoint,
            timeout=search_settings.request_timeout,
            max_retries=search_settings.max_retries,
            **kwargs,
        )

    @property
    def transformer_id(self) -> str:
        model = self.endpoint.rstrip("/").rsplit("/models/", 1)[-1]
        return f"huggingface_{model}"

    def embed_string(self, text: str) -> list[float]:
        """Embed a string using the Hugging Face Inference API."""
        if not self.api_key:
            raise ConfigurationError(
                "Expected a Hugging Face API key", operation="embed", target=self.endpoint
            )

        response = self._retrying()(self._post, [text])
        return self._parse_embedding(response)

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(TransportError),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential_jitter(initial=1, max=30, jitter=1),
            before_sleep=lambda retry_state: logger.warning(
                f"Retrying embedding request {retry_state.attempt_number}/"
                f"{self.max_retries} after {retry_state.outcome.exception()}"
            ),
            reraise=True,
        )

    def _post(self, payload: list[str]) -> requests.Response:
        try:
            response = self.session.post(
                self.endpoint,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise RequestTimeoutError(
                f"No response within {self.timeout}s",
                operation="embed",
                target=self.endpoint,
            ) from e
        except requests.RequestException as e:
            raise TransportError(str(e), operation="embed", target=self.endpoint) from e

        logger.debug(f"Raw embedding response: {response.text}")

        if not response.ok:
            raise RemoteRejectionError(
                f"Embedding provider answered {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
                operation="embed",
                target=self.endpoint,
            )
        return response

    def _parse_embedding(self, response: requests.Response) -> list[float]:
        try:
            data = response.json()
        except ValueError as e:
            raise DeserializationError(
                "Embedding response is not valid JSON",
                operation="embed",
                target=self.endpoint,
            ) from e

        try:
            embedding = EmbeddingResponse.validate_python(data)
        except ValidationError as e:
            raise DeserializationError(
                f"Expected a flat array of numbers, got {str(data)[:200]}",
                operation="embed",
                target=self.endpoint,
            ) from e
        return [float(value) for value in embedding]
