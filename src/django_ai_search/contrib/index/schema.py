"""
Schema definitions for semantic indexing.

This module contains the core data structures passed between the chunker,
the embedding transformer and the storage provider.
"""

import enum
from dataclasses import dataclass, field
from typing import Any

from qdrant_client.http import models as qdrant_models

from django_ai_search.exceptions import ConfigurationError

# Payload key holding the original chunk text
TEXT_PAYLOAD_KEY = "text"


class Distance(enum.Enum):
    COSINE = "Cosine"
    EUCLIDEAN = "Euclidean"
    DOT = "Dot"

    @classmethod
    def from_name(cls, name: "str | Distance") -> "Distance":
        if isinstance(name, cls):
            return name
        if isinstance(name, qdrant_models.Distance):
            return cls.from_qdrant(name)
        for member in cls:
            if member.value.lower() == str(name).lower():
                return member
        # Qdrant's own spelling
        if str(name).lower() == "euclid":
            return cls.EUCLIDEAN
        raise ConfigurationError(
            f"Unknown distance metric {name!r}, "
            f"expected one of {[member.value for member in cls]}"
        )

    def to_qdrant(self) -> qdrant_models.Distance:
        return {
            Distance.COSINE: qdrant_models.Distance.COSINE,
            Distance.EUCLIDEAN: qdrant_models.Distance.EUCLID,
            Distance.DOT: qdrant_models.Distance.DOT,
        }[self]

    @classmethod
    def from_qdrant(cls, distance: qdrant_models.Distance) -> "Distance":
        for member in cls:
            if member.to_qdrant() == distance:
                return member
        raise ConfigurationError(f"Unsupported Qdrant distance metric {distance!r}")


@dataclass(frozen=True)
class Chunk:
    """
    One piece of the corpus.

    The id is the zero-based position of the chunk in the source text, and
    becomes the id of the stored point.
    """

    id: int
    text: str

    def to_point(self, vector: list[float]) -> "Point":
        """Create a Point storing this chunk with the given embedding."""
        return Point(id=self.id, vector=vector, payload={TEXT_PAYLOAD_KEY: self.text})


@dataclass(frozen=True)
class CollectionDescriptor:
    """Name and vector parameters of a collection in the vector index service."""

    name: str
    vector_size: int
    distance: Distance = Distance.COSINE

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Collection name must not be empty")
        if not isinstance(self.vector_size, int) or self.vector_size <= 0:
            raise ConfigurationError(
                f"Collection vector_size must be a positive integer, got {self.vector_size!r}"
            )
        object.__setattr__(self, "distance", Distance.from_name(self.distance))

    def to_vector_params(self) -> qdrant_models.VectorParams:
        return qdrant_models.VectorParams(
            size=self.vector_size, distance=self.distance.to_qdrant()
        )


@dataclass
class Point:
    """
    A stored unit in a collection: an id, its embedding and a payload.

    Upserting a Point with an id that already exists replaces it.
    """

    id: int
    vector: list[float]
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str | None:
        return self.payload.get(TEXT_PAYLOAD_KEY)

    def to_point_struct(self) -> qdrant_models.PointStruct:
        return qdrant_models.PointStruct(
            id=self.id, vector=self.vector, payload=self.payload
        )


@dataclass
class SearchMatch:
    """A scored search result, ordered best-first by the storage provider."""

    id: int
    score: float
    payload: dict[str, Any] = field(default_factory=dict)
