from dataclasses import dataclass, fields

from django.conf import settings

DEFAULT_EMBEDDING_ENDPOINT = (
    "https://api-inference.huggingface.co/models/"
    "sentence-transformers/all-MiniLM-L6-v2"
)
DEFAULT_QDRANT_URL = "http://localhost:6333"
DEFAULT_COLLECTION_NAME = "registration_collection"
DEFAULT_VECTOR_SIZE = 384
DEFAULT_DISTANCE = "Cosine"


@dataclass(frozen=True)
class SearchSettings:
    """Process-wide, read-only configuration for the search pipeline."""

    embedding_api_key: str | None = None
    embedding_endpoint: str = DEFAULT_EMBEDDING_ENDPOINT
    qdrant_url: str = DEFAULT_QDRANT_URL
    qdrant_api_key: str | None = None
    collection_name: str = DEFAULT_COLLECTION_NAME
    vector_size: int = DEFAULT_VECTOR_SIZE
    distance: str = DEFAULT_DISTANCE
    corpus_path: str | None = None
    request_timeout: float = 30.0
    max_retries: int = 0
    max_workers: int = 1

    @classmethod
    def from_dict(cls, values: dict) -> "SearchSettings":
        """Build settings from an ``AI_SEARCH``-style dict of upper-case keys."""
        known = {field.name.upper(): field.name for field in fields(cls)}
        kwargs = {known[key]: value for key, value in values.items() if key in known}
        return cls(**kwargs)


def get_search_settings() -> SearchSettings:
    """Read the ``AI_SEARCH`` Django setting into a ``SearchSettings`` object."""
    return SearchSettings.from_dict(getattr(settings, "AI_SEARCH", {}))
