"""
Error types raised by the ingestion and query pipeline.

Every error carries the name of the operation that failed and the
service or collection it was talking to, so callers can log them
without extra context.
"""


class SemanticSearchError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, *, operation: str = "", target: str = ""):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.target = target

    def __str__(self):
        prefix = ":".join(part for part in (self.operation, self.target) if part)
        if prefix:
            return f"[{prefix}] {self.message}"
        return self.message


class ConfigurationError(SemanticSearchError):
    """Required configuration (e.g. the provider credential) is missing or invalid."""


class TransportError(SemanticSearchError):
    """The remote service could not be reached."""


class RequestTimeoutError(TransportError):
    """The remote service did not answer within the request timeout."""


class RemoteRejectionError(SemanticSearchError):
    """The remote service answered with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
        operation: str = "",
        target: str = "",
    ):
        super().__init__(message, operation=operation, target=target)
        self.status_code = status_code
        self.body = body


class DeserializationError(SemanticSearchError):
    """The remote service answered, but not with the expected shape."""


class DimensionMismatchError(SemanticSearchError):
    """An embedding does not have the dimensionality the collection declares."""


class CollectionMismatchError(SemanticSearchError):
    """An existing collection was declared with different vector parameters."""


class NoMatchError(SemanticSearchError):
    """A search returned no results."""
