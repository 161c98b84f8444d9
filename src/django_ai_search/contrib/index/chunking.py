from typing import Protocol

from .schema import Chunk

PARAGRAPH_DELIMITER = "\n\n"


class ChunkTransformer(Protocol):
    """Base class for chunking transformers which break a string into a list of strings."""

    def transform(self, text: "str") -> list["str"]:
        """Transform a string into chunks."""
        ...


class BlankLineChunkTransformer(ChunkTransformer):
    """Chunks strings on blank lines, keeping every paragraph in source order.

    Consecutive blank lines produce empty chunks unless ``drop_empty`` is set.
    """

    def __init__(self, drop_empty: bool = False):
        self.drop_empty = drop_empty

    def transform(self, text: str) -> list[str]:
        if not text:
            return []

        chunks = text.split(PARAGRAPH_DELIMITER)
        if self.drop_empty:
            chunks = [chunk for chunk in chunks if chunk.strip()]
        return chunks


def chunk_corpus(
    text: str, transformer: ChunkTransformer | None = None
) -> list[Chunk]:
    """Split corpus text into Chunks whose ids are their position in the text."""
    transformer = transformer or BlankLineChunkTransformer()
    return [
        Chunk(id=index, text=content)
        for index, content in enumerate(transformer.transform(text))
    ]
