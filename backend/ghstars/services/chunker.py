"""Text chunking and content fingerprints for the embedding index."""

import hashlib
import re
from dataclasses import dataclass

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def content_hash(text: str) -> str:
    """sha256 hex digest of a chunk of text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class TextChunk:
    """A bounded, ordered segment of a source field."""

    index: int
    text: str
    text_hash: str


class TextChunker:
    """Split source fields into ordered chunks.

    Paragraphs are packed greedily into chunks of at most chunk_size
    characters; a paragraph that alone exceeds the limit is split on
    whitespace. The same input always yields the same boundaries.
    """

    def __init__(self, chunk_size: int = 1200):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.chunk_size = chunk_size

    def chunk(self, text: str | None) -> list[TextChunk]:
        """Chunk free text (readme, description, about)."""
        if not text:
            return []

        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        paragraphs = [p.strip() for p in PARAGRAPH_BREAK.split(normalized)]
        paragraphs = [p for p in paragraphs if p]

        pieces: list[str] = []
        current = ""
        for paragraph in paragraphs:
            if len(paragraph) > self.chunk_size:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.extend(self._split_long(paragraph))
                continue

            candidate = f"{current}\n\n{paragraph}" if current else paragraph
            if len(candidate) <= self.chunk_size:
                current = candidate
            else:
                pieces.append(current)
                current = paragraph

        if current:
            pieces.append(current)

        return [
            TextChunk(index=i, text=piece, text_hash=content_hash(piece))
            for i, piece in enumerate(pieces)
        ]

    def chunk_topics(self, topics: list[str]) -> list[TextChunk]:
        """Chunk a topic list from its space-joined form."""
        return self.chunk(" ".join(t.strip() for t in topics if t and t.strip()))

    def _split_long(self, paragraph: str) -> list[str]:
        """Split one oversized paragraph on whitespace."""
        pieces: list[str] = []
        current = ""
        for word in paragraph.split():
            # Single words longer than the limit are cut
            while len(word) > self.chunk_size:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.append(word[: self.chunk_size])
                word = word[self.chunk_size:]
            if not word:
                continue

            candidate = f"{current} {word}" if current else word
            if len(candidate) <= self.chunk_size:
                current = candidate
            else:
                pieces.append(current)
                current = word

        if current:
            pieces.append(current)
        return pieces
