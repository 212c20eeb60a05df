"""Tests for text chunking and content hashing."""

import hashlib

import pytest

from ghstars.services.chunker import TextChunker, content_hash


class TestContentHash:
    """Test content fingerprints."""

    def test_is_sha256_hex(self):
        """Fingerprint is the sha256 hex digest of the UTF-8 text."""
        assert content_hash("hello world") == hashlib.sha256(b"hello world").hexdigest()

    def test_is_deterministic(self):
        """Same text gives the same fingerprint."""
        assert content_hash("ünïcode") == content_hash("ünïcode")
        assert content_hash("a") != content_hash("b")


class TestTextChunker:
    """Test chunk boundaries."""

    def test_empty_text_yields_no_chunks(self):
        """None and blank text produce nothing."""
        chunker = TextChunker(100)

        assert chunker.chunk(None) == []
        assert chunker.chunk("") == []
        assert chunker.chunk("\n\n  \n") == []

    def test_short_text_is_one_chunk(self):
        """Text under the limit stays whole."""
        chunks = TextChunker(100).chunk("hello world")

        assert len(chunks) == 1
        assert chunks[0].index == 0
        assert chunks[0].text == "hello world"
        assert chunks[0].text_hash == content_hash("hello world")

    def test_packs_paragraphs_up_to_limit(self):
        """Consecutive paragraphs share a chunk while they fit."""
        text = "one two\n\nthree four\n\nfive six seven eight"
        chunks = TextChunker(20).chunk(text)

        assert [c.text for c in chunks] == ["one two\n\nthree four", "five six seven eight"]
        assert [c.index for c in chunks] == [0, 1]

    def test_splits_oversized_paragraph_on_whitespace(self):
        """A paragraph longer than the limit is split between words."""
        text = "alpha beta gamma delta epsilon"
        chunks = TextChunker(12).chunk(text)

        assert [c.text for c in chunks] == ["alpha beta", "gamma delta", "epsilon"]
        assert all(len(c.text) <= 12 for c in chunks)

    def test_cuts_words_longer_than_limit(self):
        """A single word over the limit is hard-cut."""
        chunks = TextChunker(4).chunk("abcdefghij")

        assert [c.text for c in chunks] == ["abcd", "efgh", "ij"]

    def test_normalizes_line_endings(self):
        """CRLF paragraph breaks chunk like LF ones."""
        chunker = TextChunker(5)

        assert [c.text for c in chunker.chunk("aaa\r\n\r\nbbb")] == ["aaa", "bbb"]

    def test_boundaries_are_stable(self):
        """Chunking is deterministic."""
        chunker = TextChunker(30)
        text = "First paragraph here.\n\nSecond one, a bit longer than that.\n\nThird."

        assert chunker.chunk(text) == chunker.chunk(text)

    def test_chunk_topics_joins_with_spaces(self):
        """Topics are chunked from their space-joined form."""
        chunks = TextChunker(100).chunk_topics(["rust", " cli ", "", "tui"])

        assert [c.text for c in chunks] == ["rust cli tui"]

    def test_rejects_non_positive_size(self):
        """chunk_size must be positive."""
        with pytest.raises(ValueError):
            TextChunker(0)
