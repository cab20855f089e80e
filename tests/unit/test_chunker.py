"""Unit tests for the text chunker."""
import pytest

from app.core.exceptions import PlaceholderTextError
from app.services.content import REPROCESS_NOTICE, UPLOAD_PLACEHOLDER
from app.services.document_processor import TextChunker


def lecture_text(paragraphs=12, sentences=8):
    return "\n\n".join(
        " ".join(f"Paragraph {p} sentence {s} covers topic {p * 100 + s}." for s in range(sentences))
        for p in range(paragraphs)
    )


@pytest.mark.unit
class TestTextChunker:

    @pytest.fixture
    def chunker(self):
        return TextChunker()

    def test_short_text_is_one_chunk(self, chunker):
        assert chunker.chunk("hello world") == ["hello world"]

    def test_empty_text_has_no_chunks(self, chunker):
        assert chunker.chunk("") == []
        assert chunker.chunk("   \n\n  ") == []

    def test_chunks_respect_size(self, chunker):
        chunks = chunker.chunk(lecture_text())
        assert len(chunks) > 1
        assert all(len(c) <= 1000 for c in chunks)

    def test_chunks_are_slices_that_cover_the_text(self, chunker):
        text = lecture_text()
        spans = chunker.chunk_spans(text)

        assert spans[0][0] == 0
        for start, chunk in spans:
            assert text[start:start + len(chunk)] == chunk

        # Consecutive chunks touch or overlap, so nothing is lost
        for (start, chunk), (next_start, _) in zip(spans, spans[1:]):
            assert start < next_start <= start + len(chunk)

        last_start, last_chunk = spans[-1]
        assert last_start + len(last_chunk) == len(text)

    @pytest.mark.parametrize("text", ["ab" * 1500, "The cell. " * 500, lecture_text()])
    def test_spans_rebuild_the_text(self, chunker, text):
        """Removing each chunk's overlap and concatenating gives back the input, even when it repeats."""
        rebuilt = ""
        for start, chunk in chunker.chunk_spans(text):
            assert start <= len(rebuilt)
            assert text[start:start + len(chunk)] == chunk
            rebuilt += chunk[len(rebuilt) - start:]
        assert rebuilt == text

    def test_spans_on_repeated_text_advance_by_the_overlap(self, chunker):
        starts = [start for start, _ in chunker.chunk_spans("ab" * 1500)]
        assert starts == [0, 800, 1600, 2400]

    def test_blank_runs_are_dropped(self):
        chunker = TextChunker(chunk_size=10, chunk_overlap=0)
        chunks = chunker.chunk("alpha" + " " * 30 + "omega")
        assert all(c.strip() for c in chunks)
        assert "alpha" in chunks[0]
        assert "omega" in chunks[-1]

    def test_overlap_between_neighbours(self, chunker):
        spans = chunker.chunk_spans(lecture_text(paragraphs=1, sentences=60))
        (start, chunk), (next_start, _) = spans[0], spans[1]
        assert start + len(chunk) - next_start > 0

    def test_prefers_paragraph_breaks(self):
        chunker = TextChunker(chunk_size=40, chunk_overlap=0)
        text = "First paragraph is short.\n\nSecond paragraph is short too."
        chunks = chunker.chunk(text)
        assert chunks[0] == "First paragraph is short."
        assert chunks[1].strip() == "Second paragraph is short too."

    def test_long_word_is_split_by_character(self):
        chunker = TextChunker(chunk_size=10, chunk_overlap=0)
        chunks = chunker.chunk("x" * 35)
        assert "".join(chunks) == "x" * 35
        assert all(len(c) <= 10 for c in chunks)

    @pytest.mark.parametrize("text", [
        "This content would be processed here",
        UPLOAD_PLACEHOLDER,
        "[Error processing PDF: timeout]",
        "[PROCESSING] please wait",
        "PDF Content from lecture.pdf",
    ])
    def test_placeholder_text_is_rejected(self, chunker, text):
        with pytest.raises(PlaceholderTextError):
            chunker.chunk(text)

    def test_reprocess_notice_is_not_a_placeholder(self, chunker):
        # The notice is stored and chunked so answers can point the user to reprocessing
        assert chunker.chunk(REPROCESS_NOTICE) == [REPROCESS_NOTICE]
