"""Integration tests for the extract, chunk, embed and store pipeline."""
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest

from app.models.document import ContentStatus, Document, ProcessingStatus
from app.services.content import UPLOAD_PLACEHOLDER
from app.services.document_processor import DocumentProcessor
from app.services.extraction import DocumentExtractor
from app.services.vector_store import VectorStoreService, vector_store_service
from app.tasks.document_processing import _async_process_document


@pytest.fixture
def pdf_extractor():
    extractor = AsyncMock()
    extractor.extract = AsyncMock(return_value="Week one covers the structure of the cell membrane.")
    return extractor


@pytest.fixture
def processor(fake_llm, pdf_extractor):
    return DocumentProcessor(extractor=DocumentExtractor(pdf_extractor=pdf_extractor), llm=fake_llm)


async def add_document(session, course, **fields):
    document = Document(course_id=course.id, **fields)
    session.add(document)
    await session.commit()
    return document


@pytest.mark.integration
class TestDocumentProcessor:

    @pytest.mark.asyncio
    async def test_text_document_is_embedded(self, db_session, sample_course, processor):
        document = await add_document(db_session, sample_course, title="Notes", type="text", content="hello world")

        stored = await processor.process(db_session, document)

        assert stored >= 1
        assert await vector_store_service.count_for_document(db_session, document.id) == stored
        await db_session.refresh(document)
        assert document.processed is True
        assert document.processing_status == ProcessingStatus.DONE.value
        assert document.content_status == ContentStatus.OK.value

    @pytest.mark.asyncio
    async def test_reprocessing_replaces_rows(self, db_session, sample_course, processor):
        content = "\n\n".join(f"Section {i}. " + "Cells grow and divide. " * 20 for i in range(5))
        document = await add_document(db_session, sample_course, title="Long notes", type="text", content=content)

        first = await processor.process(db_session, document)
        second = await processor.process(db_session, document)

        assert first == second > 1
        assert await vector_store_service.count_for_document(db_session, document.id) == first

    @pytest.mark.asyncio
    async def test_failed_embeddings_are_skipped(self, db_session, sample_course, processor, fake_llm):
        content = "\n\n".join(f"Paragraph {i} " + "about enzymes and substrates. " * 30 for i in range(3))
        document = await add_document(db_session, sample_course, title="Enzymes", type="text", content=content)
        chunks = processor.chunker.chunk(content)
        fake_llm.generate_embedding.side_effect = [RuntimeError("rate limited")] + [[1.0, 0.0]] * (len(chunks) - 1)

        stored = await processor.process(db_session, document)

        assert stored == len(chunks) - 1
        await db_session.refresh(document)
        assert document.processed is True

    @pytest.mark.asyncio
    async def test_placeholder_text_is_not_embedded(self, db_session, sample_course, processor, fake_llm):
        document = await add_document(
            db_session, sample_course, title="Draft", type="text", content="This document would be processed later"
        )

        assert await processor.process(db_session, document) == 0

        await db_session.refresh(document)
        assert document.processed is True
        assert document.content_status == ContentStatus.PLACEHOLDER.value
        fake_llm.generate_embedding.assert_not_called()

    @pytest.mark.asyncio
    async def test_pdf_text_is_written_back(self, db_session, sample_course, processor, pdf_extractor):
        document = await add_document(
            db_session,
            sample_course,
            title="Week 1",
            type="pdf",
            content=UPLOAD_PLACEHOLDER,
            content_status=ContentStatus.PLACEHOLDER.value,
            file_name="week1.pdf",
            file_data=b"%PDF-1.4",
        )

        assert await processor.process(db_session, document) == 1

        await db_session.refresh(document)
        assert document.content == "Week one covers the structure of the cell membrane."
        assert document.content_status == ContentStatus.OK.value
        pdf_extractor.extract.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_pdf_failure_degrades_to_error_text(self, db_session, sample_course, processor, pdf_extractor):
        document = await add_document(
            db_session, sample_course, title="Broken", type="pdf", file_name="b.pdf", file_data=b"%PDF"
        )
        pdf_extractor.extract.side_effect = RuntimeError("corrupt file")

        assert await processor.process(db_session, document) == 0

        await db_session.refresh(document)
        assert document.processed is True
        assert document.content == "[Error processing PDF: corrupt file]"
        assert document.content_status == ContentStatus.ERROR.value
        assert await vector_store_service.count_for_document(db_session, document.id) == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_failed(self, db_session, sample_course, fake_llm, pdf_extractor):
        store = VectorStoreService()
        store.replace_for_document = AsyncMock(side_effect=RuntimeError("disk full"))
        processor = DocumentProcessor(
            extractor=DocumentExtractor(pdf_extractor=pdf_extractor), llm=fake_llm, vector_store=store
        )
        document = await add_document(db_session, sample_course, title="Notes", type="text", content="hello world")

        with pytest.raises(RuntimeError):
            await processor.process(db_session, document)

        await db_session.refresh(document)
        assert document.processed is False
        assert document.processing_status == ProcessingStatus.FAILED.value
        assert document.processing_error == "disk full"


@pytest.mark.integration
@pytest.mark.celery
class TestProcessDocumentTask:

    @pytest.fixture
    def task_database(self, monkeypatch, session_factory, db_engine):
        @asynccontextmanager
        async def session_ctx():
            async with session_factory() as session:
                yield session

        monkeypatch.setattr("app.tasks.document_processing.get_async_session", session_ctx)
        monkeypatch.setattr("app.tasks.document_processing.engine", db_engine)

    @pytest.mark.asyncio
    async def test_processes_document(self, task_database, db_session, sample_course, processor):
        document = await add_document(db_session, sample_course, title="Notes", type="text", content="hello world")

        result = await _async_process_document(document.id, processor)

        assert result["status"] == ProcessingStatus.DONE.value
        assert result["chunks"] == 1

    @pytest.mark.asyncio
    async def test_missing_document(self, task_database, processor):
        result = await _async_process_document("does-not-exist", processor)
        assert result["status"] == "missing"

    @pytest.mark.asyncio
    async def test_processed_document_skipped_unless_forced(self, task_database, db_session, sample_course, processor):
        document = await add_document(
            db_session, sample_course, title="Notes", type="text", content="hello world",
            processed=True, processing_status=ProcessingStatus.DONE.value,
        )
        processor.process = AsyncMock(return_value=1)

        await _async_process_document(document.id, processor)
        processor.process.assert_not_called()

        await _async_process_document(document.id, processor, force=True)
        processor.process.assert_awaited_once()
