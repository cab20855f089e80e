"""
Background processing of uploaded documents.

Each Celery task runs the extract/chunk/embed pipeline for one document on a
fresh event loop. Assistant runs started by the task are tracked in the task's
run registry so they can be cancelled when the worker shuts down.
"""
import asyncio
import logging

from celery import Task
from celery.signals import worker_process_shutdown, worker_shutdown
from openai import AsyncOpenAI
from sqlalchemy import select
from sqlalchemy.orm import undefer

from app.core.config import settings
from app.core.database import engine, get_async_session
from app.models.document import Document, ProcessingStatus
from app.services.document_processor import DocumentProcessor
from app.services.extraction import DocumentExtractor, build_pdf_extractor
from app.services.pdf_assistant import AssistantRunRegistry
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


class DocumentProcessingTask(Task):
    """Task base owning the worker's assistant run registry."""

    _run_registry = None

    @property
    def run_registry(self) -> AssistantRunRegistry:
        if self._run_registry is None:
            self._run_registry = AssistantRunRegistry()
        return self._run_registry

    def build_processor(self) -> DocumentProcessor:
        pdf_extractor = build_pdf_extractor(registry=self.run_registry)
        return DocumentProcessor(extractor=DocumentExtractor(pdf_extractor=pdf_extractor))


@celery_app.task(
    name="app.tasks.document_processing.process_document",
    base=DocumentProcessingTask,
    bind=True,
)
def process_document(self, document_id: str, force: bool = False):
    """Extract, chunk and embed one document."""
    try:
        # Always create a fresh event loop for Celery tasks
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(
                _async_process_document(document_id, self.build_processor(), force=force)
            )
        finally:
            loop.close()
    except Exception as e:
        logger.error(f"Failed to process document {document_id} in Celery task: {e}", exc_info=True)
        return {"document_id": document_id, "status": ProcessingStatus.FAILED.value, "error": str(e)}


async def _async_process_document(document_id: str, processor: DocumentProcessor, force: bool = False) -> dict:
    """Async implementation of document processing."""
    try:
        async with get_async_session() as session:
            result = await session.execute(
                select(Document).options(undefer(Document.file_data)).where(Document.id == document_id)
            )
            document = result.scalar_one_or_none()
            if document is None:
                logger.warning(f"Document {document_id} no longer exists, skipping")
                return {"document_id": document_id, "status": "missing"}

            if document.processed and not force:
                logger.info(f"Document {document_id} already processed, skipping")
                return {"document_id": document_id, "status": document.processing_status}

            logger.info(f"Starting to process document {document_id}")
            chunks = await processor.process(session, document)
            return {
                "document_id": document_id,
                "status": document.processing_status,
                "chunks": chunks,
                "content_status": document.content_status,
            }
    finally:
        # Pooled connections are bound to this task's event loop
        await engine.dispose()


@worker_process_shutdown.connect
@worker_shutdown.connect
def cancel_active_assistant_runs(**kwargs):
    """Cancel extraction runs still in flight when the worker stops.

    Prefork children track their own runs, so the handler also runs on
    each child's process shutdown, not only in the parent.
    """
    registry = process_document.run_registry
    if not len(registry):
        return
    logger.info(f"Cancelling {len(registry)} active assistant runs on shutdown")
    client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(registry.cancel_all(client))
    finally:
        loop.close()
