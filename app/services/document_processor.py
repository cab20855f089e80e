import logging
from typing import List, Optional, Tuple

from langchain_text_splitters import RecursiveCharacterTextSplitter
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import PlaceholderTextError
from app.models.document import ContentStatus, Document, DocumentType, ProcessingStatus
from app.services.content import is_placeholder_text
from app.services.extraction import DocumentExtractor, ExtractionResult
from app.services.llm import LLMService, llm_service
from app.services.vector_store import VectorStoreService, vector_store_service

logger = logging.getLogger(__name__)

SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


class TextChunker:
    """Splits text into overlapping windows, preferring paragraph, line, sentence, then word breaks."""

    def __init__(self, chunk_size: Optional[int] = None, chunk_overlap: Optional[int] = None):
        self.chunk_size = chunk_size or settings.CHUNK_SIZE
        self.chunk_overlap = settings.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        # No stripping and separators kept, so every chunk is a verbatim slice of the input
        self.text_splitter = RecursiveCharacterTextSplitter(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            separators=SEPARATORS,
            keep_separator=True,
            strip_whitespace=False,
            add_start_index=True,
        )

    def _reject_placeholders(self, text: str):
        if is_placeholder_text(text):
            logger.warning(f"Detected placeholder or error text that should not be processed: {text[:200]}")
            raise PlaceholderTextError(
                "Cannot process placeholder or error text. Please ensure actual content is available."
            )

    def chunk(self, text: str) -> List[str]:
        """Split text into chunks for embedding.

        Whitespace-only chunks are dropped, so long blank runs are not
        reproduced when the chunks are stitched back together.
        """
        return [c for _, c in self.chunk_spans(text)]

    def chunk_spans(self, text: str) -> List[Tuple[int, str]]:
        """Chunks paired with their start offset in ``text``."""
        self._reject_placeholders(text)
        documents = self.text_splitter.create_documents([text])
        return [
            (document.metadata["start_index"], document.page_content)
            for document in documents
            if document.page_content.strip()
        ]


class DocumentProcessor:
    """Extract, chunk, embed and store one document."""

    def __init__(
        self,
        extractor: Optional[DocumentExtractor] = None,
        chunker: Optional[TextChunker] = None,
        llm: Optional[LLMService] = None,
        vector_store: Optional[VectorStoreService] = None,
    ):
        self.extractor = extractor or DocumentExtractor()
        self.chunker = chunker or TextChunker()
        self.llm = llm or llm_service
        self.vector_store = vector_store or vector_store_service

    async def embed_chunks(self, document_id: str, chunks: List[str]) -> List[Tuple[str, List[float]]]:
        """Embed each chunk on its own; failing chunks are skipped, not retried."""
        pairs = []
        for index, chunk in enumerate(chunks):
            try:
                pairs.append((chunk, await self.llm.generate_embedding(chunk)))
            except Exception as e:
                logger.error(f"Error generating embedding for chunk {index} of document {document_id}: {e}")
                continue
        return pairs

    async def process(self, session: AsyncSession, document: Document) -> int:
        """Run the pipeline and return the number of stored chunks.

        Extraction problems are recorded on the document and still end with
        ``processed=True``; only unexpected errors propagate, after the
        document is marked ``failed``.
        """
        document.processing_status = ProcessingStatus.RUNNING.value
        document.processing_error = None
        await session.commit()

        try:
            stored = await self._run(session, document)
        except Exception as e:
            await session.rollback()
            document.processing_status = ProcessingStatus.FAILED.value
            document.processing_error = str(e)[:2000]
            await session.commit()
            raise

        document.processed = True
        document.processing_status = ProcessingStatus.DONE.value
        await session.commit()
        logger.info(f"Processed document {document.id}: {stored} chunks stored")
        return stored

    async def _run(self, session: AsyncSession, document: Document) -> int:
        result: Optional[ExtractionResult] = await self.extractor.extract(document)
        if result is None:
            logger.warning(f"No text could be extracted from document {document.id}")
            return 0

        if document.type == DocumentType.PDF.value or not result.ok:
            # Keep the extracted text (or the error notice) for display and later reprocessing
            document.content = result.text
            document.content_status = result.status.value

        if not result.ok:
            logger.warning(f"Document {document.id} extraction degraded ({result.status.value}): {result.text[:200]}")
            await self.vector_store.delete_all_for_document(session, document.id)
            return 0

        try:
            chunks = self.chunker.chunk(result.text)
        except PlaceholderTextError as e:
            document.content_status = ContentStatus.PLACEHOLDER.value
            document.processing_error = str(e)
            return 0

        pairs = await self.embed_chunks(document.id, chunks)
        if len(pairs) < len(chunks):
            logger.warning(f"Document {document.id}: embedded {len(pairs)}/{len(chunks)} chunks")
        return await self.vector_store.replace_for_document(session, document.id, pairs)
