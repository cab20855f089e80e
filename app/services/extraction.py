"""
Text extraction for course documents.

Extraction never raises: failures come back as bracketed error text tagged
with ``ContentStatus.ERROR`` so the document can still be marked processed
and the UI can offer a reprocess.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from bs4 import BeautifulSoup

from app.core.config import settings
from app.models.document import ContentStatus, Document, DocumentType
from app.services.content import (
    REPROCESS_NOTICE,
    is_assistant_refusal,
    is_placeholder_text,
    pdf_error,
    url_error,
)
from app.services.pdf_assistant import AssistantPdfExtractor, AssistantRunRegistry
from app.services.pdf_vision import VisionPdfExtractor

logger = logging.getLogger(__name__)


class PdfTextExtractor(Protocol):
    async def extract(self, document_id: str, pdf_bytes: bytes, file_name: Optional[str] = None) -> str:
        ...


@dataclass
class ExtractionResult:
    text: str
    status: ContentStatus

    @property
    def ok(self) -> bool:
        return self.status == ContentStatus.OK


def build_pdf_extractor(
    strategy: Optional[str] = None,
    registry: Optional[AssistantRunRegistry] = None,
) -> PdfTextExtractor:
    """One PDF strategy per deployment, picked by ``PDF_EXTRACTION_STRATEGY``."""
    strategy = (strategy or settings.PDF_EXTRACTION_STRATEGY).lower()
    if strategy == "assistant":
        return AssistantPdfExtractor(registry=registry)
    if strategy == "vision":
        return VisionPdfExtractor()
    raise ValueError(f"Unknown PDF extraction strategy: {strategy}")


def html_to_text(html: str) -> str:
    """Visible page text with script/style removed and whitespace collapsed."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    root = soup.body or soup
    text = root.get_text(separator=" ")
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"\n+", "\n", text)
    return text.strip()


class DocumentExtractor:
    """Turns a text, URL or PDF document into plain text."""

    def __init__(self, pdf_extractor: Optional[PdfTextExtractor] = None, http_timeout: Optional[float] = None):
        self._pdf_extractor = pdf_extractor
        self.http_timeout = settings.HTTP_TIMEOUT_SECONDS if http_timeout is None else http_timeout

    @property
    def pdf_extractor(self) -> PdfTextExtractor:
        if self._pdf_extractor is None:
            self._pdf_extractor = build_pdf_extractor()
        return self._pdf_extractor

    async def extract(self, document: Document) -> Optional[ExtractionResult]:
        doc_type = document.type
        if doc_type == DocumentType.TEXT.value:
            return ExtractionResult(document.content or "", ContentStatus.OK)

        if doc_type == DocumentType.URL.value:
            if not document.url:
                return None
            try:
                return ExtractionResult(await self.extract_from_url(document.url), ContentStatus.OK)
            except Exception as e:
                logger.error(f"Error extracting text from URL {document.url}: {e}")
                return ExtractionResult(url_error(str(e) or type(e).__name__), ContentStatus.ERROR)

        if doc_type == DocumentType.PDF.value:
            return await self._extract_pdf(document)

        logger.error(f"Unsupported document type: {doc_type}")
        return None

    async def extract_from_url(self, url: str) -> str:
        async with httpx.AsyncClient(timeout=self.http_timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
        return html_to_text(response.text)

    async def download(self, url: str) -> bytes:
        async with httpx.AsyncClient(timeout=self.http_timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
        return response.content

    async def _extract_pdf(self, document: Document) -> ExtractionResult:
        content = document.content
        if (
            content
            and document.content_status == ContentStatus.OK.value
            and not is_placeholder_text(content)
        ):
            return ExtractionResult(content, ContentStatus.OK)

        try:
            if document.file_data:
                pdf_bytes = document.file_data
            elif document.url:
                pdf_bytes = await self.download(document.url)
            else:
                raise ValueError(
                    f"Cannot process PDF document with ID {document.id}. No content or file available."
                )

            text = await self.pdf_extractor.extract(document.id, pdf_bytes, document.file_name)
        except Exception as e:
            logger.error(f"Error processing PDF document {document.id}: {e}", exc_info=True)
            return ExtractionResult(pdf_error(str(e) or type(e).__name__), ContentStatus.ERROR)

        if not text or not text.strip():
            return ExtractionResult(pdf_error("No text content was extracted"), ContentStatus.ERROR)
        if is_assistant_refusal(text):
            return ExtractionResult(REPROCESS_NOTICE, ContentStatus.PLACEHOLDER)
        return ExtractionResult(text, ContentStatus.OK)
