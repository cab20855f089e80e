"""PDF text extraction with a local parse and per-page vision OCR fallback."""
import base64
import logging
from io import BytesIO
from typing import List, Optional

import fitz  # PyMuPDF for page rendering
from openai import AsyncOpenAI
from pypdf import PdfReader

from app.core.config import settings
from app.core.exceptions import PdfExtractionError

logger = logging.getLogger(__name__)

OCR_PROMPT = (
    "Extract all text from this page image exactly as it appears. "
    "Preserve paragraphs, headings, lists and tables. Do not summarize or add commentary."
)
PAGE_SEPARATOR = "\n\n--- Page {number} ---\n\n"


class VisionPdfExtractor:
    """Reads embedded text with pypdf; scanned PDFs are rendered page by page and OCR'd."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        min_text_length: Optional[int] = None,
        zoom: float = 2.0,
    ):
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self.min_text_length = settings.PDF_MIN_TEXT_LENGTH if min_text_length is None else min_text_length
        self.zoom = zoom

    def extract_text_locally(self, pdf_bytes: bytes) -> str:
        """Extract embedded text from PDF"""
        reader = PdfReader(BytesIO(pdf_bytes))
        return "\n".join(page.extract_text() or "" for page in reader.pages)

    def render_pages(self, pdf_bytes: bytes) -> List[bytes]:
        """Render every page to PNG bytes, in page order."""
        images = []
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        try:
            matrix = fitz.Matrix(self.zoom, self.zoom)
            for page in doc:
                images.append(page.get_pixmap(matrix=matrix).tobytes("png"))
        finally:
            doc.close()
        return images

    async def ocr_page(self, image_png: bytes) -> str:
        encoded = base64.b64encode(image_png).decode("ascii")
        response = await self.client.chat.completions.create(
            model=settings.OPENAI_VISION_MODEL,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": OCR_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{encoded}"}},
                    ],
                }
            ],
            max_tokens=4096,
            temperature=0,
        )
        return response.choices[0].message.content or ""

    async def extract(self, document_id: str, pdf_bytes: bytes, file_name: Optional[str] = None) -> str:
        try:
            text = self.extract_text_locally(pdf_bytes)
        except Exception as e:
            logger.warning(f"Local PDF parse failed for document {document_id}: {e}")
            text = ""

        if len(text.strip()) > self.min_text_length:
            logger.info(f"Extracted {len(text)} characters locally from PDF document {document_id}")
            return text

        logger.info(f"PDF document {document_id} has little embedded text, falling back to page OCR")
        pages = self.render_pages(pdf_bytes)
        page_texts = [(await self.ocr_page(image)).strip() for image in pages]
        if not any(page_texts):
            raise PdfExtractionError("No text could be extracted from the PDF pages")

        return "".join(
            PAGE_SEPARATOR.format(number=number) + page_text
            for number, page_text in enumerate(page_texts, 1)
        ).strip()
