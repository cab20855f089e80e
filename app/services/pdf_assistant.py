"""
PDF text extraction through an OpenAI file-search assistant.

The PDF is uploaded, attached to a fresh thread, and an extraction assistant
is run on it. Run status is polled until it reaches a terminal state or the
configured timeout elapses.
"""
import logging
from typing import Dict, List, Optional

from openai import AsyncOpenAI
from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_delay, wait_fixed

from app.core.config import settings
from app.core.exceptions import PdfExtractionError

logger = logging.getLogger(__name__)

TERMINAL_RUN_STATUSES = {"completed", "failed", "cancelled", "expired", "incomplete"}
CANCELLABLE_RUN_STATUSES = {"queued", "in_progress"}

ASSISTANT_NAME = "PDF Processor"
ASSISTANT_INSTRUCTIONS = """You are a PDF processing assistant designed to extract text from PDF documents.
Your main tasks are:
1. Extract all text from uploaded PDF files with high accuracy
2. Maintain the document's structure (paragraphs, sections, tables)
3. Handle complex formatting, tables, and multi-column layouts
4. Process mathematical equations, technical diagrams, and special characters
Always extract text exactly as it appears without summarizing or analyzing the content."""

EXTRACTION_PROMPT = (
    "Please extract all text from this PDF document. "
    "Maintain all formatting, paragraphs, tables, and structure."
)


class AssistantRunRegistry:
    """Threads with an extraction run in flight, keyed by document id."""

    def __init__(self):
        self._threads: Dict[str, str] = {}

    def track(self, document_id: str, thread_id: str) -> None:
        self._threads[document_id] = thread_id

    def release(self, document_id: str) -> None:
        self._threads.pop(document_id, None)

    def active(self) -> Dict[str, str]:
        return dict(self._threads)

    def __len__(self) -> int:
        return len(self._threads)

    async def cancel_all(self, client: AsyncOpenAI) -> int:
        """Cancel queued or in-progress runs on every tracked thread.

        Returns the number of runs cancelled. Errors on one thread are
        logged and do not stop the others.
        """
        cancelled = 0
        for document_id, thread_id in self.active().items():
            try:
                logger.info(f"Cancelling runs for document {document_id} on thread {thread_id}")
                runs = await client.beta.threads.runs.list(thread_id=thread_id)
                for run in runs.data:
                    if run.status in CANCELLABLE_RUN_STATUSES:
                        logger.info(f"Cancelling run {run.id}")
                        await client.beta.threads.runs.cancel(run_id=run.id, thread_id=thread_id)
                        cancelled += 1
            except Exception as e:
                logger.error(f"Error cancelling runs for document {document_id}: {e}", exc_info=True)
            finally:
                self.release(document_id)
        return cancelled


class AssistantPdfExtractor:
    """Delegates the whole PDF to an assistant run and collects its answer."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        registry: Optional[AssistantRunRegistry] = None,
        assistant_id: Optional[str] = None,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self.registry = registry if registry is not None else AssistantRunRegistry()
        self.assistant_id = assistant_id if assistant_id is not None else settings.OPENAI_PDF_ASSISTANT_ID
        self.poll_interval = settings.ASSISTANT_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.timeout = settings.ASSISTANT_TIMEOUT_SECONDS if timeout is None else timeout

    async def get_assistant_id(self) -> str:
        """Reuse the configured assistant, creating one when it is missing."""
        if self.assistant_id:
            try:
                assistant = await self.client.beta.assistants.retrieve(assistant_id=self.assistant_id)
                return assistant.id
            except Exception as e:
                logger.warning(f"Could not retrieve assistant {self.assistant_id}, creating new one: {e}")

        assistant = await self.client.beta.assistants.create(
            name=ASSISTANT_NAME,
            description="Assistant specialized in extracting and processing text from PDFs",
            model=settings.OPENAI_ASSISTANT_MODEL,
            instructions=ASSISTANT_INSTRUCTIONS,
            tools=[{"type": "file_search"}],
        )
        logger.info(f"Created new PDF assistant with ID: {assistant.id}")
        self.assistant_id = assistant.id
        return assistant.id

    async def extract(self, document_id: str, pdf_bytes: bytes, file_name: Optional[str] = None) -> str:
        assistant_id = await self.get_assistant_id()

        uploaded = await self.client.files.create(
            file=(file_name or "document.pdf", pdf_bytes, "application/pdf"),
            purpose="assistants",
        )
        logger.info(f"Uploaded PDF for document {document_id} as file {uploaded.id}")

        thread = await self.client.beta.threads.create()
        self.registry.track(document_id, thread.id)
        try:
            await self.client.beta.threads.messages.create(
                thread_id=thread.id,
                role="user",
                content=EXTRACTION_PROMPT,
                attachments=[{"file_id": uploaded.id, "tools": [{"type": "file_search"}]}],
            )
            run = await self.client.beta.threads.runs.create(thread_id=thread.id, assistant_id=assistant_id)
            status = await self._wait_for_run(thread.id, run.id)
            if status != "completed":
                raise PdfExtractionError(f"Assistant processing timed out or failed with status: {status}")

            text = await self._collect_assistant_text(thread.id)
        finally:
            self.registry.release(document_id)

        if not text.strip():
            raise PdfExtractionError("Assistant did not return any extracted text")
        logger.info(f"Extracted {len(text)} characters from PDF document {document_id}")
        return text.strip()

    async def _check_run_status(self, thread_id: str, run_id: str) -> str:
        try:
            run = await self.client.beta.threads.runs.retrieve(run_id=run_id, thread_id=thread_id)
            return run.status
        except Exception as e:
            logger.error(f"Error checking run status: {e}")
            return "failed"

    async def _wait_for_run(self, thread_id: str, run_id: str) -> str:
        status = await self._check_run_status(thread_id, run_id)
        if status in TERMINAL_RUN_STATUSES:
            return status

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_result(lambda s: s not in TERMINAL_RUN_STATUSES),
                wait=wait_fixed(self.poll_interval),
                stop=stop_after_delay(self.timeout),
            ):
                with attempt:
                    status = await self._check_run_status(thread_id, run_id)
                    logger.debug(f"Processing status: {status}")
                if not attempt.retry_state.outcome.failed:
                    attempt.retry_state.set_result(status)
        except RetryError:
            logger.warning(f"Run {run_id} still {status} after {self.timeout}s")
        return status

    async def _collect_assistant_text(self, thread_id: str) -> str:
        messages = await self.client.beta.threads.messages.list(thread_id=thread_id, order="asc")
        assistant_messages = [m for m in messages.data if m.role == "assistant"]
        if not assistant_messages:
            raise PdfExtractionError("No response from assistant")

        parts: List[str] = []
        for message in assistant_messages:
            for content in message.content:
                if content.type == "text":
                    parts.append(content.text.value)
        return "\n\n".join(parts)
