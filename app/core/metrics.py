"""
Performance metrics and latency tracking for chat replies.
"""
import time
import logging
import uuid
from typing import Dict, Any, Optional
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import json

logger = logging.getLogger(__name__)


@dataclass
class RequestMetrics:
    """Metrics for a single chat reply."""
    trace_id: str
    chat_id: str
    user_id: Optional[str] = None

    # Timing breakdowns
    start_time: float = field(default_factory=time.time)
    retrieval_time_ms: Optional[float] = None
    web_search_time_ms: Optional[float] = None
    llm_time_ms: Optional[float] = None
    total_time_ms: Optional[float] = None

    # Request details
    query: Optional[str] = None
    retrieved_chunks_count: int = 0
    citations_count: int = 0
    response_length: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for logging."""
        return {
            "trace_id": self.trace_id,
            "chat_id": self.chat_id,
            "user_id": self.user_id,
            "query": self.query[:100] if self.query else None,  # Truncate long queries
            "retrieval_time_ms": self.retrieval_time_ms,
            "web_search_time_ms": self.web_search_time_ms,
            "llm_time_ms": self.llm_time_ms,
            "total_time_ms": self.total_time_ms,
            "retrieved_chunks_count": self.retrieved_chunks_count,
            "citations_count": self.citations_count,
            "response_length": self.response_length,
        }

    def emit(self, level: str = "INFO"):
        """Emit metrics as structured JSON log."""
        log_message = json.dumps(self.to_dict())

        if level == "INFO":
            logger.info(f"METRICS: {log_message}")
        elif level == "WARNING":
            logger.warning(f"METRICS: {log_message}")
        else:
            logger.error(f"METRICS: {log_message}")


class MetricsCollector:
    """Collects timings for one chat reply."""

    def __init__(self, chat_id: str, user_id: Optional[str] = None, query: Optional[str] = None):
        self.metrics = RequestMetrics(
            trace_id=str(uuid.uuid4()),
            chat_id=chat_id,
            user_id=user_id,
            query=query
        )
        self._retrieval_start: Optional[float] = None
        self._web_search_start: Optional[float] = None
        self._llm_start: Optional[float] = None

    def start_retrieval(self):
        """Mark start of retrieval."""
        self._retrieval_start = time.time()

    def end_retrieval(self, chunk_count: int = 0):
        """Mark end of retrieval."""
        if self._retrieval_start:
            self.metrics.retrieval_time_ms = (time.time() - self._retrieval_start) * 1000
            self.metrics.retrieved_chunks_count = chunk_count

    def start_web_search(self):
        self._web_search_start = time.time()

    def end_web_search(self):
        if self._web_search_start:
            self.metrics.web_search_time_ms = (time.time() - self._web_search_start) * 1000

    def start_llm(self):
        """Mark start of LLM generation."""
        self._llm_start = time.time()

    def end_llm(self):
        """Mark end of LLM generation."""
        if self._llm_start:
            self.metrics.llm_time_ms = (time.time() - self._llm_start) * 1000

    def record_response(self, response_length: int, citations_count: int = 0):
        self.metrics.response_length = response_length
        self.metrics.citations_count = citations_count

    def finish(self):
        """Finish metrics collection."""
        self.metrics.total_time_ms = (time.time() - self.metrics.start_time) * 1000
        return self.metrics


@asynccontextmanager
async def track_request(chat_id: str, user_id: Optional[str] = None, query: Optional[str] = None):
    """Context manager for tracking request metrics."""
    collector = MetricsCollector(chat_id, user_id, query)
    try:
        yield collector
    finally:
        metrics = collector.finish()
        metrics.emit()
