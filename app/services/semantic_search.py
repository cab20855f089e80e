"""Course-scoped semantic search over stored chunk embeddings."""
import json
import logging
from dataclasses import dataclass, asdict
from typing import List, Optional, Sequence

import numpy as np
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.document import Document
from app.services.llm import LLMService, llm_service
from app.services.vector_store import VectorStoreService, vector_store_service

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    document_id: str
    chunk: str
    similarity: float

    def to_dict(self):
        return asdict(self)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|); 0.0 for mismatched dimensions or a zero vector."""
    if len(a) != len(b):
        logger.error(f"Vector dimension mismatch: {len(a)} vs {len(b)}")
        return 0.0

    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    magnitude_a = np.linalg.norm(vec_a)
    magnitude_b = np.linalg.norm(vec_b)
    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    similarity = float(np.dot(vec_a, vec_b) / (magnitude_a * magnitude_b))
    return max(-1.0, min(1.0, similarity))


class SemanticSearchService:
    """Linear cosine scan over every chunk of a course's processed documents."""

    def __init__(self, llm: Optional[LLMService] = None, vector_store: Optional[VectorStoreService] = None):
        self.llm = llm or llm_service
        self.vector_store = vector_store or vector_store_service

    async def processed_document_ids(self, session: AsyncSession, course_id: str) -> List[str]:
        result = await session.execute(
            select(Document.id).where(Document.course_id == course_id, Document.processed.is_(True))
        )
        return list(result.scalars().all())

    async def search(
        self,
        session: AsyncSession,
        query: str,
        course_id: str,
        limit: Optional[int] = None,
    ) -> List[SearchResult]:
        if limit is None:
            limit = settings.TOP_K_RESULTS
        try:
            document_ids = await self.processed_document_ids(session, course_id)
            logger.info(f"Found {len(document_ids)} processed documents in course {course_id}")
            if not document_ids:
                return []

            query_embedding = await self.llm.generate_embedding(query)

            rows = await self.vector_store.all_for_documents(session, document_ids)
            if not rows:
                logger.info("No vector embeddings found. Document processing might have failed.")
                return []

            results = []
            for row in rows:
                try:
                    embedding = json.loads(row.embedding)
                except (TypeError, ValueError) as e:
                    logger.error(f"Error parsing embedding for document {row.document_id}: {e}")
                    continue
                results.append(
                    SearchResult(
                        document_id=row.document_id,
                        chunk=row.chunk,
                        similarity=cosine_similarity(query_embedding, embedding),
                    )
                )
        except Exception as e:
            logger.error(f"Error performing semantic search: {e}", exc_info=True)
            return []

        results.sort(key=lambda r: r.similarity, reverse=True)
        top = results[:limit]
        logger.info(f"Returning top {len(top)} of {len(results)} chunks for query: {query[:50]}")
        return top


semantic_search_service = SemanticSearchService()
