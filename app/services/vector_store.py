import json
import logging
from typing import Iterable, List, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func

from app.models.document import VectorStoreEntry

logger = logging.getLogger(__name__)


class VectorStoreService:
    """Chunk/embedding rows kept as JSON text in a relational table.

    There is no index and no update-in-place: rows are written once per
    processing run and read back in full for a similarity scan.
    """

    async def put(
        self,
        session: AsyncSession,
        document_id: str,
        chunk: str,
        embedding: Sequence[float],
    ) -> VectorStoreEntry:
        """Append one chunk row. Caller commits."""
        entry = VectorStoreEntry(
            document_id=document_id,
            chunk=chunk,
            embedding=json.dumps(list(embedding)),
        )
        session.add(entry)
        return entry

    async def all_for_documents(
        self,
        session: AsyncSession,
        document_ids: Sequence[str],
    ) -> List[VectorStoreEntry]:
        if not document_ids:
            return []
        result = await session.execute(
            select(VectorStoreEntry)
            .where(VectorStoreEntry.document_id.in_(list(document_ids)))
            .order_by(VectorStoreEntry.created_at)
        )
        return list(result.scalars().all())

    async def delete_all_for_document(self, session: AsyncSession, document_id: str) -> int:
        """Remove every row for a document. Caller commits."""
        result = await session.execute(
            delete(VectorStoreEntry).where(VectorStoreEntry.document_id == document_id)
        )
        return result.rowcount or 0

    async def replace_for_document(
        self,
        session: AsyncSession,
        document_id: str,
        pairs: Iterable[Tuple[str, Sequence[float]]],
    ) -> int:
        """Swap a document's rows for a new set in one transaction.

        Reprocessing the same document therefore never duplicates chunks.
        """
        removed = await self.delete_all_for_document(session, document_id)
        added = 0
        for chunk, embedding in pairs:
            await self.put(session, document_id, chunk, embedding)
            added += 1
        await session.commit()
        if removed:
            logger.info(f"Replaced {removed} old chunk rows with {added} new rows for document {document_id}")
        return added

    async def count_for_document(self, session: AsyncSession, document_id: str) -> int:
        result = await session.execute(
            select(func.count()).select_from(VectorStoreEntry).where(VectorStoreEntry.document_id == document_id)
        )
        return result.scalar_one()


vector_store_service = VectorStoreService()
