#!/usr/bin/env python3
"""
Queue documents for (re)processing.

Without arguments, queues every document that is not processed yet or whose
last run failed. Pass document ids to force reprocessing of specific documents.
"""
import asyncio
import sys
import os
sys.path.insert(0, '/app' if os.path.exists('/app/app') else os.getcwd())

from sqlalchemy import select, or_

from app.core.database import engine, get_async_session
from app.models.document import Document, ProcessingStatus
from app.tasks.document_processing import process_document


async def pending_document_ids():
    async with get_async_session() as session:
        result = await session.execute(
            select(Document.id, Document.title).where(
                or_(
                    Document.processed.is_(False),
                    Document.processing_status == ProcessingStatus.FAILED.value,
                )
            )
        )
        rows = result.all()
    await engine.dispose()
    return rows


def main(argv):
    if argv:
        for document_id in argv:
            process_document.delay(document_id, force=True)
            print(f"Queued {document_id} (forced)")
        return

    rows = asyncio.run(pending_document_ids())
    if not rows:
        print("✓ Nothing to reprocess")
        return
    for document_id, title in rows:
        process_document.delay(document_id, force=True)
        print(f"Queued {document_id}: {title}")
    print(f"✓ Queued {len(rows)} document(s)")


if __name__ == "__main__":
    main(sys.argv[1:])
