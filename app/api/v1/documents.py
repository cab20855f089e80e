"""Document management endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import RedirectResponse, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from app.api.deps import get_database, get_current_user, get_owned_course, get_owned_document
from app.models.document import ContentStatus, Document, DocumentType, ProcessingStatus
from app.models.user import User
from app.schemas.document import (
    DocumentCreate,
    DocumentListResponse,
    DocumentResponse,
    ProcessResponse,
    UploadResponse,
)
from app.services.content import UPLOAD_PLACEHOLDER, UPLOAD_PLACEHOLDER_OCR
from app.services.vector_store import vector_store_service
from app.tasks.document_processing import process_document

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])


def enqueue_processing(document_id: str, force: bool = False) -> bool:
    """Hand a document to the worker; the request never waits for processing."""
    try:
        process_document.delay(document_id, force=force)
        return True
    except Exception as e:
        # Document stays pending and can be re-triggered through /process
        logger.error(f"Failed to enqueue processing for document {document_id}: {e}", exc_info=True)
        return False


@router.get("/courses/{course_id}/documents", response_model=DocumentListResponse)
async def list_documents(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """List a course's documents, newest first."""
    await get_owned_course(db, course_id, user)
    result = await db.execute(
        select(Document).where(Document.course_id == course_id).order_by(Document.created_at.desc())
    )
    documents = result.scalars().all()
    return DocumentListResponse(
        documents=[DocumentResponse.model_validate(d) for d in documents],
        total=len(documents),
    )


@router.post(
    "/courses/{course_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(
    course_id: str,
    payload: DocumentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Create a text or URL document and queue it for processing."""
    await get_owned_course(db, course_id, user)

    if payload.type == DocumentType.PDF:
        raise HTTPException(status_code=400, detail="PDF documents must be uploaded as files")
    if payload.type == DocumentType.URL and not payload.url:
        raise HTTPException(status_code=400, detail="URL is required for url documents")
    if payload.type == DocumentType.TEXT and not (payload.content and payload.content.strip()):
        raise HTTPException(status_code=400, detail="Content is required for text documents")

    document = Document(
        title=payload.title,
        type=payload.type.value,
        content=payload.content if payload.type == DocumentType.TEXT else None,
        url=payload.url if payload.type == DocumentType.URL else None,
        course_id=course_id,
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)
    logger.info(f"Created {document.type} document {document.id} in course {course_id}")

    enqueue_processing(document.id)
    return document


@router.post(
    "/courses/{course_id}/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    course_id: str,
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    useOcr: bool = Form(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Upload a PDF; text extraction happens in the background."""
    await get_owned_course(db, course_id, user)

    file_name = file.filename or "document.pdf"
    is_pdf = file.content_type == "application/pdf" or file_name.lower().endswith(".pdf")
    if not is_pdf:
        raise HTTPException(status_code=400, detail="Only PDF files are supported")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    document = Document(
        title=title or file_name,
        type=DocumentType.PDF.value,
        content=UPLOAD_PLACEHOLDER_OCR if useOcr else UPLOAD_PLACEHOLDER,
        content_status=ContentStatus.PLACEHOLDER.value,
        file_name=file_name,
        file_size=len(data),
        file_data=data,
        course_id=course_id,
    )
    db.add(document)
    await db.commit()
    logger.info(f"Uploaded PDF {file_name} ({len(data)} bytes) as document {document.id}")

    enqueue_processing(document.id)
    return UploadResponse(
        id=document.id,
        title=document.title,
        message="Document uploaded successfully. Processing has started.",
    )


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Get a document; clients poll this for processing state."""
    return await get_owned_document(db, document_id, user)


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Delete a document and its vector rows."""
    document = await get_owned_document(db, document_id, user)
    removed = await vector_store_service.delete_all_for_document(db, document_id)
    await db.delete(document)
    await db.commit()
    logger.info(f"Deleted document {document_id} and {removed} vector rows")
    return {"success": True}


@router.post("/documents/{document_id}/process", response_model=ProcessResponse)
async def process_document_now(
    document_id: str,
    force: bool = Query(False, description="Reprocess even if already processed"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Queue a document for (re)processing."""
    document = await get_owned_document(db, document_id, user)

    if document.processed and not force:
        return ProcessResponse(
            message="Document already processed",
            processed=True,
            processing_status=document.processing_status,
        )

    document.processing_status = ProcessingStatus.PENDING.value
    document.processing_error = None
    await db.commit()

    queued = enqueue_processing(document_id, force=True)
    return ProcessResponse(
        message="Document processing started" if queued else "Document could not be queued for processing",
        processed=document.processed,
        processing_status=document.processing_status,
    )


@router.get("/documents/{document_id}/file")
async def get_document_file(
    document_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Serve the original PDF, or redirect to its source URL."""
    document = await get_owned_document(db, document_id, user)
    if document.type != DocumentType.PDF.value:
        raise HTTPException(status_code=400, detail="Document is not a PDF")
    if document.url:
        return RedirectResponse(document.url)

    result = await db.execute(
        select(Document)
        .options(undefer(Document.file_data))
        .where(Document.id == document_id)
        .execution_options(populate_existing=True)
    )
    data = result.scalar_one().file_data
    if not data:
        raise HTTPException(status_code=404, detail="File not available")

    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{document.file_name or "document.pdf"}"'},
    )
