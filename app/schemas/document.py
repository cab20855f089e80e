"""Document request and response schemas."""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.document import DocumentType


class DocumentCreate(BaseModel):
    """Text or URL document creation schema (PDFs go through the upload endpoint)."""
    title: str = Field(..., min_length=1, description="Document title")
    type: DocumentType = Field(DocumentType.TEXT, description="Document type: text or url")
    content: Optional[str] = Field(None, description="Text content for text documents")
    url: Optional[str] = Field(None, description="Source URL for url documents")


class DocumentResponse(BaseModel):
    """Document response schema."""
    id: str
    title: str
    type: str
    content: Optional[str] = None
    content_status: str
    url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    processed: bool
    processing_status: str
    processing_error: Optional[str] = None
    course_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    """Document list response schema."""
    documents: List[DocumentResponse] = Field(..., description="List of documents")
    total: int = Field(..., description="Total number of documents")


class UploadResponse(BaseModel):
    """PDF upload acknowledgement."""
    id: str
    title: str
    message: str


class ProcessResponse(BaseModel):
    """Processing trigger acknowledgement."""
    message: str
    processed: bool
    processing_status: str
