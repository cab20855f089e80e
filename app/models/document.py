import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Boolean, Integer, LargeBinary
from sqlalchemy.orm import deferred, relationship
from sqlalchemy.sql import func

from app.core.database import Base


class DocumentType(str, enum.Enum):
    TEXT = "text"
    URL = "url"
    PDF = "pdf"


class ContentStatus(str, enum.Enum):
    """What the ``content`` column currently holds."""
    OK = "ok"
    PLACEHOLDER = "placeholder"  # waiting for extraction, or a notice asking to reprocess
    ERROR = "error"  # bracketed error text from a failed extraction


class ProcessingStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    type = Column(String(10), nullable=False, default=DocumentType.TEXT.value)
    content = Column(Text)
    content_status = Column(String(20), nullable=False, default=ContentStatus.OK.value)
    url = Column(String(2048))
    file_name = Column(String(255))
    file_size = Column(Integer)
    file_data = deferred(Column(LargeBinary))  # uploaded PDF bytes
    processed = Column(Boolean, nullable=False, default=False, index=True)
    processing_status = Column(String(20), nullable=False, default=ProcessingStatus.PENDING.value, index=True)
    processing_error = Column(Text)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    course = relationship("Course", back_populates="documents")
    vectors = relationship("VectorStoreEntry", back_populates="document", cascade="all, delete-orphan")


class VectorStoreEntry(Base):
    """One embedded chunk; ``embedding`` is a JSON array of floats."""
    __tablename__ = "vector_store"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    document_id = Column(String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    chunk = Column(Text, nullable=False)
    embedding = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="vectors")
