"""Domain exceptions for the document pipeline."""


class DocumentProcessingError(Exception):
    """Base class for ingestion pipeline failures."""


class PlaceholderTextError(DocumentProcessingError):
    """Raised when placeholder or error text reaches the chunker."""


class PdfExtractionError(DocumentProcessingError):
    """Raised by a PDF strategy when no usable text could be produced."""
