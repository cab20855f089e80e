"""Markers that separate real document text from placeholders and error notices."""

# Text containing any of these must never be chunked or embedded.
PLACEHOLDER_MARKERS = (
    "would be processed",
    "PDF Content from",
    "Failed to download",
    "Error processing PDF",
    "Error fetching URL",
    "[PDF content being processed",
    "[PROCESSING",
)

# Chunks carrying these phrases stand in for text that could not be extracted.
UNAVAILABLE_MARKERS = (
    "cannot be directly extracted",
    "content not available",
)

ASSISTANT_REFUSAL_MARKERS = ("cannot directly extract text", "upload the file again")

REPROCESS_NOTICE = (
    "[PDF content not available: this text cannot be directly extracted from the uploaded "
    "PDF document. Please try reprocessing this document for improved extraction.]"
)

UPLOAD_PLACEHOLDER = "[PDF content being processed]"
UPLOAD_PLACEHOLDER_OCR = "[PDF content being processed with OCR]"


def is_placeholder_text(text: str) -> bool:
    return any(marker in text for marker in PLACEHOLDER_MARKERS)


def is_unavailable_notice(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in UNAVAILABLE_MARKERS)


def is_assistant_refusal(text: str) -> bool:
    return all(marker in text for marker in ASSISTANT_REFUSAL_MARKERS)


def pdf_error(reason: str) -> str:
    return f"[Error processing PDF: {reason}]"


def url_error(reason: str) -> str:
    return f"[Error fetching URL: {reason}]"
