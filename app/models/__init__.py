from app.models.user import User
from app.models.course import Course
from app.models.document import Document, VectorStoreEntry
from app.models.chat import Chat, Message, Citation

__all__ = ["User", "Course", "Document", "VectorStoreEntry", "Chat", "Message", "Citation"]
