"""Chat request and response schemas."""
from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime


class ChatCreate(BaseModel):
    """Chat creation schema."""
    title: Optional[str] = Field(None, description="Chat title; generated when omitted")
    type: Literal["general", "assignment"] = Field("general", description="Chat type")
    assignment_name: Optional[str] = Field(None, description="Assignment name for assignment chats")
    first_message: Optional[str] = Field(None, description="Opening user message")


class ChatResponse(BaseModel):
    """Chat response schema."""
    id: str
    title: str
    type: str
    assignment_name: Optional[str] = None
    course_id: str
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChatWithCourse(ChatResponse):
    """Chat plus the owning course's name."""
    course_name: str
    message_count: int = 0


class ChatOptions(BaseModel):
    """Per-message chat options."""
    enable_citations: bool = Field(True, description="Attach retrieved chunks as citations")
    enable_web_search: bool = Field(False, description="Add web search results to the prompt")


class SendMessageRequest(BaseModel):
    """User message schema."""
    message: str = Field(..., min_length=1, description="User message")
    options: ChatOptions = Field(default_factory=ChatOptions)


class CitationResponse(BaseModel):
    """Citation schema."""
    id: Optional[str] = None
    document_id: str
    source_text: str

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    """Stored chat message."""
    id: str
    content: str
    role: str
    chat_id: str
    created_at: Optional[datetime] = None
    citations: List[CitationResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ReplyResponse(BaseModel):
    """Assistant reply with citations."""
    id: str
    content: str
    citations: List[CitationResponse] = Field(default_factory=list)


class DeleteEmptyResponse(BaseModel):
    success: bool = True
    deleted: bool
