"""Course request and response schemas."""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class CourseCreate(BaseModel):
    """Course creation / update schema."""
    name: str = Field(..., min_length=1, description="Course name")
    description: Optional[str] = Field(None, description="Course description")


class CourseResponse(BaseModel):
    """Course response schema."""
    id: str
    name: str
    description: Optional[str] = None
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CourseWithCounts(CourseResponse):
    """Course with related record counts."""
    document_count: int = 0
    chat_count: int = 0
