"""Course management endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_database, get_current_user, get_owned_course
from app.models.chat import Chat
from app.models.course import Course
from app.models.document import Document
from app.models.user import User
from app.schemas.course import CourseCreate, CourseResponse, CourseWithCounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["courses"])


async def _with_counts(db: AsyncSession, course: Course) -> CourseWithCounts:
    document_count = await db.scalar(
        select(func.count()).select_from(Document).where(Document.course_id == course.id)
    )
    chat_count = await db.scalar(
        select(func.count()).select_from(Chat).where(Chat.course_id == course.id)
    )
    return CourseWithCounts(
        **CourseResponse.model_validate(course).model_dump(),
        document_count=document_count or 0,
        chat_count=chat_count or 0,
    )


@router.get("", response_model=List[CourseWithCounts])
async def list_courses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """List the current user's courses, newest first."""
    result = await db.execute(
        select(Course).where(Course.user_id == user.id).order_by(Course.created_at.desc())
    )
    return [await _with_counts(db, course) for course in result.scalars().all()]


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Create a course."""
    course = Course(name=payload.name, description=payload.description, user_id=user.id)
    db.add(course)
    await db.commit()
    await db.refresh(course)
    logger.info(f"Created course {course.id} for user {user.id}")
    return course


@router.get("/{course_id}", response_model=CourseWithCounts)
async def get_course(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Get a course with its document and chat counts."""
    course = await get_owned_course(db, course_id, user)
    return await _with_counts(db, course)


@router.patch("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: str,
    payload: CourseCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Rename a course or change its description."""
    course = await get_owned_course(db, course_id, user)
    course.name = payload.name
    course.description = payload.description
    await db.commit()
    await db.refresh(course)
    return course


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Delete a course with its documents, vectors and chats."""
    course = await get_owned_course(db, course_id, user)
    await db.delete(course)
    await db.commit()
    logger.info(f"Deleted course {course_id}")
    return {"success": True}
