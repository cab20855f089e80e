"""Chat endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.deps import get_database, get_current_user, get_owned_chat, get_owned_course
from app.models.chat import Chat, Message
from app.models.course import Course
from app.models.user import User
from app.schemas.chat import (
    ChatCreate,
    ChatResponse,
    ChatWithCourse,
    CitationResponse,
    DeleteEmptyResponse,
    MessageResponse,
    ReplyResponse,
    SendMessageRequest,
)
from app.services.chat_service import chat_service
from app.services.llm import llm_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chats"])


def _message_counts():
    return (
        select(Message.chat_id, func.count(Message.id).label("message_count"))
        .group_by(Message.chat_id)
        .subquery()
    )


async def _chats_with_course(db: AsyncSession, query) -> List[ChatWithCourse]:
    result = await db.execute(query)
    return [
        ChatWithCourse(
            **ChatResponse.model_validate(chat).model_dump(),
            course_name=course_name,
            message_count=message_count or 0,
        )
        for chat, course_name, message_count in result.all()
    ]


def _chat_listing():
    counts = _message_counts()
    return (
        select(Chat, Course.name, counts.c.message_count)
        .join(Course, Course.id == Chat.course_id)
        .outerjoin(counts, counts.c.chat_id == Chat.id)
    )


@router.get("/courses/{course_id}/chats", response_model=List[ChatWithCourse])
async def list_course_chats(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """List the user's chats in a course, most recently active first."""
    await get_owned_course(db, course_id, user)
    query = (
        _chat_listing()
        .where(Chat.course_id == course_id, Chat.user_id == user.id)
        .order_by(Chat.updated_at.desc())
    )
    return await _chats_with_course(db, query)


@router.post(
    "/courses/{course_id}/chats",
    response_model=ChatResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_chat(
    course_id: str,
    payload: ChatCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Create a chat, optionally seeded with the user's first message."""
    course = await get_owned_course(db, course_id, user)

    title = payload.title
    if not title and payload.type == "general":
        # Untitled general chats reuse the course's existing general chat
        existing = await db.scalar(
            select(Chat)
            .where(Chat.course_id == course_id, Chat.user_id == user.id, Chat.type == "general")
            .order_by(Chat.created_at)
            .limit(1)
        )
        if existing is not None:
            return existing
        if payload.first_message:
            title = await llm_service.generate_chat_title(payload.first_message, course.name)
        else:
            title = f"General Chat - {course.name}"
    elif not title:
        if payload.first_message:
            context = f"{course.name} ({payload.assignment_name})" if payload.assignment_name else course.name
            title = await llm_service.generate_chat_title(payload.first_message, context)
        elif not payload.assignment_name:
            raise HTTPException(status_code=400, detail="Title or assignment name is required")
        else:
            title = f"Assignment: {payload.assignment_name}"

    chat = Chat(
        title=title,
        type=payload.type,
        assignment_name=payload.assignment_name if payload.type == "assignment" else None,
        course_id=course_id,
        user_id=user.id,
    )
    db.add(chat)
    if payload.first_message and payload.first_message.strip():
        chat.messages.append(Message(role="user", content=payload.first_message))
    await db.commit()
    await db.refresh(chat)
    logger.info(f"Created {chat.type} chat {chat.id} in course {course_id}")
    return chat


@router.get("/chats/recent", response_model=List[ChatWithCourse])
async def list_recent_chats(
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """The user's most recently updated chats across all courses."""
    query = _chat_listing().where(Chat.user_id == user.id).order_by(Chat.updated_at.desc()).limit(limit)
    return await _chats_with_course(db, query)


@router.get("/chats/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    return await get_owned_chat(db, chat_id, user)


@router.delete("/chats/{chat_id}")
async def delete_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Delete a chat with its messages and citations."""
    chat = await get_owned_chat(db, chat_id, user)
    await db.delete(chat)
    await db.commit()
    return {"success": True}


@router.get("/chats/{chat_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    chat_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """All messages of a chat in order, with their citations."""
    await get_owned_chat(db, chat_id, user)
    result = await db.execute(
        select(Message)
        .options(selectinload(Message.citations))
        .where(Message.chat_id == chat_id)
        .order_by(Message.created_at)
    )
    return result.scalars().all()


@router.post("/chats/{chat_id}/messages", response_model=ReplyResponse)
async def send_message(
    chat_id: str,
    payload: SendMessageRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Answer a message from the course's materials."""
    await get_owned_chat(db, chat_id, user)
    reply = await chat_service.reply(
        db,
        chat_id,
        payload.message,
        enable_citations=payload.options.enable_citations,
        enable_web_search=payload.options.enable_web_search,
    )
    return ReplyResponse(
        id=reply.message_id,
        content=reply.content,
        citations=[CitationResponse.model_validate(c) for c in reply.citations],
    )


@router.delete("/chats/{chat_id}/empty", response_model=DeleteEmptyResponse)
async def delete_chat_if_empty(
    chat_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_database),
):
    """Delete a chat only if no message was ever sent in it."""
    await get_owned_chat(db, chat_id, user)
    if await chat_service.message_count(db, chat_id) > 0:
        return DeleteEmptyResponse(deleted=False)

    chat = await db.get(Chat, chat_id)
    await db.delete(chat)
    await db.commit()
    return DeleteEmptyResponse(deleted=True)
