"""Grounded chat replies: retrieval, prompt assembly, completion and citation storage."""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.metrics import track_request
from app.models.chat import Chat, Message, Citation, DEFAULT_CHAT_TITLE
from app.models.course import Course
from app.models.document import Document
from app.services.content import is_unavailable_notice
from app.services.llm import LLMService, llm_service
from app.services.semantic_search import SearchResult, SemanticSearchService, semantic_search_service
from app.services.web_search import WebSearchService, web_search_service

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "I'm sorry, I encountered an error while processing your request. Please try again later."
)
BRACKET_CITATION = re.compile(r"\[.*?\]")


@dataclass
class RetrievedContext:
    document_id: str
    title: str
    chunk: str
    similarity: float


@dataclass
class ChatReply:
    message_id: str
    content: str
    citations: List[Citation] = field(default_factory=list)


def build_system_prompt(
    course_name: str,
    contexts: List[RetrievedContext],
    enable_citations: bool = False,
    web_results: Optional[str] = None,
) -> str:
    prompt = (
        f'You are an AI course assistant for "{course_name}".\n'
        "Your job is to help the student understand course materials and answer their questions.\n"
        "Be helpful, clear, and educational in your responses."
    )
    if web_results is not None:
        prompt += " You can search the web for additional information to supplement your answers."
    if enable_citations:
        prompt += " Please cite sources when possible using [Document Title] format at the end of relevant sentences."

    if contexts:
        prompt += "\n\nThe following are relevant sections from course materials:\n\n"
        for index, context in enumerate(contexts, 1):
            if is_unavailable_notice(context.chunk):
                body = (
                    "[The text of this document is not available. It may need to be reprocessed; "
                    "answer from general knowledge and suggest reprocessing it.]"
                )
            else:
                body = context.chunk
            prompt += f'Document {index}: "{context.title}"\n{body}\n\n'
    else:
        prompt += (
            "\n\nNo specific course materials were found for this query. "
            "I will answer based on general knowledge."
        )

    if web_results:
        prompt += f"\n\nWeb search results related to the query:\n{web_results}"
    return prompt


def citation_preview(chunk: str, limit: Optional[int] = None) -> str:
    limit = limit or settings.CITATION_PREVIEW_CHARS
    if len(chunk) <= limit:
        return chunk
    return chunk[:limit] + "..."


class ChatService:
    def __init__(
        self,
        llm: Optional[LLMService] = None,
        search: Optional[SemanticSearchService] = None,
        web_search: Optional[WebSearchService] = None,
    ):
        self.llm = llm or llm_service
        self.search = search or semantic_search_service
        self.web_search = web_search or web_search_service

    async def recent_history(self, session: AsyncSession, chat_id: str, limit: Optional[int] = None) -> List[Message]:
        """The last ``limit`` messages of a chat, oldest first."""
        limit = limit or settings.CHAT_HISTORY_LIMIT
        result = await session.execute(
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at.desc())
            .limit(limit)
        )
        return list(reversed(result.scalars().all()))

    async def message_count(self, session: AsyncSession, chat_id: str) -> int:
        result = await session.execute(
            select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
        )
        return result.scalar_one()

    async def load_contexts(self, session: AsyncSession, results: List[SearchResult]) -> List[RetrievedContext]:
        if not results:
            return []
        ids = {r.document_id for r in results}
        rows = await session.execute(select(Document.id, Document.title).where(Document.id.in_(ids)))
        titles: Dict[str, str] = {row.id: row.title for row in rows}
        contexts = []
        for r in results:
            title = titles.get(r.document_id, "Unknown Document")
            logger.info(f'Adding document "{title}" with similarity {r.similarity:.4f}')
            contexts.append(RetrievedContext(r.document_id, title, r.chunk, r.similarity))
        return contexts

    async def reply(
        self,
        session: AsyncSession,
        chat_id: str,
        message: str,
        enable_citations: bool = True,
        enable_web_search: bool = False,
    ) -> ChatReply:
        chat = await session.get(Chat, chat_id)
        if chat is None:
            raise LookupError(f"Chat {chat_id} not found")
        course = await session.get(Course, chat.course_id)
        course_name = course.name if course else "this course"

        async with track_request(chat_id, chat.user_id, message) as collector:
            history = await self.recent_history(session, chat_id)
            is_first_message = await self.message_count(session, chat_id) == 0

            session.add(Message(chat_id=chat_id, role="user", content=message))
            await session.commit()

            if is_first_message and chat.title == DEFAULT_CHAT_TITLE:
                chat.title = await self.llm.generate_chat_title(message, course_name)

            collector.start_retrieval()
            results = await self.search.search(session, message, chat.course_id, settings.TOP_K_RESULTS)
            contexts = await self.load_contexts(session, results)
            collector.end_retrieval(len(contexts))
            logger.info(f'Found {len(contexts)} relevant chunks for query: "{message[:50]}"')

            web_results = None
            if enable_web_search:
                collector.start_web_search()
                web_results = await self.web_search.search(message)
                collector.end_web_search()

            system_prompt = build_system_prompt(course_name, contexts, enable_citations, web_results)
            messages = [{"role": "system", "content": system_prompt}]
            messages.extend({"role": m.role, "content": m.content} for m in history)
            messages.append({"role": "user", "content": message})

            citations = []
            if enable_citations:
                citations = [
                    Citation(document_id=c.document_id, source_text=citation_preview(c.chunk))
                    for c in contexts
                ]

            collector.start_llm()
            try:
                content = await self.llm.chat_completion(messages)
                if enable_citations and citations:
                    # Citations are stored as rows; drop the model's inline [..] markers
                    content = BRACKET_CITATION.sub("", content)
            except Exception as e:
                logger.error(f"Error calling OpenAI: {e}", exc_info=True)
                content = APOLOGY_MESSAGE
            collector.end_llm()

            assistant_message = Message(chat_id=chat_id, role="assistant", content=content, citations=citations)
            session.add(assistant_message)
            chat.updated_at = datetime.now(timezone.utc)
            await session.commit()
            collector.record_response(len(content), len(citations))

        return ChatReply(message_id=assistant_message.id, content=content, citations=citations)


chat_service = ChatService()
