"""OpenAI LLM service."""
import logging
import re
from typing import List, Optional
from openai import AsyncOpenAI
from langchain_openai import OpenAIEmbeddings
from app.core.config import settings

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50


class LLMService:
    """Service for interacting with OpenAI chat and embedding models."""

    def __init__(self):
        """Initialize OpenAI client and LangChain embeddings."""
        self.client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self.embeddings = OpenAIEmbeddings(
            model=settings.OPENAI_EMBEDDING_MODEL,
            openai_api_key=settings.OPENAI_API_KEY,
        )

    async def generate_embedding(self, text: str) -> List[float]:
        """Generate embedding for a single chunk or query."""
        return await self.embeddings.aembed_query(text)

    async def chat_completion(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Generate chat completion."""
        response = await self.client.chat.completions.create(
            model=model or settings.OPENAI_MODEL,
            messages=messages,
            temperature=settings.TEMPERATURE if temperature is None else temperature,
            max_tokens=max_tokens or settings.MAX_TOKENS,
        )
        return response.choices[0].message.content or ""

    async def generate_chat_title(self, message: str, course_name: str) -> str:
        """Short descriptive title for a chat, from its opening message."""
        try:
            title = await self.chat_completion(
                [
                    {
                        "role": "system",
                        "content": (
                            "You are a helpful assistant that generates concise, descriptive titles "
                            "for chat conversations. The title should be 3-6 words and reflect the "
                            "topic or question being discussed."
                        ),
                    },
                    {
                        "role": "user",
                        "content": (
                            f'Generate a short, descriptive title for a chat about "{course_name}" '
                            f'that starts with this message: "{message}"'
                        ),
                    },
                ],
                model=settings.OPENAI_TITLE_MODEL,
                max_tokens=30,
            )
        except Exception as e:
            logger.error(f"Error generating chat title: {e}", exc_info=True)
            return f"Chat about {course_name}"

        return clean_title(title) or f"Chat about {course_name}"


def clean_title(title: str) -> str:
    """Strip surrounding quotes and cap the length."""
    title = re.sub(r'^["\'](.*)["\']$', r"\1", title.strip())
    if len(title) > TITLE_MAX_LENGTH:
        title = title[:TITLE_MAX_LENGTH - 3] + "..."
    return title


llm_service = LLMService()
