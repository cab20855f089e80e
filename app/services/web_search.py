"""Web search through Google Programmable Search.

Every outcome is a string for the prompt; missing credentials and API errors
become explanatory text instead of exceptions.
"""
import logging
from typing import Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


class WebSearchService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        search_engine_id: Optional[str] = None,
        max_results: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_API_KEY
        self.search_engine_id = search_engine_id if search_engine_id is not None else settings.GOOGLE_SEARCH_ENGINE_ID
        self.max_results = max_results or settings.WEB_SEARCH_RESULTS
        self._transport = transport

    async def search(self, query: str) -> str:
        if not self.api_key or not self.search_engine_id:
            logger.error("Google Search API key or Search Engine ID is missing")
            return (
                "To enable web search, please set GOOGLE_API_KEY and GOOGLE_SEARCH_ENGINE_ID "
                "in your environment variables."
            )

        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.get(
                    SEARCH_URL,
                    params={"key": self.api_key, "cx": self.search_engine_id, "q": query, "num": 5},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Error during web search: {e}")
            status = e.response.status_code
            if status == 403:
                return "Search error: API quota exceeded or invalid API key. Please check your Google API credentials."
            if status == 400:
                return "Search error: Invalid search request. Please try a different query."
            return "Error performing web search: Unable to retrieve results at this time."
        except Exception as e:
            logger.error(f"Error during web search: {e}")
            return "Error performing web search: Unable to retrieve results at this time."

        items = data.get("items") or []
        if not items:
            return f'No search results found for "{query}".'

        formatted = "\n\n".join(
            f"{index}. {item.get('title', '')}\n   {item.get('snippet', '')}\n   [{item.get('link', '')}]"
            for index, item in enumerate(items[: self.max_results], 1)
        )
        return f'Search results for "{query}":\n\n{formatted}'


web_search_service = WebSearchService()
