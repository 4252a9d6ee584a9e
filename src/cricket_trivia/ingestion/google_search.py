"""
Web search through the Google Custom Search JSON API
"""
import logging
from typing import List, Optional

import httpx

from cricket_trivia.core.errors import SearchAuthError
from cricket_trivia.ingestion.base import MAX_RESULTS_PER_CALL, SearchAdapter, SearchResult

logger = logging.getLogger(__name__)


class GoogleSearchAdapter(SearchAdapter):
    name = "google"
    BASE_URL = "https://www.googleapis.com/customsearch/v1"

    # Custom Search never serves results beyond the 100th
    MAX_START_INDEX = 91

    def __init__(
        self,
        api_key: Optional[str],
        engine_id: Optional[str],
        timeout: float = 15.0,
        safe: str = "active",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.engine_id = engine_id
        self.timeout = timeout
        self.safe = safe
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.engine_id)

    async def _fetch_page(
        self,
        client: httpx.AsyncClient,
        query: str,
        num: int,
        start: int,
    ) -> List[SearchResult]:
        resp = await client.get(
            self.BASE_URL,
            params={
                "key": self.api_key,
                "cx": self.engine_id,
                "q": query,
                "num": num,
                "start": start,
                "safe": self.safe,
            },
        )

        if resp.status_code in (401, 403):
            raise SearchAuthError(
                f"Google Custom Search rejected credentials ({resp.status_code})"
            )
        resp.raise_for_status()

        data = resp.json()
        return [
            SearchResult(
                title=item.get("title", "") or "",
                snippet=item.get("snippet", "") or "",
                link=item.get("link", "") or "",
            )
            for item in data.get("items", []) or []
        ]

    async def search(self, query: str, count: int) -> List[SearchResult]:
        if not self.configured:
            raise SearchAuthError("Google Custom Search API key or engine id missing")

        results: List[SearchResult] = []
        start = 1

        try:
            client = self._client or httpx.AsyncClient(timeout=self.timeout)
            try:
                # one page per request, at most 10 results each
                while len(results) < count and start <= self.MAX_START_INDEX:
                    num = min(MAX_RESULTS_PER_CALL, count - len(results))
                    page = await self._fetch_page(client, query, num, start)
                    results.extend(page)
                    if len(page) < num:
                        break
                    start += num
            finally:
                if self._client is None:
                    await client.aclose()

        except SearchAuthError:
            raise
        except Exception as e:
            logger.warning(f"Search failed for '{query}': {e}")
            return results

        logger.info(f"Search '{query}' returned {len(results)} results")
        return results[:count]
