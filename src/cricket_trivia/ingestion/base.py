"""
Base classes for search ingestion
"""
from abc import ABC, abstractmethod
from typing import List
from pydantic import BaseModel


MAX_RESULTS_PER_CALL = 10


class SearchResult(BaseModel):
    """
    One web search hit as returned by the search collaborator.
    """
    title: str = ""
    snippet: str = ""
    link: str = ""


class SearchAdapter(ABC):
    """
    Base interface for all web search backends.
    """

    name: str = "search"

    @property
    def configured(self) -> bool:
        """Whether the adapter has the credentials it needs."""
        return True

    @abstractmethod
    async def search(self, query: str, count: int) -> List[SearchResult]:
        """
        Return up to `count` results for `query`.

        Zero results is a valid answer, not an error. Transient failures must
        be swallowed and reported as an empty list; only credential problems
        may raise (SearchAuthError).
        """
        raise NotImplementedError
