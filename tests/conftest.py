"""Shared fakes for the trivia pipeline tests. Nothing here touches the network."""

from __future__ import annotations

import json
import random
from typing import Callable, List, Optional, Sequence, Union

import pytest

from cricket_trivia.core.errors import CollaboratorUnavailableError, SearchAuthError
from cricket_trivia.ingestion.base import SearchAdapter, SearchResult


class FakeLLM:
    """Returns queued replies (or the result of a callable) for every generate() call."""

    def __init__(self, replies: Union[Sequence[object], Callable[[str], str], None] = None, *, available: bool = True):
        self._replies = replies
        self._queue = list(replies) if isinstance(replies, (list, tuple)) else []
        self.prompts: List[str] = []
        self.params = []
        self.available = available

    async def ensure_available(self):
        if not self.available:
            raise CollaboratorUnavailableError("Ollama server not reachable")

    async def generate(self, prompt, params=None):
        self.prompts.append(prompt)
        self.params.append(params)
        if callable(self._replies):
            reply = self._replies(prompt)
        elif self._queue:
            reply = self._queue.pop(0)
        else:
            reply = "[]"
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeSearch(SearchAdapter):
    name = "fake"

    def __init__(self, pages: Optional[List[List[SearchResult]]] = None, *, auth_error: bool = False):
        self._pages = list(pages or [])
        self.auth_error = auth_error
        self.calls: List[tuple] = []

    async def search(self, query, count):
        self.calls.append((query, count))
        if self.auth_error:
            raise SearchAuthError("bad key")
        if not self._pages:
            return []
        return self._pages.pop(0)[:count]


def question(
    text: str = "Who took the final wicket in the dramatic 2019 World Cup final?",
    options: Sequence[str] = ("Jofra Archer", "Ben Stokes", "Mark Wood", "Adil Rashid"),
    correct: int = 0,
    **extra,
) -> dict:
    data = {
        "question": text,
        "options": list(options),
        "correctAnswer": correct,
        "explanation": "The super over ended with a run out at the keeper's end.",
    }
    data.update(extra)
    return data


def reply(*objects: dict) -> str:
    return json.dumps(list(objects))


def cricket_result(i: int, domain: str = "espncricinfo.com") -> SearchResult:
    return SearchResult(
        title=f"Stunning collapse at Lord's {i}",
        snippet=(
            f"In 2005 the dramatic Ashes Test saw a stunning comeback. "
            f"The captain was caught on {40 + i} after a controversial decision."
        ),
        link=f"https://www.{domain}/story/{i}",
    )


@pytest.fixture
def rng():
    return random.Random(1234)
