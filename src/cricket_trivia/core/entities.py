from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Dict, Any
from urllib.parse import urlparse


OPTION_COUNT = 4


class QualityGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"


class FetchState(str, Enum):
    FETCHING = "fetching"
    SCORING = "scoring"
    GENERATING = "generating"
    ACCUMULATING = "accumulating"
    RETRY = "retry"
    DONE = "done"
    ABORTED = "aborted"


def extract_domain(url: str) -> str:
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


@dataclass(frozen=True)
class RawContentItem:
    """
    One search result, scored and ready to be packed into a generation prompt.
    """
    title: str
    snippet: str
    url: str
    relevance_score: float = 0.0
    token_estimate: int = 0

    @property
    def domain(self) -> str:
        return extract_domain(self.url)

    @property
    def text(self) -> str:
        return f"{self.title} {self.snippet}".strip()

    def with_snippet(self, snippet: str, token_estimate: int) -> "RawContentItem":
        return replace(self, snippet=snippet, token_estimate=token_estimate)


@dataclass(frozen=True)
class Anecdote:
    """
    Phase 1 raw material. Consumed by question derivation, never shown directly.
    """
    id: str
    title: str
    story: str
    key_facts: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    drama_tags: List[str] = field(default_factory=list)
    quality_score: float = 0.0


@dataclass(frozen=True)
class GeneratedItem:
    """
    Finished quiz question.

    quality_grade is only set by the web-grounded pipeline,
    quality_score only by the two-phase pipeline.
    """
    question: str
    options: List[str]
    correct_index: int
    explanation: str
    source: str
    category: str
    quality_grade: Optional[QualityGrade] = None
    quality_score: Optional[float] = None
    anecdote_ref: Optional[str] = None

    def __post_init__(self):
        if not self.question.strip():
            raise ValueError("question text must not be empty")
        if len(self.options) != OPTION_COUNT:
            raise ValueError(f"expected {OPTION_COUNT} options, got {len(self.options)}")
        if not 0 <= self.correct_index < OPTION_COUNT:
            raise ValueError(f"correct_index out of range: {self.correct_index}")

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "correct_index": self.correct_index,
            "explanation": self.explanation,
            "source": self.source,
            "category": self.category,
            "quality_grade": self.quality_grade.value if self.quality_grade else None,
            "quality_score": self.quality_score,
            "anecdote_ref": self.anecdote_ref,
        }


@dataclass
class PipelineRun:
    """
    Mutable state of one adaptive run. Owned by a single loop, discarded afterwards.
    """
    target_count: int
    collected: List[GeneratedItem] = field(default_factory=list)
    articles_processed: int = 0
    total_raw_items_seen: int = 0
    iterations: int = 0
    used_urls: set[str] = field(default_factory=set)
    search_terms: List[str] = field(default_factory=list)
    state_history: List[FetchState] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return max(0, self.target_count - len(self.collected))

    @property
    def satisfied(self) -> bool:
        return len(self.collected) >= self.target_count

    def transition(self, state: FetchState) -> None:
        self.state_history.append(state)


@dataclass(frozen=True)
class PipelineResult:
    """
    Final output of a pipeline run. A partial run has status ABORTED and a cause.
    """
    items: List[GeneratedItem]
    requested: int
    status: FetchState
    cause: Optional[str] = None
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def achieved(self) -> int:
        return len(self.items)

    @property
    def partial(self) -> bool:
        return self.achieved < self.requested

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requested": self.requested,
            "achieved": self.achieved,
            "status": self.status.value,
            "cause": self.cause,
            "stats": dict(self.stats),
            "items": [item.to_dict() for item in self.items],
        }
