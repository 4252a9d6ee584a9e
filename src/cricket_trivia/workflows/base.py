"""
Contains base class for quiz pipelines
"""
from abc import ABC, abstractmethod

from cricket_trivia.core.entities import PipelineResult
from cricket_trivia.core.filters import Filter


class QuizPipeline(ABC):
    """
    Orchestrates source material → generation → ranking
    for one quiz request.
    """

    name: str

    @abstractmethod
    async def run(self, filters: Filter, target_count: int) -> PipelineResult:
        """
        Execute the pipeline and return the (possibly partial) result.
        Must only raise for fatal errors (missing credentials, unreachable services).
        """
        raise NotImplementedError
