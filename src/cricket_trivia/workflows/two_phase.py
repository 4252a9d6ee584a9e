"""
Two-phase pipeline: anecdotes first, questions derived from the best of them.
"""
import asyncio
import logging
import math
from dataclasses import replace
from typing import List, Optional

from cricket_trivia.core.entities import Anecdote, FetchState, GeneratedItem, PipelineResult
from cricket_trivia.core.errors import CollaboratorUnavailableError
from cricket_trivia.core.filters import Filter
from cricket_trivia.core.scoring import question_quality
from cricket_trivia.processing.anecdotes import AnecdoteGenerator, split_batches
from cricket_trivia.processing.generator import QuestionGenerator
from cricket_trivia.processing.prompts import prepare_anecdotes
from cricket_trivia.services.config import TwoPhaseConfig
from cricket_trivia.workflows.base import QuizPipeline

logger = logging.getLogger(__name__)


def anecdotes_needed(target_count: int, available: int, ratio: float = 1.5) -> int:
    """ceil(target / ratio), never more than what Phase 1 produced."""
    return min(math.ceil(target_count / ratio), available)


def select_best_anecdotes(anecdotes: List[Anecdote], needed: int) -> List[Anecdote]:
    return sorted(anecdotes, key=lambda a: a.quality_score, reverse=True)[:needed]


def question_batch_size(count: int, settings: TwoPhaseConfig) -> int:
    return min(settings.question_batch_max, max(settings.question_batch_min, math.ceil(count / 2)))


def rank_questions(items: List[GeneratedItem], target_count: int) -> List[GeneratedItem]:
    """Score every question, stable sort by score descending, truncate to target."""
    scored = [replace(item, quality_score=question_quality(item)) for item in items]
    scored.sort(key=lambda item: item.quality_score, reverse=True)
    return scored[:target_count]


class TwoPhasePipeline(QuizPipeline):
    name = "two-phase"

    def __init__(
        self,
        anecdote_generator: AnecdoteGenerator,
        question_generator: QuestionGenerator,
        settings: TwoPhaseConfig = TwoPhaseConfig(),
        anecdote_count: Optional[int] = None,
    ):
        self.anecdote_generator = anecdote_generator
        self.question_generator = question_generator
        self.settings = settings
        self.anecdote_count = anecdote_count

    def _requested_anecdotes(self, target_count: int) -> int:
        if self.anecdote_count is not None:
            return self.anecdote_count
        return max(
            self.settings.anecdote_default,
            math.ceil(target_count / self.settings.questions_per_anecdote),
        )

    async def derive_questions(self, anecdotes: List[Anecdote], filters: Filter) -> List[GeneratedItem]:
        prepared = prepare_anecdotes(anecdotes)

        if len(prepared) <= self.settings.parallel_threshold:
            logger.info(f"[{self.name}] Deriving questions from {len(prepared)} anecdotes in one call")
            try:
                return await self.question_generator.from_anecdotes(prepared, filters)
            except CollaboratorUnavailableError:
                raise
            except Exception as e:
                logger.error(f"[{self.name}] Question generation failed: {e}")
                return []

        size = question_batch_size(len(prepared), self.settings)
        batches = []
        start = 0
        for n in split_batches(len(prepared), size):
            batches.append(prepared[start:start + n])
            start += n

        logger.info(f"[{self.name}] Deriving questions in {len(batches)} parallel batches of up to {size}")

        results = await asyncio.gather(
            *(self.question_generator.from_anecdotes(batch, filters) for batch in batches),
            return_exceptions=True,
        )

        questions: List[GeneratedItem] = []
        for i, result in enumerate(results):
            if isinstance(result, CollaboratorUnavailableError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"[{self.name}] Question batch {i + 1} failed: {result}")
                continue
            logger.info(f"[{self.name}] Question batch {i + 1}: {len(result)} questions")
            questions.extend(result)
        return questions

    async def run(self, filters: Filter, target_count: int) -> PipelineResult:
        anecdotes = await self.anecdote_generator.generate(filters, self._requested_anecdotes(target_count))

        stats = {"anecdotes_generated": len(anecdotes)}
        if not anecdotes:
            return PipelineResult(
                items=[],
                requested=target_count,
                status=FetchState.ABORTED,
                cause="no anecdotes generated",
                stats=stats,
            )

        needed = anecdotes_needed(target_count, len(anecdotes), self.settings.questions_per_anecdote)
        best = select_best_anecdotes(anecdotes, needed)
        stats["anecdotes_used"] = len(best)
        logger.info(f"[{self.name}] Using best {len(best)}/{len(anecdotes)} anecdotes for {target_count} questions")

        questions = await self.derive_questions(best, filters)
        stats["questions_generated"] = len(questions)

        items = rank_questions(questions, target_count)
        if items:
            stats["average_quality"] = round(sum(i.quality_score for i in items) / len(items), 1)

        if len(items) >= target_count:
            return PipelineResult(items=items, requested=target_count, status=FetchState.DONE, stats=stats)

        cause = f"generated {len(items)}/{target_count} questions from {len(best)} anecdotes"
        logger.warning(f"[{self.name}] Partial result: {cause}")
        return PipelineResult(
            items=items,
            requested=target_count,
            status=FetchState.ABORTED,
            cause=cause,
            stats=stats,
        )
