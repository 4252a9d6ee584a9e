"""
Phase 1 of the two-phase pipeline: generate cricket anecdotes in concurrent batches.
"""
import asyncio
import logging
import math
import random
import uuid
from dataclasses import replace
from typing import List, Optional

from pydantic import ValidationError

from cricket_trivia.core.entities import Anecdote
from cricket_trivia.core.errors import CollaboratorUnavailableError
from cricket_trivia.core.filters import Filter
from cricket_trivia.core.schemas import AnecdotePayload
from cricket_trivia.core.scoring import anecdote_quality, extract_drama_tags
from cricket_trivia.processing.parsing import parse_reply_objects
from cricket_trivia.processing.prompts import ANECDOTE_SAMPLING, build_anecdote_prompt
from cricket_trivia.processing.term_generator import build_search_context
from cricket_trivia.services.config import TwoPhaseConfig
from cricket_trivia.services.llm import OllamaClient

logger = logging.getLogger(__name__)

ANECDOTE_KEYS = ("title", "story")


def clamp_anecdote_count(count: Optional[int], settings: TwoPhaseConfig) -> int:
    if count is None:
        count = settings.anecdote_default
    if count < settings.anecdote_min:
        logger.warning(f"Anecdote count {count} below minimum, using {settings.anecdote_min}")
        return settings.anecdote_min
    if count > settings.anecdote_max:
        logger.warning(f"Anecdote count {count} above maximum, using {settings.anecdote_max}")
        return settings.anecdote_max
    return count


def anecdote_batch_size(count: int, settings: TwoPhaseConfig) -> int:
    return min(settings.anecdote_batch_max, max(settings.anecdote_batch_min, math.ceil(count / 3)))


def split_batches(count: int, size: int) -> List[int]:
    """[10, 4] -> [4, 4, 2]"""
    sizes = []
    remaining = count
    while remaining > 0:
        sizes.append(min(size, remaining))
        remaining -= size
    return sizes


def to_anecdotes(objects: List[dict]) -> List[Anecdote]:
    """
    Validate parsed anecdote objects and attach drama tags and a quality score.
    """
    anecdotes = []
    for obj in objects:
        try:
            payload = AnecdotePayload.model_validate(obj)
        except ValidationError as e:
            logger.warning(f"Dropping invalid anecdote '{obj.get('title', '?')}': {e.error_count()} errors")
            continue

        anecdote = Anecdote(
            id=f"anecdote_{uuid.uuid4().hex[:12]}",
            title=payload.title.strip(),
            story=payload.story.strip(),
            key_facts=payload.key_facts,
            sources=payload.sources,
            tags=payload.tags,
            drama_tags=extract_drama_tags(payload.story),
        )
        anecdotes.append(replace(anecdote, quality_score=anecdote_quality(anecdote)))
    return anecdotes


class AnecdoteGenerator:
    """
    Issues every anecdote batch concurrently and merges whatever succeeds.
    """

    name = "anecdotes"

    def __init__(
        self,
        llm: OllamaClient,
        settings: TwoPhaseConfig,
        rng: Optional[random.Random] = None,
    ):
        self.llm = llm
        self.settings = settings
        self.rng = rng or random.Random()

    async def _generate_batch(self, filters: Filter, size: int, index: int) -> List[Anecdote]:
        context = build_search_context(filters, rng=self.rng)
        prompt = build_anecdote_prompt(context, filters, size)

        reply = await self.llm.generate(prompt, ANECDOTE_SAMPLING)
        objects = parse_reply_objects(reply, ANECDOTE_KEYS)
        anecdotes = to_anecdotes(objects)

        logger.info(f"[{self.name}] Batch {index + 1}: {len(anecdotes)}/{size} anecdotes")
        return anecdotes

    async def generate(self, filters: Filter, count: Optional[int] = None) -> List[Anecdote]:
        count = clamp_anecdote_count(count, self.settings)
        sizes = split_batches(count, anecdote_batch_size(count, self.settings))

        logger.info(f"[{self.name}] Generating {count} anecdotes in {len(sizes)} parallel batches")

        results = await asyncio.gather(
            *(self._generate_batch(filters, size, i) for i, size in enumerate(sizes)),
            return_exceptions=True,
        )

        anecdotes: List[Anecdote] = []
        for i, result in enumerate(results):
            if isinstance(result, CollaboratorUnavailableError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"[{self.name}] Batch {i + 1} failed: {result}")
                continue
            anecdotes.extend(result)

        if anecdotes:
            average = sum(a.quality_score for a in anecdotes) / len(anecdotes)
            logger.info(f"[{self.name}] {len(anecdotes)} anecdotes, average quality {average:.1f}/100")
        else:
            logger.warning(f"[{self.name}] No anecdotes generated")

        return anecdotes
