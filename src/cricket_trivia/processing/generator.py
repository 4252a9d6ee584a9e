"""
Generation adapter: prompt the generative service and turn its reply into questions.
"""
import logging
import random
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from cricket_trivia.core.entities import Anecdote, GeneratedItem, RawContentItem
from cricket_trivia.core.filters import Filter
from cricket_trivia.core.schemas import QuestionPayload
from cricket_trivia.core.scoring import source_credibility
from cricket_trivia.processing.parsing import parse_reply_objects
from cricket_trivia.processing.prompts import (
    ANECDOTE_QUESTION_SAMPLING,
    build_anecdote_question_prompt,
    build_article_question_prompt,
    sampling_for,
)
from cricket_trivia.services.llm import OllamaClient

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "Generated from web sources"
QUESTION_KEYS = ("question", "options")


def best_source_for(question: str, articles: Sequence[RawContentItem]) -> str:
    """
    URL of the article sharing the most significant words with the question.
    Ties go to the more credible source.
    """
    if not articles:
        return DEFAULT_SOURCE
    if len(articles) == 1:
        return articles[0].url or DEFAULT_SOURCE

    words = [w for w in question.lower().split() if len(w) > 3]

    def overlap(article: RawContentItem):
        text = article.text.lower()
        return sum(1 for w in words if w in text), source_credibility(article.url)

    best = max(articles, key=overlap)
    return best.url or DEFAULT_SOURCE


def to_generated_items(
    objects: Iterable[Dict[str, Any]],
    category: str,
    default_source: str = DEFAULT_SOURCE,
) -> List[GeneratedItem]:
    """
    Validate parsed objects; structurally invalid ones are dropped.
    """
    items: List[GeneratedItem] = []
    for obj in objects:
        try:
            payload = QuestionPayload.model_validate(obj)
        except ValidationError as e:
            logger.debug(f"Dropping invalid question: {e.error_count()} errors")
            continue

        items.append(
            GeneratedItem(
                question=payload.question,
                options=payload.options,
                correct_index=payload.correct_answer,
                explanation=payload.explanation,
                source=payload.source or default_source,
                category=category,
                anecdote_ref=payload.anecdote_ref,
            )
        )
    return items


class QuestionGenerator:
    """
    Builds prompts for the generative service and parses the questions it returns.
    """

    def __init__(
        self,
        llm: OllamaClient,
        difficulty: str = "medium",
        max_tokens: int = 4096,
        rng: Optional[random.Random] = None,
    ):
        self.llm = llm
        self.difficulty = difficulty
        self.max_tokens = max_tokens
        self.rng = rng or random.Random()

    async def from_articles(
        self,
        articles: Sequence[RawContentItem],
        filters: Filter,
        count: int,
    ) -> List[GeneratedItem]:
        """
        Ask for `count` questions grounded in the given articles.

        Raises:
            MalformedReplyError: If the reply holds nothing salvageable.
        """
        if not articles or count <= 0:
            return []

        prompt = build_article_question_prompt(articles, filters, count)
        params = sampling_for(filters.category, self.difficulty, self.max_tokens, rng=self.rng)
        reply = await self.llm.generate(prompt, params)

        objects = parse_reply_objects(
            reply,
            QUESTION_KEYS,
            fallback_source=articles[0].url if len(articles) == 1 else DEFAULT_SOURCE,
        )

        items = []
        for item in to_generated_items(objects, filters.category):
            if item.source == DEFAULT_SOURCE:
                item = _with_source(item, best_source_for(item.question, articles))
            items.append(item)

        dropped = len(objects) - len(items)
        if dropped:
            logger.info(f"Dropped {dropped} structurally invalid questions")
        return items[:count]

    async def from_anecdotes(
        self,
        anecdotes: Sequence[Anecdote],
        filters: Filter,
    ) -> List[GeneratedItem]:
        """
        Derive questions from a batch of anecdotes.

        Raises:
            MalformedReplyError: If the reply holds nothing salvageable.
        """
        if not anecdotes:
            return []

        prompt = build_anecdote_question_prompt(anecdotes, filters)
        reply = await self.llm.generate(prompt, ANECDOTE_QUESTION_SAMPLING)

        fallback = anecdotes[0].sources[0] if anecdotes[0].sources else DEFAULT_SOURCE
        objects = parse_reply_objects(reply, QUESTION_KEYS, fallback_source=fallback)
        return to_generated_items(objects, filters.category, default_source=fallback)


def _with_source(item: GeneratedItem, source: str) -> GeneratedItem:
    return replace(item, source=source)


__all__ = [
    "QuestionGenerator",
    "best_source_for",
    "to_generated_items",
]
