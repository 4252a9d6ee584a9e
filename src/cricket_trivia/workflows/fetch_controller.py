"""
Single-phase, web-grounded pipeline.

Each iteration runs search → score → diversify → optimize → generate → validate
and accumulates the result into an explicit PipelineRun until the target is met
or the processed-item ceiling is reached.
"""
import logging
import random
from dataclasses import replace
from typing import Callable, List, Optional

from cricket_trivia.core.entities import (
    FetchState,
    GeneratedItem,
    PipelineResult,
    PipelineRun,
    RawContentItem,
)
from cricket_trivia.core.errors import CollaboratorUnavailableError, MalformedReplyError
from cricket_trivia.core.filters import Filter
from cricket_trivia.core.scoring import ContentScorer, score_content
from cricket_trivia.ingestion.base import SearchAdapter, SearchResult
from cricket_trivia.processing.batch_sizer import compute_batch_size
from cricket_trivia.processing.context_optimizer import optimize_context
from cricket_trivia.processing.diversifier import diversify_sources
from cricket_trivia.processing.generator import QuestionGenerator
from cricket_trivia.processing.term_generator import generate_search_terms
from cricket_trivia.processing.validator import validate_items
from cricket_trivia.services.config import FetchConfig, GenerationConfig
from cricket_trivia.workflows.base import QuizPipeline

logger = logging.getLogger(__name__)


class FetchController(QuizPipeline):
    """
    Adaptive loop. Empty search or generation never aborts the run: the next
    iteration uses a fresh term and a larger request size.
    """

    name = "web"

    def __init__(
        self,
        search: SearchAdapter,
        generator: QuestionGenerator,
        fetch_config: FetchConfig = FetchConfig(),
        generation_config: GenerationConfig = GenerationConfig(),
        max_raw_items: int = 50,
        scorer: ContentScorer = score_content,
        validator: Optional[Callable] = validate_items,
        rng: Optional[random.Random] = None,
    ):
        self.search = search
        self.generator = generator
        self.fetch_config = fetch_config
        self.budget = generation_config.budget()
        self.max_raw_items = max_raw_items
        self.scorer = scorer
        self.validator = validator if fetch_config.validate_questions else None
        self.rng = rng or random.Random()

    def _next_term(self, filters: Filter, run: PipelineRun) -> str:
        if not run.search_terms:
            run.search_terms = generate_search_terms(filters, rng=self.rng)
        return run.search_terms.pop(self.rng.randrange(len(run.search_terms)))

    def _grow(self, request_size: int) -> int:
        return min(request_size + self.fetch_config.request_growth, self.fetch_config.max_request_size)

    def score_results(self, results: List[SearchResult], run: PipelineRun) -> List[RawContentItem]:
        """
        Score, threshold and dedupe search results against articles already used.
        """
        items = []
        seen = set(run.used_urls)
        for result in results:
            if not result.link or result.link in seen:
                continue
            seen.add(result.link)

            item = RawContentItem(title=result.title, snippet=result.snippet, url=result.link)
            score = self.scorer(item.text)
            if score < self.fetch_config.min_relevance:
                logger.debug(f"[{self.name}] Below relevance threshold ({score:.2f}): {item.title}")
                continue
            items.append(replace(item, relevance_score=score))
        return items

    def prepare_articles(self, items: List[RawContentItem]) -> List[RawContentItem]:
        cfg = self.fetch_config
        selected = diversify_sources(items, cfg.max_articles_per_prompt, rng=self.rng)
        return [
            optimize_context(
                item,
                max_sentences=cfg.max_sentences,
                fallback_chars=cfg.fallback_snippet_chars,
                chars_per_token=self.budget.chars_per_token,
            )
            for item in selected
        ]

    async def generate_batch(
        self,
        articles: List[RawContentItem],
        filters: Filter,
        run: PipelineRun,
    ) -> List[GeneratedItem]:
        content_tokens = sum(a.token_estimate for a in articles)
        batch_size = compute_batch_size(content_tokens, run.remaining, self.budget)
        logger.info(
            f"[{self.name}] Generating {batch_size} questions from {len(articles)} articles "
            f"(~{content_tokens} content tokens)"
        )

        try:
            candidates = await self.generator.from_articles(articles, filters, batch_size)
        except CollaboratorUnavailableError:
            raise
        except MalformedReplyError as e:
            logger.warning(f"[{self.name}] Dropping unparseable batch: {e}")
            return []
        except Exception as e:
            logger.error(f"[{self.name}] Generation failed: {e}")
            return []

        if candidates and self.validator is not None:
            candidates = await self.validator(llm=self.generator.llm, articles=articles, items=candidates)
        return candidates

    async def run(self, filters: Filter, target_count: int) -> PipelineResult:
        """
        Raises:
            SearchAuthError: If the search backend rejects or lacks credentials.
        """
        run = PipelineRun(target_count=target_count)
        request_size = self.fetch_config.initial_request_size
        cause = None

        logger.info(
            f"[{self.name}] Target {target_count} questions, "
            f"ceiling {self.max_raw_items} processed items"
        )

        while not run.satisfied:
            if run.articles_processed >= self.max_raw_items:
                cause = (
                    f"processed-item ceiling of {self.max_raw_items} reached "
                    f"with {len(run.collected)}/{target_count} questions"
                )
                break

            run.iterations += 1
            run.transition(FetchState.FETCHING)
            term = self._next_term(filters, run)
            logger.info(f"[{self.name}] Iteration {run.iterations}: '{term}' (size {request_size})")

            results = await self.search.search(term, request_size)
            run.articles_processed += request_size
            run.total_raw_items_seen += len(results)

            if not results:
                logger.info(f"[{self.name}] No search results, retrying")
                run.transition(FetchState.RETRY)
                request_size = self._grow(request_size)
                continue

            run.transition(FetchState.SCORING)
            scored = self.score_results(results, run)
            logger.info(f"[{self.name}] {len(scored)}/{len(results)} results passed scoring")

            if not scored:
                run.transition(FetchState.RETRY)
                request_size = self._grow(request_size)
                continue

            articles = self.prepare_articles(scored)
            run.used_urls.update(a.url for a in articles)

            run.transition(FetchState.GENERATING)
            candidates = await self.generate_batch(articles, filters, run)

            if not candidates:
                logger.info(f"[{self.name}] No usable questions this iteration, retrying")
                run.transition(FetchState.RETRY)
                request_size = self._grow(request_size)
                continue

            run.transition(FetchState.ACCUMULATING)
            run.collected.extend(candidates[:run.remaining])
            logger.info(f"[{self.name}] Collected {len(run.collected)}/{target_count}")

        if run.satisfied:
            run.transition(FetchState.DONE)
            status = FetchState.DONE
        else:
            run.transition(FetchState.ABORTED)
            status = FetchState.ABORTED
            logger.warning(f"[{self.name}] Aborted: {cause}")

        return PipelineResult(
            items=run.collected[:target_count],
            requested=target_count,
            status=status,
            cause=cause,
            stats={
                "iterations": run.iterations,
                "articles_processed": run.articles_processed,
                "raw_items_seen": run.total_raw_items_seen,
                "unique_sources": len(run.used_urls),
            },
        )
