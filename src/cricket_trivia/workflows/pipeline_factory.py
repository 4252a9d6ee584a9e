"""
Pipeline Factory - Creates quiz pipelines from configuration.
"""
import logging
from typing import Optional

from cricket_trivia.ingestion.base import SearchAdapter
from cricket_trivia.ingestion.source_factory import create_search_adapter
from cricket_trivia.processing.anecdotes import AnecdoteGenerator
from cricket_trivia.processing.generator import QuestionGenerator
from cricket_trivia.services.config import Config
from cricket_trivia.services.llm import OllamaClient
from cricket_trivia.workflows.base import QuizPipeline
from cricket_trivia.workflows.fetch_controller import FetchController
from cricket_trivia.workflows.two_phase import TwoPhasePipeline

logger = logging.getLogger(__name__)

MODES = ("web", "two-phase")


def create_llm(config: Config) -> OllamaClient:
    return OllamaClient(
        base_url=config.ollama.base_url,
        model=config.ollama.model,
        num_ctx=config.ollama.num_ctx,
        max_retries=config.ollama.max_retries,
        timeout=config.ollama.timeout,
    )


def create_pipeline(
    mode: str,
    config: Config,
    llm: OllamaClient,
    *,
    search: Optional[SearchAdapter] = None,
    max_raw_items: Optional[int] = None,
    anecdote_count: Optional[int] = None,
) -> QuizPipeline:
    """
    Factory function to create a pipeline instance from configuration.

    Args:
        mode: "web" for the search-grounded loop, "two-phase" for anecdotes first
        config: Loaded configuration
        llm: Shared OllamaClient instance
        search: Search adapter; built from config when omitted
        max_raw_items: Processed-item ceiling for the web pipeline
        anecdote_count: Phase 1 anecdote count for the two-phase pipeline

    Raises:
        ValueError: If the mode is unknown
    """
    generator = QuestionGenerator(
        llm,
        difficulty=config.generation.difficulty,
        max_tokens=config.generation.response_token_budget,
    )

    if mode == "web":
        pipeline = FetchController(
            search=search or create_search_adapter(config.search),
            generator=generator,
            fetch_config=config.fetch,
            generation_config=config.generation,
            max_raw_items=max_raw_items or config.default_max_articles,
        )
    elif mode == "two-phase":
        pipeline = TwoPhasePipeline(
            anecdote_generator=AnecdoteGenerator(llm, config.two_phase),
            question_generator=generator,
            settings=config.two_phase,
            anecdote_count=anecdote_count,
        )
    else:
        raise ValueError(f"Unknown pipeline mode: {mode}")

    logger.info(f"Created pipeline: {pipeline.name}")
    return pipeline
