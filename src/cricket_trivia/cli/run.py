import argparse
import asyncio
from datetime import date
import json
import logging
import sys
import time
from typing import List, Optional

from cricket_trivia.core.entities import PipelineResult
from cricket_trivia.core.errors import ConfigurationError, SearchAuthError, TriviaError
from cricket_trivia.core.filters import (
    ALL_ERAS,
    CATEGORY_LABELS,
    DEFAULT_CATEGORY,
    ERA_LABELS,
    FACTS_OPINIONS,
    STYLES,
    Filter,
    parse_countries,
)
from cricket_trivia.delivery.file_delivery import FileDelivery
from cricket_trivia.ingestion.source_factory import create_search_adapter
from cricket_trivia.processing.term_generator import build_search_context, generate_search_terms
from cricket_trivia.services.config import Config, load_config
from cricket_trivia.services.logging import setup_logging
from cricket_trivia.workflows.pipeline_factory import create_llm, create_pipeline

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_EMPTY = 2


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--era", default=ALL_ERAS, choices=sorted(ERA_LABELS))
    parser.add_argument("--countries", default="all_countries", help="Comma separated country tags")
    parser.add_argument("--category", default=DEFAULT_CATEGORY, choices=sorted(CATEGORY_LABELS))
    parser.add_argument("--style", default=FACTS_OPINIONS, choices=STYLES)


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    _add_filter_arguments(parser)
    parser.add_argument("--count", type=int, default=None, help="Number of questions wanted")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--save", action="store_true", help="Also write .json/.md files to the configured output_dir")
    parser.add_argument("--output-dir", default=None, help="Write .json/.md files here (implies --save)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cricket-trivia", description="Cricket trivia quiz generator")
    parser.add_argument("--config", default=None, help="Path to config.yml")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Web-grounded questions from search results")
    _add_run_arguments(generate)
    generate.add_argument("--max-articles", type=int, default=None, help="Processed-item ceiling")

    two_phase = sub.add_parser("two-phase", help="Anecdotes first, then questions derived from them")
    _add_run_arguments(two_phase)
    two_phase.add_argument("--anecdotes", type=int, default=None, help="Phase 1 anecdote count (5-20)")

    terms = sub.add_parser("terms", help="Preview search terms for a filter set")
    _add_filter_arguments(terms)
    terms.add_argument("--context", action="store_true", help="Also print an anecdote search context")
    terms.add_argument("--json", action="store_true")

    return parser


def build_filter(args: argparse.Namespace) -> Filter:
    try:
        return Filter(
            era=args.era,
            countries=parse_countries(args.countries),
            category=args.category,
            style=args.style,
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


async def run_quiz(args: argparse.Namespace, config: Config) -> PipelineResult:
    """
    Preflight both collaborators, then run the selected pipeline.

    Raises:
        TriviaError: On fatal errors only.
    """
    filters = build_filter(args)
    target = args.count if args.count is not None else config.default_target_count
    if target < 0:
        raise ConfigurationError("--count must not be negative")

    llm = create_llm(config)

    if args.command == "generate":
        search = create_search_adapter(config.search)
        if not search.configured:
            raise SearchAuthError(
                "Search credentials missing: set GOOGLE_SEARCH_API_KEY and GOOGLE_SEARCH_CX"
            )
        await llm.ensure_available()
        pipeline = create_pipeline(
            "web", config, llm,
            search=search,
            max_raw_items=args.max_articles,
        )
    else:
        await llm.ensure_available()
        pipeline = create_pipeline(
            "two-phase", config, llm,
            anecdote_count=args.anecdotes,
        )

    logger.info(f"Running {pipeline.name} pipeline for {target} {filters.category} questions")
    return await pipeline.run(filters, target)


def print_result(result: PipelineResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return

    summary = f"Generated {result.achieved}/{result.requested} questions"
    if result.partial:
        summary += f" (partial: {result.cause})"
    print(summary)

    for number, item in enumerate(result.items, start=1):
        print(f"\n{number}. {item.question}")
        for letter, option in zip("ABCD", item.options):
            print(f"   {letter}. {option}")
        print(f"   Answer: {item.correct_answer}")
        print(f"   {item.explanation}")
        print(f"   Source: {item.source}")


def print_terms(args: argparse.Namespace) -> None:
    filters = build_filter(args)
    terms = generate_search_terms(filters)
    context = build_search_context(filters) if args.context else None

    if args.json:
        print(json.dumps({"terms": terms, "context": context}, ensure_ascii=False))
        return

    for term in terms:
        print(term)
    if context:
        print()
        print(context)


async def deliver(result: PipelineResult, category: str, output_dir: str) -> None:
    try:
        delivery = FileDelivery(output_dir)
        await delivery.deliver(
            category=category,
            quiz_date=date.today().isoformat(),
            result=result,
        )
        logger.info(f"Delivered {category} quiz via {delivery.name} to {output_dir}")
    except Exception as e:
        logger.error(f"Delivery failed: category={category}, channel={FileDelivery.name}, error={e}")


async def _main(args: argparse.Namespace) -> int:
    start_time = time.perf_counter()
    config = load_config(args.config)

    result = await run_quiz(args, config)
    print_result(result, args.json)

    if (args.save or args.output_dir) and result.items:
        await deliver(result, args.category, args.output_dir or config.output_dir)

    logger.info(f"Total time: {time.perf_counter() - start_time:.1f}s")
    return EXIT_OK if result.items else EXIT_EMPTY


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    try:
        if args.command == "terms":
            print_terms(args)
            return EXIT_OK
        return asyncio.run(_main(args))
    except TriviaError as e:
        logger.error(f"Fatal: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
