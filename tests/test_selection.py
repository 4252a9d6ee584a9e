"""Source diversification, context optimization and batch sizing."""

import math
import random
from collections import Counter

import pytest

from cricket_trivia.core.entities import RawContentItem
from cricket_trivia.processing.batch_sizer import BatchBudget, compute_batch_size, estimate_tokens
from cricket_trivia.processing.context_optimizer import optimize_context, optimize_text
from cricket_trivia.processing.diversifier import diversify_sources, per_source_cap


def _item(domain, i, score=1.0):
    return RawContentItem(
        title=f"t{i}",
        snippet="s",
        url=f"https://www.{domain}/{i}",
        relevance_score=score,
    )


@pytest.mark.parametrize("seed", range(10))
def test_no_domain_exceeds_cap_when_enough_domains_exist(seed):
    items = [_item(f"site{d}.com", f"{d}-{i}", score=random.Random(seed).random()) for d in range(6) for i in range(3)]

    selected = diversify_sources(items, 6, rng=random.Random(seed))

    assert len(selected) == 6
    cap = per_source_cap(6)
    assert max(Counter(i.domain for i in selected).values()) <= cap


def test_backfills_past_the_cap_when_one_domain_dominates():
    items = [_item("espncricinfo.com", i, score=1.0 - i / 10) for i in range(5)]

    selected = diversify_sources(items, 3, rng=random.Random(0))

    assert [i.title for i in selected] == ["t0", "t1", "t2"]


def test_prefers_higher_scores():
    items = [_item("a.com", 1, 0.4), _item("b.com", 2, 1.8), _item("c.com", 3, 0.9)]

    selected = diversify_sources(items, 2, rng=random.Random(0))

    assert [i.title for i in selected] == ["t2", "t3"]


def test_small_pool_and_zero_target():
    items = [_item("a.com", 1), _item("b.com", 2)]

    assert len(diversify_sources(items, 10)) == 2
    assert diversify_sources(items, 0) == []
    assert diversify_sources([], 5) == []


def test_optimize_text_keeps_best_sentences_in_reading_order():
    text = (
        "The day was sunny. Then came a stunning collapse. "
        "Fans went home. He was caught for 99."
    )

    assert optimize_text(text) == "Then came a stunning collapse. He was caught for 99."


def test_optimize_text_falls_back_to_prefix():
    text = "Plain words here. " * 30

    assert optimize_text(text, fallback_chars=50) == text[:50].strip()


def test_optimize_context_updates_token_estimate():
    item = RawContentItem(
        title="Headingley 1981",
        snippet="It rained. Botham hit a stunning century.",
        url="https://www.bbc.co.uk/sport",
    )

    optimized = optimize_context(item, max_sentences=1)

    assert optimized.snippet == "Botham hit a stunning century."
    assert optimized.token_estimate == math.ceil(len("Headingley 1981 Botham hit a stunning century.") / 4)
    assert item.snippet.startswith("It rained")


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcdefgh") == 2
    assert estimate_tokens("abcde") == 2


def test_batch_size_respects_need_cap_and_budget():
    budget = BatchBudget()

    # (4096 - 900) / 180 * 0.8 = 14.2, capped by need and then by the hard cap
    assert compute_batch_size(0, 5, budget) == 5
    assert compute_batch_size(0, 50, budget) == 10
    assert compute_batch_size(2000, 50, budget) == 5


@pytest.mark.parametrize("content_tokens,needed", [(10_000, 5), (3196, 5), (0, 0), (-5, 3)])
def test_batch_size_never_below_one(content_tokens, needed):
    assert compute_batch_size(content_tokens, needed) >= 1
