"""Search term and search context generation."""

import random

import pytest

from cricket_trivia.core.filters import Filter, parse_countries
from cricket_trivia.processing.term_generator import (
    MAX_TERMS,
    MIN_TERMS,
    base_phrase,
    build_search_context,
    generate_search_terms,
)


@pytest.mark.parametrize("seed", range(20))
def test_terms_are_unique_non_empty_and_bounded(seed):
    filters = Filter(era="world_cup_era", countries=parse_countries("india,pakistan"), category="records_stats")

    terms = generate_search_terms(filters, rng=random.Random(seed))

    assert MIN_TERMS <= len(terms) <= MAX_TERMS
    assert len(set(terms)) == len(terms)
    assert all(t.strip() for t in terms)
    assert all(t.startswith("1970s-1990s cricket India Pakistan records and stats") for t in terms)


def test_terms_vary_between_calls_with_identical_filters():
    filters = Filter()

    seen = {tuple(generate_search_terms(filters)) for _ in range(10)}

    assert len(seen) > 1


def test_base_phrase_mentions_cricket_once():
    filters = Filter(era="modern_era", countries=parse_countries("england"), category="player_stories")

    phrase = base_phrase(filters, filters.category)

    assert phrase == "2000s-2010s cricket England player stories"
    assert phrase.lower().split().count("cricket") == 1


def test_base_phrase_for_all_eras_and_countries():
    assert base_phrase(Filter(), "legendary_moments") == "legendary moments cricket"


def test_search_context_covers_every_dimension(rng):
    filters = Filter(era="post_covid", countries=parse_countries("india,england,australia"))

    context = build_search_context(filters, rng=rng)

    lines = context.splitlines()
    assert [line.split(":")[0] for line in lines] == [
        "Era", "Region", "Format", "Competition", "Players", "Narrative", "Emotional tone",
    ]
    assert "2020-present cricket focusing on" in lines[0]
    assert "big three" in lines[1]


def test_search_context_for_all_eras(rng):
    context = build_search_context(Filter(), rng=rng)

    assert "across all eras" in context
    assert "global cricket" in context
