"""Adaptive single-phase loop, driven end to end with fake collaborators."""

import random

import pytest

from cricket_trivia.core.entities import FetchState
from cricket_trivia.core.errors import SearchAuthError
from cricket_trivia.core.filters import Filter
from cricket_trivia.processing.generator import QuestionGenerator
from cricket_trivia.processing.term_generator import base_phrase
from cricket_trivia.services.config import FetchConfig, GenerationConfig
from cricket_trivia.workflows.fetch_controller import FetchController

from conftest import FakeLLM, FakeSearch, cricket_result, question, reply


DOMAINS = ["espncricinfo.com", "cricbuzz.com", "bbc.co.uk", "theguardian.com", "wisden.com"]


def _page(start, n=10):
    return [cricket_result(i, DOMAINS[i % len(DOMAINS)]) for i in range(start, start + n)]


def _llm(per_call=3, verdict="ACCEPT-A"):
    counter = {"n": 0}

    def respond(prompt):
        if "FACTUAL VALIDATION TASK" in prompt:
            return "\n".join(f"{i}. {verdict}" for i in range(1, 11))
        counter["n"] += 1
        return reply(*(
            question(f"Batch {counter['n']} question {j} about the stunning collapse?")
            for j in range(per_call)
        ))

    return FakeLLM(respond)


def _controller(search, llm, max_raw_items=50, **kwargs):
    return FetchController(
        search=search,
        generator=QuestionGenerator(llm, rng=random.Random(0)),
        fetch_config=kwargs.pop("fetch_config", FetchConfig()),
        generation_config=GenerationConfig(),
        max_raw_items=max_raw_items,
        rng=random.Random(0),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_reaches_target_and_never_exceeds_it():
    search = FakeSearch([_page(0), _page(10), _page(20)])
    controller = _controller(search, _llm(per_call=3))

    result = await controller.run(Filter(category="legendary_moments"), 5)

    assert result.status == FetchState.DONE
    assert result.achieved == 5
    assert result.cause is None
    assert all(len(i.options) == 4 and 0 <= i.correct_index <= 3 for i in result.items)
    assert all(i.quality_grade is not None for i in result.items)
    assert result.stats["iterations"] == 2


@pytest.mark.asyncio
async def test_empty_search_aborts_at_ceiling_without_error():
    search = FakeSearch([])
    llm = _llm()
    controller = _controller(search, llm, max_raw_items=50)

    result = await controller.run(Filter(), 5)

    assert result.status == FetchState.ABORTED
    assert result.items == []
    assert "ceiling" in result.cause
    assert [size for _, size in search.calls] == [10, 15, 20, 25]
    assert result.stats["articles_processed"] == 70
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_each_retry_uses_a_term():
    search = FakeSearch([])
    controller = _controller(search, _llm(), max_raw_items=200)

    await controller.run(Filter(), 5)

    # request size stays capped once it reaches the maximum
    sizes = [size for _, size in search.calls]
    assert sizes[:4] == [10, 15, 20, 25]
    assert set(sizes[4:]) == {25}
    assert all(query for query, _ in search.calls)


@pytest.mark.asyncio
async def test_truncated_reply_still_yields_prefix_items():
    full = reply(question("Q1 about the tie?"), question("Q2 about the collapse?"), question("Q3?"))
    llm = FakeLLM([full[: full.index("Q3") + 4]])
    search = FakeSearch([_page(0)])
    controller = _controller(search, llm, fetch_config=FetchConfig(validate_questions=False))

    result = await controller.run(Filter(), 2)

    assert result.status == FetchState.DONE
    assert [i.question for i in result.items] == ["Q1 about the tie?", "Q2 about the collapse?"]


@pytest.mark.asyncio
async def test_unparseable_generation_retries_with_larger_request():
    llm = FakeLLM(["no json here", reply(question("Q1?"), question("Q2?"))])
    search = FakeSearch([_page(0), _page(10)])
    controller = _controller(search, llm, fetch_config=FetchConfig(validate_questions=False))

    result = await controller.run(Filter(), 2)

    assert result.status == FetchState.DONE
    assert [size for _, size in search.calls] == [10, 15]


@pytest.mark.asyncio
async def test_rejected_questions_are_never_padded():
    search = FakeSearch([_page(0), _page(10)])
    controller = _controller(search, _llm(verdict="REJECT"), max_raw_items=20)

    result = await controller.run(Filter(), 5)

    assert result.status == FetchState.ABORTED
    assert result.achieved == 0
    assert result.requested == 5


@pytest.mark.asyncio
async def test_articles_are_not_reused_across_iterations():
    search = FakeSearch([_page(0, 5), _page(0, 5)])
    llm = _llm(per_call=1)
    controller = _controller(search, llm, max_raw_items=25)

    result = await controller.run(Filter(), 5)

    # the second page repeats the first, so only one generation call happens
    assert result.achieved == 1
    assert sum("FACTUAL VALIDATION TASK" not in p for p in llm.prompts) == 1


@pytest.mark.asyncio
async def test_search_terms_do_not_leak_between_runs():
    search = FakeSearch([_page(0), _page(10)])
    controller = _controller(search, _llm(per_call=3))

    first = await controller.run(Filter(category="legendary_moments"), 3)
    second_filters = Filter(category="rules_formats")
    second = await controller.run(second_filters, 3)

    assert first.achieved == second.achieved == 3
    assert len(search.calls) == 2
    second_query = search.calls[1][0]
    assert second_query.startswith(base_phrase(second_filters, "rules_formats"))


@pytest.mark.asyncio
async def test_scorer_is_pluggable():
    search = FakeSearch([_page(0), _page(10)])
    llm = _llm()
    controller = _controller(search, llm, max_raw_items=20, scorer=lambda text: 0.0)

    result = await controller.run(Filter(), 3)

    assert result.achieved == 0
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_missing_credentials_are_fatal():
    controller = _controller(FakeSearch(auth_error=True), _llm())

    with pytest.raises(SearchAuthError):
        await controller.run(Filter(), 5)


@pytest.mark.asyncio
async def test_zero_target_is_done_immediately():
    search = FakeSearch([_page(0)])

    result = await _controller(search, _llm()).run(Filter(), 0)

    assert result.status == FetchState.DONE
    assert search.calls == []
