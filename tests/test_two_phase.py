"""Anecdote generation and the two-phase orchestrator."""

import json
import math

import pytest

from cricket_trivia.core.entities import Anecdote, FetchState
from cricket_trivia.core.errors import CollaboratorUnavailableError
from cricket_trivia.core.filters import Filter
from cricket_trivia.processing.anecdotes import (
    AnecdoteGenerator,
    anecdote_batch_size,
    clamp_anecdote_count,
    split_batches,
    to_anecdotes,
)
from cricket_trivia.processing.generator import QuestionGenerator
from cricket_trivia.services.config import TwoPhaseConfig
from cricket_trivia.workflows.two_phase import (
    TwoPhasePipeline,
    anecdotes_needed,
    question_batch_size,
    select_best_anecdotes,
)

from conftest import FakeLLM, question, reply


SETTINGS = TwoPhaseConfig()
STORY = (
    "At Edgbaston in 2005 England needed two wickets and Australia needed 107 runs. "
    "Lee and Kasprowicz crept closer until a dramatic last-ball of the over brought the end."
)


def anecdote_obj(title, story=STORY, facts=("England won by 2 runs", "Kasprowicz caught")):
    return {"title": title, "story": story, "key_facts": list(facts), "sources": ["https://www.bbc.co.uk/x"]}


def _respond_anecdotes_and_questions(prompt):
    if "cricket anecdotes" in prompt:
        size = int(prompt.split("Generate ")[1].split(" ")[0])
        return json.dumps([anecdote_obj(f"Anecdote {i} from an epic Ashes Test") for i in range(size)])
    return reply(
        question("Which dramatic finish at Edgbaston ended with a catch down the leg side?"),
        question("Who took the catch at Edgbaston in 2005?"),
        question("Name him."),
    )


@pytest.mark.parametrize("count,expected", [(None, 10), (1, 5), (5, 5), (12, 12), (50, 20)])
def test_anecdote_count_is_clamped(count, expected):
    assert clamp_anecdote_count(count, SETTINGS) == expected


@pytest.mark.parametrize("count,size", [(5, 2), (6, 2), (9, 3), (10, 4), (20, 4)])
def test_anecdote_batch_size(count, size):
    assert anecdote_batch_size(count, SETTINGS) == size


def test_split_batches():
    assert split_batches(10, 4) == [4, 4, 2]
    assert split_batches(6, 3) == [3, 3]
    assert sum(split_batches(17, 4)) == 17


@pytest.mark.parametrize("target,available", [(10, 20), (10, 3), (1, 5), (30, 20), (7, 7)])
def test_anecdotes_needed_never_exceeds_available(target, available):
    needed = anecdotes_needed(target, available, 1.5)

    assert needed <= available
    assert needed == min(math.ceil(target / 1.5), available)


@pytest.mark.parametrize("n,size", [(4, 2), (5, 3), (6, 3), (10, 3)])
def test_question_batch_size(n, size):
    assert question_batch_size(n, SETTINGS) == size


def test_to_anecdotes_validates_and_scores():
    objects = [
        anecdote_obj("Good one from Edgbaston"),
        anecdote_obj("Too short", story="Brief."),
        {"title": "No facts", "story": STORY},
        {"story": STORY, "key_facts": ["x"]},
    ]

    anecdotes = to_anecdotes(objects)

    assert [a.title for a in anecdotes] == ["Good one from Edgbaston"]
    assert anecdotes[0].quality_score > 0
    assert "tension" in anecdotes[0].drama_tags
    assert anecdotes[0].id.startswith("anecdote_")


def test_select_best_anecdotes_by_quality():
    anecdotes = [
        Anecdote(id=str(i), title=f"t{i}", story="s", quality_score=score)
        for i, score in enumerate([10, 50, 30, 50])
    ]

    assert [a.id for a in select_best_anecdotes(anecdotes, 3)] == ["1", "3", "2"]


@pytest.mark.asyncio
async def test_anecdote_batches_fail_independently(caplog):
    calls = {"n": 0}

    def respond(prompt):
        calls["n"] += 1
        if calls["n"] == 2:
            raise TimeoutError("Request timed out after 300s")
        return _respond_anecdotes_and_questions(prompt)

    generator = AnecdoteGenerator(FakeLLM(respond), SETTINGS)

    anecdotes = await generator.generate(Filter(), 10)

    # batches of 4, 4, 2; the second one fails
    assert calls["n"] == 3
    assert len(anecdotes) == 6
    assert "Batch 2 failed" in caplog.text


@pytest.mark.asyncio
async def test_two_phase_end_to_end_ranks_and_truncates():
    llm = FakeLLM(_respond_anecdotes_and_questions)
    pipeline = TwoPhasePipeline(
        anecdote_generator=AnecdoteGenerator(llm, SETTINGS),
        question_generator=QuestionGenerator(llm),
        settings=SETTINGS,
        anecdote_count=10,
    )

    result = await pipeline.run(Filter(category="player_stories"), 6)

    assert result.status == FetchState.DONE
    assert result.achieved == 6
    assert result.stats["anecdotes_generated"] == 10
    assert result.stats["anecdotes_used"] == 4
    scores = [i.quality_score for i in result.items]
    assert scores == sorted(scores, reverse=True)
    assert all(i.quality_grade is None for i in result.items)
    assert result.items[0].question.startswith("Which dramatic finish")

    question_prompts = [p for p in llm.prompts if "Create cricket trivia" in p]
    # 4 anecdotes is above the parallel threshold: two batches of 2
    assert len(question_prompts) == 2


@pytest.mark.asyncio
async def test_two_phase_small_selection_uses_a_single_call():
    llm = FakeLLM(_respond_anecdotes_and_questions)
    pipeline = TwoPhasePipeline(
        anecdote_generator=AnecdoteGenerator(llm, SETTINGS),
        question_generator=QuestionGenerator(llm),
        settings=SETTINGS,
        anecdote_count=5,
    )

    result = await pipeline.run(Filter(), 4)

    assert len([p for p in llm.prompts if "Create cricket trivia" in p]) == 1
    assert result.achieved == 3
    assert result.status == FetchState.ABORTED
    assert "3/4" in result.cause


@pytest.mark.asyncio
async def test_two_phase_without_anecdotes_is_partial_not_fatal():
    llm = FakeLLM(lambda prompt: "not json at all")
    pipeline = TwoPhasePipeline(
        anecdote_generator=AnecdoteGenerator(llm, SETTINGS),
        question_generator=QuestionGenerator(llm),
        settings=SETTINGS,
    )

    result = await pipeline.run(Filter(), 5)

    assert result.status == FetchState.ABORTED
    assert result.items == []
    assert result.cause == "no anecdotes generated"


@pytest.mark.asyncio
async def test_llm_outage_during_anecdotes_is_fatal():
    def respond(prompt):
        raise CollaboratorUnavailableError("Ollama unreachable after 3 attempts")

    generator = AnecdoteGenerator(FakeLLM(respond), SETTINGS)

    with pytest.raises(CollaboratorUnavailableError):
        await generator.generate(Filter(), 10)


@pytest.mark.asyncio
@pytest.mark.parametrize("target", [3, 6])
async def test_llm_outage_during_question_derivation_is_fatal(target):
    def respond(prompt):
        if "Create cricket trivia" in prompt:
            raise CollaboratorUnavailableError("Ollama unreachable after 3 attempts")
        return _respond_anecdotes_and_questions(prompt)

    llm = FakeLLM(respond)
    pipeline = TwoPhasePipeline(
        anecdote_generator=AnecdoteGenerator(llm, SETTINGS),
        question_generator=QuestionGenerator(llm),
        settings=SETTINGS,
        anecdote_count=5,
    )

    # 3 derives in one call, 6 in parallel batches
    with pytest.raises(CollaboratorUnavailableError):
        await pipeline.run(Filter(), target)
