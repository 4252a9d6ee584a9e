"""Tolerant parsing of generative replies."""

import json

import pytest

from cricket_trivia.core.errors import MalformedReplyError
from cricket_trivia.processing.parsing import (
    extract_json_block,
    normalize_json_text,
    parse_json_array,
    parse_reply_objects,
    recover_objects,
)

from conftest import question, reply


KEYS = ("question", "options")


def test_plain_array():
    assert parse_json_array(reply(question())) == [question()]


def test_markdown_fence_and_chatter():
    content = "Here you go!\n```json\n" + reply(question()) + "\n```\nEnjoy."

    assert parse_json_array(content) == [question()]


def test_trailing_commas_unquoted_keys_and_comments():
    content = """[
      // first question
      {question: "Who won in 1983?", 'options': ["India", "West Indies", "England", "Pakistan",],
       correctAnswer: 0, /* easy */ "source": "https://www.espncricinfo.com/story/1983",},
    ]"""

    items = parse_json_array(content)

    assert items == [{
        "question": "Who won in 1983?",
        "options": ["India", "West Indies", "England", "Pakistan"],
        "correctAnswer": 0,
        "source": "https://www.espncricinfo.com/story/1983",
    }]


def test_control_characters_are_stripped():
    content = "\x02" + reply(question()) + "\x07"

    assert parse_json_array(content) == [question()]


def test_wrapped_array_is_unwrapped():
    assert parse_json_array(json.dumps({"questions": [question()]})) == [question()]


def test_normalize_keeps_urls_intact():
    text = '{"source": "https://example.com/a"}'

    assert json.loads(normalize_json_text(text)) == {"source": "https://example.com/a"}


def test_extract_json_block_without_fence():
    assert extract_json_block('noise [1, 2] more') == "[1, 2]"


@pytest.mark.parametrize("content", ["", "   ", "I cannot help with that."])
def test_unparseable_reply_raises(content):
    with pytest.raises(MalformedReplyError):
        parse_json_array(content)


def test_truncated_reply_recovers_well_formed_prefix():
    full = reply(question("Q1 about a dramatic tie?"), question("Q2 about a collapse?"), question("Q3?"))
    truncated = full[: full.index("Q3") + 10]

    items = parse_reply_objects(truncated, KEYS)

    assert [i["question"] for i in items] == ["Q1 about a dramatic tie?", "Q2 about a collapse?"]


def test_truncated_question_after_correct_answer_is_completed():
    first = json.dumps(question("Q1?"))
    cut = '{"question": "Q2?", "options": ["a", "b", "c", "d"], "correctAnswer": 2, "explanation": "Becau'
    content = "[" + first + ", " + cut

    items = recover_objects(content, KEYS, fallback_source="https://www.cricbuzz.com/x")

    assert len(items) == 2
    assert items[1]["question"] == "Q2?"
    assert items[1]["correctAnswer"] == 2
    assert items[1]["source"] == "https://www.cricbuzz.com/x"


def test_truncated_before_correct_answer_is_not_completed():
    cut = '[{"question": "Q1?", "options": ["a", "b"'

    with pytest.raises(MalformedReplyError):
        parse_reply_objects(cut, KEYS, fallback_source="src")


def test_recovered_objects_need_required_keys():
    content = '[{"question": "Q?"}, {"title": "x"}, ' + json.dumps(question("Q2?")) + ", {broken"

    items = recover_objects(content, KEYS)

    assert [i["question"] for i in items] == ["Q2?"]


def test_single_bare_object_is_one_item():
    content = json.dumps(question("Q1?"))

    assert parse_reply_objects(content, KEYS) == [question("Q1?")]
    assert parse_reply_objects("Sure:\n" + content, KEYS) == [question("Q1?")]


def test_single_anecdote_object_is_not_unwrapped():
    anecdote = {"title": "Tied Test", "story": "Brisbane, 1960.", "key_facts": ["a", "b"]}

    assert parse_json_array(json.dumps(anecdote)) == [anecdote]


def test_list_without_objects_is_malformed():
    with pytest.raises(MalformedReplyError):
        parse_reply_objects('```json\n["Jofra Archer", "Ben Stokes"]\n```', KEYS)
