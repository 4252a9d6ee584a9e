"""
Heuristic scoring for raw content, anecdotes and generated questions.

The content scorer is a hand-tuned keyword model, not semantic understanding.
It is a cheap relevance proxy with known failure modes:

* false positives: ordinary English words that double as cricket terms
  ("over", "test", "six") and keyword-stuffed pages score higher than
  they deserve (bounded by MAX_CONTENT_SCORE);
* false negatives: dramatic stories told without any of the listed words,
  or written in another language, score close to zero.

Callers depend on the ContentScorer protocol only, so a learned scorer can be
dropped in without touching the fetch loop.
"""
import re
from datetime import date
from typing import Iterable, List, Protocol, Sequence

from cricket_trivia.core.entities import Anecdote, GeneratedItem


MAX_CONTENT_SCORE = 2.0

DOMAIN_WEIGHT = 0.05
DRAMATIC_WEIGHT = 0.15
DRAMATIC_COMBO_BONUS = 0.2
NARRATIVE_WEIGHT = 0.1
INCIDENT_WEIGHT = 0.05
NUMERAL_BONUS = 0.05
YEAR_BONUS = 0.1

FIRST_TEST_YEAR = 1877

DOMAIN_KEYWORDS = (
    "cricket", "test", "odi", "t20", "wicket", "innings", "batsman", "batter",
    "bowler", "captain", "century", "ashes", "world cup", "ipl", "umpire",
    "stumps", "runs", "over",
)

DRAMATIC_KEYWORDS = (
    "controversy", "controversial", "dramatic", "stunning", "shocking", "shock",
    "thriller", "last-ball", "last ball", "collapse", "comeback", "upset",
    "record-breaking", "heartbreak", "miracle", "chaos", "scandal", "banned",
    "fury", "incredible",
)

NARRATIVE_KEYWORDS = (
    "moment", "story", "finally", "despite", "turned", "remember", "recalled",
    "after", "when", "until",
)

INCIDENT_KEYWORDS = (
    "dismissed", "caught", "run out", "lbw", "hat-trick", "six", "boundary",
    "no-ball", "drs", "sledging", "injury", "retired hurt", "declared",
    "follow-on", "super over",
)

TRUSTED_SOURCES = (
    "espncricinfo.com",
    "cricbuzz.com",
    "bbc.com/sport/cricket",
    "icc-cricket.com",
    "cricket.com.au",
    "ecb.co.uk",
    "bcci.tv",
)

ENGAGEMENT_WORDS = ("dramatic", "stunning", "historic", "controversial", "legendary")
QUESTION_STARTERS = ("what", "which", "who", "when", "where", "how", "why")

DRAMA_TAG_KEYWORDS = {
    "tension": ("last-ball", "final over", "needed", "pressure", "crucial"),
    "emotion": ("dramatic", "stunning", "incredible", "shocking", "emotional"),
    "conflict": ("controversial", "disputed", "argument", "confrontation", "rivalry"),
    "achievement": ("record", "milestone", "first-ever", "breakthrough", "historic"),
}

_NUMERAL_RE = re.compile(r"\d")
_YEAR_RE = re.compile(r"\b(1[89]\d{2}|20\d{2})\b")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

_pattern_cache: dict[str, re.Pattern] = {}


class ContentScorer(Protocol):
    def __call__(self, text: str) -> float:
        ...


def _keyword_pattern(keyword: str) -> re.Pattern:
    pattern = _pattern_cache.get(keyword)
    if pattern is None:
        pattern = re.compile(rf"(?<![\w-]){re.escape(keyword)}(?![\w-])")
        _pattern_cache[keyword] = pattern
    return pattern


def count_keywords(text: str, keywords: Iterable[str]) -> int:
    """
    Number of distinct keywords present in text (case-insensitive).
    Repeating a keyword does not count twice.
    """
    lowered = text.lower()
    return sum(1 for k in keywords if _keyword_pattern(k).search(lowered))


def has_plausible_year(text: str, current_year: int | None = None) -> bool:
    latest = current_year or date.today().year
    for match in _YEAR_RE.finditer(text):
        if FIRST_TEST_YEAR <= int(match.group(1)) <= latest:
            return True
    return False


def score_content(text: str) -> float:
    """
    Relevance/drama score for a title + snippet, in [0, MAX_CONTENT_SCORE].
    """
    if not text:
        return 0.0

    score = count_keywords(text, DOMAIN_KEYWORDS) * DOMAIN_WEIGHT

    dramatic = count_keywords(text, DRAMATIC_KEYWORDS)
    score += dramatic * DRAMATIC_WEIGHT
    if dramatic >= 2:
        score += DRAMATIC_COMBO_BONUS

    score += count_keywords(text, NARRATIVE_KEYWORDS) * NARRATIVE_WEIGHT
    score += count_keywords(text, INCIDENT_KEYWORDS) * INCIDENT_WEIGHT

    if _NUMERAL_RE.search(text):
        score += NUMERAL_BONUS
    if has_plausible_year(text):
        score += YEAR_BONUS

    return round(min(score, MAX_CONTENT_SCORE), 4)


def score_sentence(sentence: str) -> float:
    """
    Narrower drama score used to pick the punchiest sentences of a snippet.
    """
    score = count_keywords(sentence, DRAMATIC_KEYWORDS) * 0.3
    score += count_keywords(sentence, INCIDENT_KEYWORDS) * 0.1
    if _NUMERAL_RE.search(sentence):
        score += 0.1
    return round(score, 4)


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def source_credibility(url_or_domain: str) -> float:
    """
    Rough credibility of a source: trusted cricket outlets first, then major news.
    """
    value = url_or_domain.lower()

    if any(source in value for source in TRUSTED_SOURCES):
        return 1.0
    if "bbc." in value or "cnn." in value or "reuters." in value:
        return 0.8
    if "wikipedia." in value:
        return 0.6
    if ".edu" in value or ".org" in value:
        return 0.7
    return 0.3


def extract_drama_tags(story: str) -> List[str]:
    lowered = story.lower()
    return [
        tag for tag, keywords in DRAMA_TAG_KEYWORDS.items()
        if any(k in lowered for k in keywords)
    ]


def anecdote_quality(anecdote: Anecdote) -> float:
    """
    0-100 quality score for a Phase 1 anecdote.
    """
    score = 0.0

    word_count = len(anecdote.story.split())
    if 200 <= word_count <= 400:
        score += 20
    elif word_count >= 150:
        score += 10

    score += min(len(anecdote.key_facts) * 5, 25)

    if anecdote.sources:
        score += 15

    story = anecdote.story.lower()
    drama_words = ("dramatic", "stunning", "incredible", "last-ball", "controversial")
    score += sum(5 for w in drama_words if w in story)

    if 10 < len(anecdote.title) < 100:
        score += 10

    return float(min(score, 100))


def answer_complexity(options: Sequence[str]) -> float:
    """Length variance of the options; varied options make a harder question."""
    if not options:
        return 0.0
    lengths = [len(o) for o in options]
    mean = sum(lengths) / len(lengths)
    variance = sum((n - mean) ** 2 for n in lengths) / len(lengths)
    return min(variance / 100, 10.0)


def question_quality(item: GeneratedItem) -> float:
    """
    0-100 quality score for a question derived from anecdotes.
    """
    score = 0.0

    length = len(item.question)
    if 50 <= length <= 150:
        score += 20
    elif length >= 30:
        score += 10

    score += min(answer_complexity(item.options) * 2, 20)

    if item.explanation and len(item.explanation) > 20:
        score += 15

    question = item.question.lower()
    score += sum(5 for w in ENGAGEMENT_WORDS if w in question)

    if question.startswith(QUESTION_STARTERS):
        score += 10

    return float(min(score, 100))
