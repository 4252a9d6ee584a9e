"""
Prompt templates for question generation, validation and anecdote writing.
"""
import random
from typing import List, Optional, Sequence

from cricket_trivia.core.entities import Anecdote, GeneratedItem, RawContentItem
from cricket_trivia.core.filters import ALL_ERAS, FACTS_ONLY, Filter, country_labels
from cricket_trivia.services.llm import SamplingParams


CATEGORY_CONTEXT = {
    "legendary_moments": (
        "LEGENDARY CRICKET MOMENTS - match-winning performances under pressure, "
        "iconic rivalries, career-defining moments, controversial incidents, "
        "record-breaking feats that left crowds speechless."
    ),
    "player_stories": (
        "PLAYER NARRATIVES - rise from adversity, comebacks from injury, rivalry "
        "dynamics, career-changing decisions and their consequences."
    ),
    "records_stats": (
        "RECORD-BREAKING DRAMA - records broken in extraordinary circumstances, "
        "milestones that changed perception, statistical oddities."
    ),
    "rules_formats": (
        "RULES AND EVOLUTION - rule changes such as DRS and powerplays, format "
        "evolution, controversial law interpretations that decided matches."
    ),
    "cultural_impact": (
        "CULTURAL RESONANCE - matches that transcended sport, cricket in politics "
        "and diplomacy, fan culture phenomena."
    ),
}

ERA_CONTEXT = {
    "golden_age": "TIME PERIOD: pre-1950s cricket - W.G. Grace, early Test cricket, early tours.",
    "post_war_boom": "TIME PERIOD: 1950s-1970s - new Test nations, Worrell, Sobers, growth of international cricket.",
    "world_cup_era": "TIME PERIOD: 1970s-1990s - first World Cups, WSC, Kapil Dev, Imran Khan, Viv Richards.",
    "modern_era": "TIME PERIOD: 2000s-2010s - T20 revolution, IPL emergence, Tendulkar, Ponting, Dravid.",
    "contemporary": "TIME PERIOD: 2010s-2019 - Kohli, Smith, Root, AB de Villiers, recent tournaments.",
    "post_covid": "TIME PERIOD: 2020-present - bio-bubbles, current players like Babar Azam and Bumrah.",
}

FACTS_ONLY_CONTEXT = """QUESTION STYLE: Generate ONLY factual, objective questions with verifiable answers.
Avoid "turning point", "greatest", "most influential" or other opinion-based wording.
Prefer "Who scored...", "In which year...", "What was the final score...", "Which team won..."."""

# (temperature, top_p) per difficulty, then per-category nudges
DIFFICULTY_SAMPLING = {
    "easy": (0.6, 0.7),
    "medium": (0.7, 0.8),
    "hard": (0.8, 0.9),
}

CATEGORY_SAMPLING_BOOST = {
    "legendary_moments": (0.05, 0.05),
    "player_stories": (0.02, 0.03),
    "records_stats": (-0.02, -0.02),
    "rules_formats": (-0.03, -0.03),
    "cultural_impact": (0.03, 0.04),
}

VALIDATION_SAMPLING = SamplingParams(temperature=0.2, top_p=0.7, max_tokens=512)
ANECDOTE_SAMPLING = SamplingParams(temperature=0.7, top_p=0.9, max_tokens=2000)
ANECDOTE_QUESTION_SAMPLING = SamplingParams(temperature=0.8, top_p=0.9, max_tokens=4000)


def _clamp(value: float, low: float = 0.1, high: float = 0.95) -> float:
    return max(low, min(high, value))


def sampling_for(
    category: str,
    difficulty: str = "medium",
    max_tokens: int = 4096,
    rng: Optional[random.Random] = None,
) -> SamplingParams:
    """
    Sampling parameters for a question request, jittered by up to +/-0.05.
    """
    rng = rng or random.Random()
    temp, top_p = DIFFICULTY_SAMPLING.get(difficulty, DIFFICULTY_SAMPLING["medium"])
    temp_boost, top_p_boost = CATEGORY_SAMPLING_BOOST.get(category, (0.0, 0.0))
    jitter = (rng.random() - 0.5) * 0.1

    return SamplingParams(
        temperature=round(_clamp(temp + temp_boost + jitter), 3),
        top_p=round(_clamp(top_p + top_p_boost + jitter * 0.5), 3),
        max_tokens=max_tokens,
    )


def filter_context(filters: Filter) -> str:
    lines = [f"CATEGORY: {CATEGORY_CONTEXT.get(filters.category, CATEGORY_CONTEXT['legendary_moments'])}"]

    if filters.era != ALL_ERAS:
        lines.append(ERA_CONTEXT[filters.era])

    countries = country_labels(filters)
    if countries:
        lines.append(
            f"COUNTRIES/REGIONS: Focus primarily on cricket involving {', '.join(countries)}."
        )

    if filters.style == FACTS_ONLY:
        lines.append(FACTS_ONLY_CONTEXT)

    return "\n".join(lines)


def format_articles(articles: Sequence[RawContentItem]) -> str:
    return "\n\n".join(
        f"{i + 1}. TITLE: {a.title}\nURL: {a.url}\nSNIPPET: {a.snippet}"
        for i, a in enumerate(articles)
    )


def build_article_question_prompt(
    articles: Sequence[RawContentItem],
    filters: Filter,
    count: int,
) -> str:
    return f"""You are a master cricket storyteller specializing in dramatic, factual incidents.
Turn concrete cricket events from the articles below into gripping trivia questions.

{filter_context(filters)}

FOCUS ON: last-ball finishes, controversial decisions, record-breaking performances,
shocking upsets, debut heroics, farewell moments. Each question must be answerable
from the facts in the articles.
AVOID: generic statistics, administrative details, routine performances.

FORMAT - CRITICAL:
Return ONLY valid JSON. No markdown, comments or extra text. Keep strings short and on one line.
Question text at most 150 characters, explanation at most 100 characters.
Exactly 4 options per question; correctAnswer is the 0-based index of the right option.

ARTICLES:
{format_articles(articles)}

Return a JSON array with {count} elements:
[{{"question":"Dramatic setup + factual cricket question","options":["A","B","C","D"],"correctAnswer":0,"explanation":"Brief explanation","source":"article-url"}}]"""


def build_validation_prompt(
    articles: Sequence[RawContentItem],
    items: Sequence[GeneratedItem],
) -> str:
    questions = "\n\n".join(
        f"{i + 1}. QUESTION: {q.question}\nOPTIONS: {', '.join(q.options)}\n"
        f"ANSWER: {q.correct_answer}\nSOURCE: {q.source}"
        for i, q in enumerate(items)
    )

    return f"""FACTUAL VALIDATION TASK:
You are a cricket fact validation expert. Check that each trivia question tests cricket
knowledge rather than article comprehension, and that its facts match the articles.

ARTICLES:
{format_articles(articles)}

QUESTIONS TO VALIDATE:
{questions}

ACCEPT if the answer is a verifiable cricket fact (score, name, date, result, performance)
that is accurately taken from the articles.
REJECT if the question is subjective ("greatest", "most important", "according to the article"),
cannot be verified, or misrepresents the articles.

QUALITY for accepted questions:
A = excellent factual question about a clear cricket event
B = good factual question with minor issues
C = acceptable but could be more specific

Answer with exactly one line per question, in order, formatted as
"<number>. ACCEPT-A", "<number>. ACCEPT-B", "<number>. ACCEPT-C" or "<number>. REJECT"."""


def build_anecdote_prompt(search_context: str, filters: Filter, count: int) -> str:
    return f"""Generate {count} cricket anecdotes.
Context:
{search_context}

{filter_context(filters)}

Each anecdote needs:
- An engaging title
- A 150-250 word dramatic story with specific names, dates and scores
- 3-5 key facts that trivia questions can be built on
- Source citations (URLs) where you know them
- A unique incident (no duplicates)

Return ONLY a JSON array:
[{{"title":"Title","story":"Story with drama and facts","key_facts":["Fact1","Fact2","Fact3"],"sources":["URL1"],"tags":["drama","historic"]}}]

Generate {count} diverse cricket anecdotes:"""


def prepare_anecdotes(anecdotes: Sequence[Anecdote], max_story_chars: int = 500, max_facts: int = 5) -> List[Anecdote]:
    """Trim long stories and fact lists so batches stay within the token budget."""
    prepared = []
    for a in anecdotes:
        story = a.story if len(a.story) <= max_story_chars else a.story[:max_story_chars] + "..."
        prepared.append(
            Anecdote(
                id=a.id,
                title=a.title,
                story=story,
                key_facts=list(a.key_facts[:max_facts]),
                sources=list(a.sources),
                tags=list(a.tags),
                drama_tags=list(a.drama_tags),
                quality_score=a.quality_score,
            )
        )
    return prepared


def build_anecdote_question_prompt(anecdotes: Sequence[Anecdote], filters: Filter) -> str:
    blocks = "\n\n".join(
        f"{i + 1}. {a.title}\n{a.story}\nFacts: {', '.join(a.key_facts[:3])}"
        + (f"\nSources: {', '.join(a.sources[:2])}" if a.sources else "")
        for i, a in enumerate(anecdotes)
    )
    return f"""Create cricket trivia from these anecdotes. Generate 1-2 questions per anecdote
focusing on dramatic moments and verifiable facts.

{filter_context(filters)}

ANECDOTES:
{blocks}

Return ONLY a JSON array:
[{{"question":"Dramatic context + specific question?","options":["A","B","C","D"],"correctAnswer":0,"explanation":"Brief context","source":"URL","anecdoteRef":"Title"}}]

Requirements: 4 plausible options, one correct answer, test specific knowledge, keep source attribution."""
