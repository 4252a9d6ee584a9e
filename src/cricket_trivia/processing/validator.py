import logging
import re
from dataclasses import replace
from typing import Dict, List, Sequence

from cricket_trivia.core.entities import GeneratedItem, QualityGrade, RawContentItem
from cricket_trivia.core.errors import CollaboratorUnavailableError
from cricket_trivia.core.schemas import GradeVerdict
from cricket_trivia.processing.prompts import VALIDATION_SAMPLING, build_validation_prompt
from cricket_trivia.services.llm import OllamaClient

logger = logging.getLogger(__name__)

GRADE_ORDER = {QualityGrade.A: 0, QualityGrade.B: 1, QualityGrade.C: 2}

_NUMBERED_LINE_RE = re.compile(r"^\s*(\d+)\s*[.):-]")
_GRADE_RE = re.compile(r"\bACCEPT\s*-\s*([ABC])\b", re.IGNORECASE)
_VERDICT_RE = re.compile(r"\b(NOT\s+ACCEPT|REJECT|ACCEPT)", re.IGNORECASE)


def parse_verdict(line: str) -> GradeVerdict:
    """
    Read one verdict line. The first verdict word decides: only a standalone
    ACCEPT (not "NOT ACCEPTED", not "unacceptable") accepts. An accept without
    a readable grade counts as C.
    """
    verdict = _VERDICT_RE.search(line)
    if verdict is None or verdict.group(1).upper() != "ACCEPT":
        return GradeVerdict(accepted=False)

    match = _GRADE_RE.search(line)
    grade = match.group(1).upper() if match else "C"
    return GradeVerdict(accepted=True, grade=grade)


def parse_verdicts(reply: str, count: int) -> List[GradeVerdict]:
    """
    Map the validator reply onto `count` candidates.

    Numbered lines ("3. ACCEPT-B") are matched by number. If the reply is
    unnumbered, lines are matched by position. Candidates with no line are rejected.
    """
    lines = [line for line in reply.splitlines() if line.strip()]

    numbered: Dict[int, str] = {}
    for line in lines:
        match = _NUMBERED_LINE_RE.match(line)
        if match:
            numbered.setdefault(int(match.group(1)), line)

    verdicts = []
    for i in range(count):
        if numbered:
            line = numbered.get(i + 1, "")
        else:
            line = lines[i] if i < len(lines) else ""
        verdicts.append(parse_verdict(line))
    return verdicts


def rank_items(
    items: Sequence[GeneratedItem],
    verdicts: Sequence[GradeVerdict],
) -> List[GeneratedItem]:
    """Drop rejected items, then stable sort A > B > C."""
    accepted = [
        replace(item, quality_grade=QualityGrade(verdict.grade))
        for item, verdict in zip(items, verdicts)
        if verdict.accepted
    ]
    accepted.sort(key=lambda item: GRADE_ORDER[item.quality_grade])
    return accepted


async def validate_items(
    *,
    llm: OllamaClient,
    articles: Sequence[RawContentItem],
    items: Sequence[GeneratedItem],
) -> List[GeneratedItem]:
    """
    Grades ALL candidates in a SINGLE LLM call.

    Args:
        llm: The OllamaClient instance
        articles: The articles the candidates were generated from
        items: Candidate questions

    Returns:
        Accepted items sorted by grade. If the validation call itself fails,
        the original items are returned unvalidated.

    Raises:
        CollaboratorUnavailableError: If the LLM server is down.
    """
    if not items:
        return []

    logger.info(f"Validating {len(items)} questions in a single LLM call")

    try:
        reply = await llm.generate(build_validation_prompt(articles, items), VALIDATION_SAMPLING)
    except CollaboratorUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Question validation failed, keeping unvalidated items: {e}")
        return list(items)

    verdicts = parse_verdicts(reply, len(items))
    for item, verdict in zip(items, verdicts):
        if not verdict.accepted:
            logger.info(f"Question rejected: {item.question[:80]}")

    ranked = rank_items(items, verdicts)
    counts = {g.value: sum(1 for i in ranked if i.quality_grade == g) for g in QualityGrade}
    logger.info(
        f"Validated {len(ranked)}/{len(items)} questions "
        f"(A:{counts['A']}, B:{counts['B']}, C:{counts['C']})"
    )
    return ranked
