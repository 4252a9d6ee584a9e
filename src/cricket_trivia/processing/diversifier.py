import logging
import random
from collections import defaultdict
from itertools import groupby
from typing import Dict, List, Optional, Sequence

from cricket_trivia.core.entities import RawContentItem

logger = logging.getLogger(__name__)


def per_source_cap(target: int) -> int:
    return max(1, target // 3)


def _rank(items: Sequence[RawContentItem], rng: random.Random) -> List[RawContentItem]:
    """Sort by score descending, shuffling inside each group of equal scores."""
    ordered = sorted(items, key=lambda i: i.relevance_score, reverse=True)
    ranked: List[RawContentItem] = []
    for _, group in groupby(ordered, key=lambda i: i.relevance_score):
        tied = list(group)
        rng.shuffle(tied)
        ranked.extend(tied)
    return ranked


def diversify_sources(
    items: Sequence[RawContentItem],
    target: int,
    rng: Optional[random.Random] = None,
) -> List[RawContentItem]:
    """
    Select up to `target` items while limiting how many come from one domain.

    Items are expected to be pre-filtered to the minimum quality threshold.
    The per-source cap is only exceeded when backfilling is the only way to
    reach the target.
    """
    if target <= 0 or not items:
        return []

    rng = rng or random.Random()
    cap = per_source_cap(target)
    ranked = _rank(items, rng)

    selected: List[RawContentItem] = []
    chosen = set()
    per_source: Dict[str, int] = defaultdict(int)

    for idx, item in enumerate(ranked):
        if len(selected) >= target:
            break
        if per_source[item.domain] >= cap:
            continue
        selected.append(item)
        chosen.add(idx)
        per_source[item.domain] += 1

    if len(selected) < target:
        backfill = [item for idx, item in enumerate(ranked) if idx not in chosen]
        needed = target - len(selected)
        if backfill:
            logger.debug(f"Diversifier backfilling {min(needed, len(backfill))} items past cap {cap}")
        selected.extend(backfill[:needed])

    return selected
