"""
Search term generation with randomized dramatic modifiers and angles.
"""
import random
from typing import List, Optional

from cricket_trivia.core.filters import (
    ALL_ERAS,
    Filter,
    category_label,
    country_labels,
    era_label,
)

MIN_TERMS = 4
MAX_TERMS = 6

DRAMATIC_MODIFIERS = (
    "controversy",
    "comeback",
    "record-breaking",
    "last-ball finish",
    "shock upset",
    "collapse",
    "dramatic finish",
    "heroics",
)

ANGLES = (
    "what happened",
    "player reactions",
    "untold story",
    "turning point",
    "remembered",
    "behind the scenes",
)

# Era sub-periods and other dimensions used for the anecdote search context.
ERA_SUBPERIODS = {
    "golden_age": ("early cricket", "foundation years", "amateur era", "wartime cricket"),
    "post_war_boom": ("post-war revival", "test expansion", "county growth", "emerging nations"),
    "world_cup_era": ("ODI birth", "world cup early years", "WSC revolution", "professionalization"),
    "modern_era": ("T20 birth", "IPL emergence", "technology integration", "global expansion"),
    "contemporary": ("franchise cricket boom", "bilateral series decline", "format evolution"),
    "post_covid": ("bio-bubble cricket", "schedule chaos", "player welfare focus", "streaming revolution"),
}

REGION_GROUPS = {
    "big three": frozenset({"england", "australia", "india"}),
    "asian powerhouse": frozenset({"india", "pakistan", "sri_lanka"}),
    "subcontinental": frozenset({"india", "pakistan", "sri_lanka", "bangladesh"}),
}
COMMONWEALTH = frozenset({"england", "australia", "south_africa", "new_zealand"})

MATCH_FORMATS = {
    "Test cricket": ("5-day tests", "timeless tests", "day-night tests", "pink ball tests"),
    "One Day Internationals": ("50-over ODIs", "world cup matches", "bilateral ODIs", "series deciders"),
    "T20 cricket": ("T20 internationals", "franchise cricket", "world cup T20s", "domestic T20s"),
    "First-class cricket": ("county cricket", "shield cricket", "ranji trophy", "plunket shield"),
}

TOURNAMENTS = {
    "World Cup cricket": ("50-over world cups", "T20 world cups", "womens world cups", "under-19 world cups"),
    "The Ashes": ("ashes in england", "ashes in australia", "ashes series", "ashes moments"),
    "Indian Premier League": ("IPL seasons", "IPL playoffs", "IPL auctions", "IPL records"),
    "Domestic cricket": ("county championship", "sheffield shield", "ranji trophy", "big bash"),
}

PLAYER_ROLES = {
    "Batsmen": ("openers", "middle order", "finishers", "anchors", "strokemakers"),
    "Bowlers": ("fast bowlers", "spinners", "swing bowlers", "death bowlers"),
    "All-rounders": ("batting all-rounders", "bowling all-rounders", "genuine all-rounders"),
    "Wicket-keepers": ("keeper-batsmen", "specialist keepers", "captain-keepers"),
    "Captains": ("tactical captains", "inspirational leaders", "young captains", "veteran captains"),
}

NARRATIVE_ANGLES = ("underdog story", "comeback tale", "dominant performance", "controversial moment", "breakthrough")
EMOTIONAL_TONES = ("high-pressure", "tense", "celebratory", "dramatic", "career-defining", "historic")

CATEGORY_FOCUS = {
    "legendary_moments": ("iconic performances", "historic firsts", "record-breaking feats", "dramatic finishes"),
    "player_stories": ("career highlights", "personal journeys", "breakthrough moments", "rivalry dynamics"),
    "records_stats": ("statistical milestones", "numerical achievements", "comparative analysis"),
    "rules_formats": ("rule changes", "format evolution", "tactical innovations", "game development"),
    "cultural_impact": ("social significance", "cultural moments", "fan perspectives", "media coverage"),
}


def base_phrase(filters: Filter, category: str) -> str:
    parts = []
    if filters.era != ALL_ERAS:
        parts.append(era_label(filters.era))
    parts.extend(country_labels(filters))
    parts.append(category_label(category))
    parts.append("cricket")

    # era labels already end in "cricket"; keep the phrase free of repeats
    words: List[str] = []
    for part in parts:
        for word in part.split():
            if word.lower() == "cricket" and "cricket" in (w.lower() for w in words):
                continue
            words.append(word)
    return " ".join(words)


def generate_search_terms(
    filters: Filter,
    category: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """
    Build 4-6 unique search queries for the given filters.

    Every call draws a fresh random subset of modifiers and angles, so two
    calls with identical filters usually return different query sets.
    """
    rng = rng or random.Random()
    base = base_phrase(filters, category or filters.category)

    count = rng.randint(MIN_TERMS, MAX_TERMS)
    modifiers = rng.sample(DRAMATIC_MODIFIERS, k=min(count, len(DRAMATIC_MODIFIERS)))
    angles = rng.sample(ANGLES, k=min(count, len(ANGLES)))

    candidates = [base]
    for i in range(count):
        modifier = modifiers[i % len(modifiers)]
        if rng.random() < 0.5:
            candidates.append(f"{base} {modifier}")
        else:
            candidates.append(f"{base} {modifier} {angles[i % len(angles)]}")

    terms: List[str] = []
    for term in candidates:
        if term not in terms:
            terms.append(term)

    # top up from the full cross product if collisions left us short
    combos = [f"{base} {m} {a}" for m in DRAMATIC_MODIFIERS for a in ANGLES]
    rng.shuffle(combos)
    for term in combos:
        if len(terms) >= count:
            break
        if term not in terms:
            terms.append(term)

    terms = terms[:count]
    rng.shuffle(terms)
    return terms


def _pick(rng: random.Random, options) -> str:
    return rng.choice(list(options))


def _region_context(filters: Filter) -> str:
    if filters.all_countries:
        return "global cricket with diverse regional perspectives"

    labels = country_labels(filters)
    if len(labels) == 1:
        return labels[0]

    selected = frozenset(filters.selected_countries)
    region = "international"
    for name, members in REGION_GROUPS.items():
        if selected == members:
            region = name
            break
    else:
        if selected <= COMMONWEALTH:
            region = "commonwealth"
    return f"{', '.join(labels)} with {region} rivalry focus"


def build_search_context(
    filters: Filter,
    category: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Randomized multi-line context used to steer anecdote generation.
    """
    rng = rng or random.Random()
    category = category or filters.category

    if filters.era == ALL_ERAS:
        era = "cricket across all eras with varied historical contexts"
    else:
        era = f"{era_label(filters.era)} focusing on {_pick(rng, ERA_SUBPERIODS[filters.era])}"

    fmt = _pick(rng, MATCH_FORMATS)
    tournament = _pick(rng, TOURNAMENTS)
    role = _pick(rng, PLAYER_ROLES)
    focus = _pick(rng, CATEGORY_FOCUS.get(category, CATEGORY_FOCUS["legendary_moments"]))

    lines = [
        f"Era: {era}",
        f"Region: {_region_context(filters)}",
        f"Format: {fmt} emphasizing {_pick(rng, MATCH_FORMATS[fmt])}",
        f"Competition: {tournament} particularly {_pick(rng, TOURNAMENTS[tournament])}",
        f"Players: {role} highlighting {_pick(rng, PLAYER_ROLES[role])}",
        f"Narrative: {_pick(rng, NARRATIVE_ANGLES)} with {focus}",
        f"Emotional tone: {_pick(rng, EMOTIONAL_TONES)} moments",
    ]
    return "\n".join(lines)
