"""
Declarative filter vocabulary: eras, countries, categories and question styles.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List


ALL_ERAS = "all_eras"
ALL_COUNTRIES = "all_countries"

FACTS_ONLY = "facts_only"
FACTS_OPINIONS = "facts_opinions"


ERA_LABELS: Dict[str, str] = {
    ALL_ERAS: "cricket",
    "golden_age": "pre-1950s cricket",
    "post_war_boom": "1950s-1970s cricket",
    "world_cup_era": "1970s-1990s cricket",
    "modern_era": "2000s-2010s cricket",
    "contemporary": "2010s-2019 cricket",
    "post_covid": "2020-present cricket",
}

COUNTRY_LABELS: Dict[str, str] = {
    ALL_COUNTRIES: "global",
    "england": "England",
    "australia": "Australia",
    "india": "India",
    "west_indies": "West Indies",
    "pakistan": "Pakistan",
    "south_africa": "South Africa",
    "new_zealand": "New Zealand",
    "sri_lanka": "Sri Lanka",
    "bangladesh": "Bangladesh",
    "afghanistan": "Afghanistan",
    "ireland": "Ireland",
    "zimbabwe": "Zimbabwe",
}

CATEGORY_LABELS: Dict[str, str] = {
    "legendary_moments": "legendary moments",
    "player_stories": "player stories",
    "records_stats": "records and stats",
    "rules_formats": "rules and formats",
    "cultural_impact": "cultural impact",
}

STYLES = (FACTS_ONLY, FACTS_OPINIONS)

DEFAULT_CATEGORY = "legendary_moments"


@dataclass(frozen=True)
class Filter:
    """
    Caller-supplied topical filter. Never mutated by the pipeline.
    """
    era: str = ALL_ERAS
    countries: FrozenSet[str] = field(default_factory=lambda: frozenset({ALL_COUNTRIES}))
    category: str = DEFAULT_CATEGORY
    style: str = FACTS_OPINIONS

    def __post_init__(self):
        if self.era not in ERA_LABELS:
            raise ValueError(f"Unknown era: {self.era}")
        if self.category not in CATEGORY_LABELS:
            raise ValueError(f"Unknown category: {self.category}")
        if self.style not in STYLES:
            raise ValueError(f"Unknown question style: {self.style}")

        countries = frozenset(self.countries) or frozenset({ALL_COUNTRIES})
        unknown = [c for c in countries if c not in COUNTRY_LABELS]
        if unknown:
            raise ValueError(f"Unknown countries: {', '.join(sorted(unknown))}")
        object.__setattr__(self, "countries", countries)

    @property
    def all_countries(self) -> bool:
        return ALL_COUNTRIES in self.countries

    @property
    def selected_countries(self) -> List[str]:
        """Country tags in a stable order, excluding the 'all' marker."""
        return sorted(c for c in self.countries if c != ALL_COUNTRIES)


def parse_countries(value: str | Iterable[str]) -> FrozenSet[str]:
    """Accepts a CSV string or an iterable of country tags."""
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = list(value)
    tags = {p.strip().lower() for p in parts if p and p.strip()}
    return frozenset(tags) or frozenset({ALL_COUNTRIES})


def era_label(era: str) -> str:
    return ERA_LABELS.get(era, ERA_LABELS[ALL_ERAS])


def country_labels(filters: Filter) -> List[str]:
    if filters.all_countries:
        return []
    return [COUNTRY_LABELS[c] for c in filters.selected_countries]


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, "")
