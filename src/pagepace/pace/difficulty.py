"""Book difficulty from catalog categories.

Categories are free-text labels (often Korean bookstore paths such as
"국내도서>소설>한국소설"). The rules below are checked in order and the
first match decides the factor; a factor above 1 means pages go faster.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

NEUTRAL_DIFFICULTY = 1.0

# Separators used inside bookstore category paths
_SEGMENT_SPLIT = re.compile(r"[>/|,;\s]+")


@dataclass(frozen=True)
class DifficultyRule:
    """Maps category keywords to a reading-speed multiplier."""

    name: str
    factor: float
    keywords: tuple[str, ...]  # Matched anywhere in the joined categories
    segments: tuple[str, ...] = ()  # Matched only as a whole category segment

    def matches(self, text: str, segments: set[str]) -> bool:
        if any(keyword in text for keyword in self.keywords):
            return True
        return any(segment in segments for segment in self.segments)


DIFFICULTY_RULES: tuple[DifficultyRule, ...] = (
    DifficultyRule("comic", 1.3, ("comic", "만화")),
    # A bare "시" is too short to search for inside other words
    DifficultyRule("poetry", 1.1, ("poetry", "시집"), segments=("시",)),
    DifficultyRule("essay", 0.95, ("essay", "에세이")),
    DifficultyRule(
        "humanities",
        0.9,
        ("humanities", "economy", "business", "인문", "경제", "경영"),
    ),
    DifficultyRule("academic", 0.8, ("academic", "textbook", "학술", "전문서", "교재")),
    DifficultyRule("fiction", 1.0, ("fiction", "소설")),
)


def match_difficulty_rule(
    categories: Optional[Iterable[str]],
    rules: tuple[DifficultyRule, ...] = DIFFICULTY_RULES,
) -> Optional[DifficultyRule]:
    """Find the first rule matching any of the categories.

    Args:
        categories: Category labels, in catalog order
        rules: Ordered rules to check

    Returns:
        The matching rule, or None
    """
    labels = [label for label in (categories or []) if label]
    if not labels:
        return None

    text = " ".join(labels).lower()
    segments = {segment for segment in _SEGMENT_SPLIT.split(text) if segment}

    for rule in rules:
        if rule.matches(text, segments):
            return rule
    return None


def difficulty_factor(
    categories: Optional[Iterable[str]],
    rules: tuple[DifficultyRule, ...] = DIFFICULTY_RULES,
) -> float:
    """Get the difficulty factor for a book's categories (1.0 when nothing matches)."""
    rule = match_difficulty_rule(categories, rules)
    return rule.factor if rule else NEUTRAL_DIFFICULTY
