"""
Pass-level adjustments: diversity penalty, rarity bonus and discovery bonus.

These terms depend on the rest of the pool (or on randomness) rather than on
the item alone, so they are kept apart from ranking.scoring.
"""
import random
from collections import Counter
from dataclasses import dataclass, field

from swipehire.schemas import ContentItem

KIND_REPEAT_LIMIT = 3
AUTHOR_REPEAT_LIMIT = 2
KIND_REPEAT_PENALTY = 10.0
AUTHOR_REPEAT_PENALTY = 60.0

RARITY_THRESHOLD = 0.15
RARITY_BONUS = 20.0

DISCOVERY_RANDOM_MAX = 25.0
DISCOVERY_UNSEEN_BONUS = 15.0


@dataclass
class DiversityTally:
    """Running counts of kinds and authors already scored in this pass."""
    kinds: Counter = field(default_factory=Counter)
    authors: Counter = field(default_factory=Counter)

    def observe(self, item: ContentItem) -> float:
        """Count the item and return its (non-positive) diversity penalty."""
        self.kinds[item.type] += 1
        self.authors[item.author_id] += 1
        kind_excess = max(0, self.kinds[item.type] - KIND_REPEAT_LIMIT)
        author_excess = max(0, self.authors[item.author_id] - AUTHOR_REPEAT_LIMIT)
        return -(KIND_REPEAT_PENALTY * kind_excess + AUTHOR_REPEAT_PENALTY * author_excess)


def kind_shares(items: list[ContentItem]) -> dict[str, float]:
    """Fraction of the pool taken by each content kind."""
    if not items:
        return {}
    counts = Counter(item.type for item in items)
    return {kind: n / len(items) for kind, n in counts.items()}


def rarity_bonus(item: ContentItem, shares: dict[str, float]) -> float:
    if shares.get(item.type, 0.0) < RARITY_THRESHOLD:
        return RARITY_BONUS
    return 0.0


def discovery_bonus(
    item: ContentItem,
    engaged_authors: set[str],
    viewed: set[str],
    rng: random.Random,
) -> float:
    bonus = rng.random() * DISCOVERY_RANDOM_MAX
    if item.author_id not in engaged_authors and item.id not in viewed:
        bonus += DISCOVERY_UNSEEN_BONUS
    return bonus
