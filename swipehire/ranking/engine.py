"""
Feed ranking engine — a pure, synchronous ranking pass over a pool snapshot.

  Stage 1 │ Filtering
          │  eligibility → free-text query → structured filters
  Stage 2 │ Scoring (fold over the pool in fetch order)
          │  item terms (ranking.scoring)
          │  + diversity tally, rarity, discovery (ranking.diversity)
  Stage 3 │ Ordering
          │  stable sort by final score, descending
  Stage 4 │ Pagination
          │  contiguous slice of the ordered pool

The engine does no I/O. The only non-determinism is the discovery draw, which
comes from an explicit random.Random so callers can seed it.
"""
import logging
import random
from datetime import datetime, timezone
from typing import Optional

from swipehire.ranking.diversity import (
    DiversityTally,
    discovery_bonus,
    kind_shares,
    rarity_bonus,
)
from swipehire.ranking.filters import filter_pool, is_eligible
from swipehire.ranking.scoring import Preferences, infer_preferences, score_item
from swipehire.schemas import (
    ContentItem,
    FeedFilters,
    FeedPage,
    RankedItem,
    RankingContext,
)

logger = logging.getLogger(__name__)


def rank_pool(
    items: list[ContentItem],
    context: RankingContext,
    query: Optional[str] = None,
    filters: Optional[FeedFilters] = None,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> list[RankedItem]:
    """
    Filter, score and order the whole pool.

    The discovery term is drawn once per item here; pages must be cut from
    the returned list rather than by calling this again.
    """
    if rng is None:
        rng = random.Random(seed)
    if now is None:
        now = datetime.now(timezone.utc)

    eligible = [item for item in items if is_eligible(item)]
    candidates = filter_pool(eligible, context.authors, query, filters)
    if not candidates:
        logger.debug("No candidates left after filtering (pool=%d)", len(items))
        return []

    if context.viewer is not None:
        prefs = infer_preferences(context, {item.id: item for item in eligible})
        engaged_authors = set(context.follows) | prefs.liked_authors
    else:
        # Anonymous: no history or follow terms
        prefs = Preferences()
        engaged_authors = set()
    shares = kind_shares(eligible)

    tally = DiversityTally()
    ranked: list[RankedItem] = []
    for item in candidates:
        breakdown = score_item(item, context, prefs, engaged_authors, now)
        breakdown.diversity_penalty = tally.observe(item)
        breakdown.rarity = rarity_bonus(item, shares)
        breakdown.discovery = discovery_bonus(item, engaged_authors, context.viewed, rng)
        author = context.authors.get(item.author_id)
        ranked.append(
            RankedItem(
                item=item,
                score=round(breakdown.total, 4),
                breakdown=breakdown,
                author_name=author.display_name if author else None,
            )
        )

    ranked.sort(key=lambda r: r.score, reverse=True)
    logger.debug(
        "Ranked %d of %d posts (eligible=%d, engaged_authors=%d)",
        len(ranked), len(items), len(eligible), len(engaged_authors),
    )
    return ranked


def paginate(ranked: list, page_size: int, page_index: int) -> tuple[list, bool]:
    """Return the page slice and whether more pages follow it."""
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    if page_index < 0:
        raise ValueError(f"page_index must be >= 0, got {page_index}")
    start = page_index * page_size
    end = start + page_size
    return ranked[start:end], end < len(ranked)


def rank_feed(
    items: list[ContentItem],
    context: RankingContext,
    query: Optional[str] = None,
    filters: Optional[FeedFilters] = None,
    page_size: int = 20,
    page_index: int = 0,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> FeedPage:
    """Rank the pool and return one page of it."""
    ranked = rank_pool(items, context, query, filters, seed=seed, rng=rng, now=now)
    page, has_more = paginate(ranked, page_size, page_index)
    return FeedPage(items=page, has_more=has_more, total=len(ranked), page=page_index)
