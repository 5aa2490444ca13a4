"""
Pre-scoring filters for the feed ranking pass.

Applied in order:
  1. eligibility  — drop rejected posts and posts without playable media
  2. search       — free-text query over caption, author and tags
  3. structured   — content kind, author kind, location, skills

Filters only remove items; they never change an item's score.
"""
from typing import Iterable, Optional

from swipehire.schemas import (
    MODERATION_REJECTED,
    AuthorProfile,
    ContentItem,
    FeedFilters,
)

REMOTE_TOKEN = "remote"


def is_eligible(item: ContentItem) -> bool:
    """A post can be ranked only if it is not rejected and has a media reference."""
    if (item.moderation_status or "").lower() == MODERATION_REJECTED:
        return False
    return bool((item.video_url or "").strip())


def searchable_text(item: ContentItem, author: Optional[AuthorProfile]) -> str:
    parts: list[str] = [item.caption or ""]
    if author is not None:
        parts += [
            author.display_name or "",
            author.headline or "",
            author.company_name or "",
        ]
        parts += author.skills
    parts += item.tags
    return " ".join(parts).lower()


def matches_query(item: ContentItem, author: Optional[AuthorProfile], query: Optional[str]) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    return q in searchable_text(item, author)


def _overlaps(values: Iterable[str], wanted: Iterable[str]) -> bool:
    lowered = [v.lower() for v in values]
    for skill in wanted:
        s = skill.lower()
        if any(s in v or v in s for v in lowered):
            return True
    return False


def matches_filters(
    item: ContentItem,
    author: Optional[AuthorProfile],
    filters: Optional[FeedFilters],
) -> bool:
    if filters is None:
        return True

    if filters.content_types and item.type not in filters.content_types:
        return False

    if filters.author_types:
        author_kind = item.author_type or (author.kind if author else None)
        if author_kind not in filters.author_types:
            return False

    wanted_location = (filters.location or "").strip().lower()
    if wanted_location:
        author_location = ((author.location if author else None) or "").lower()
        # Remote authors match every location
        if REMOTE_TOKEN not in author_location and wanted_location not in author_location:
            return False

    if filters.skills:
        skills = list(item.tags) + (author.skills if author else [])
        if not _overlaps(skills, filters.skills):
            return False

    return True


def filter_pool(
    items: list[ContentItem],
    authors: dict[str, AuthorProfile],
    query: Optional[str] = None,
    filters: Optional[FeedFilters] = None,
) -> list[ContentItem]:
    """Return the eligible items matching query and filters, in pool order."""
    kept: list[ContentItem] = []
    for item in items:
        if not is_eligible(item):
            continue
        author = authors.get(item.author_id)
        if not matches_query(item, author, query):
            continue
        if not matches_filters(item, author, filters):
            continue
        kept.append(item)
    return kept
