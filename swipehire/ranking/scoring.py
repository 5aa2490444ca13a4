"""
Per-item scoring terms for the feed ranker.

Every term is a small pure function clamped to its own ceiling, so no single
signal can dominate the sum:

  engagement          0–80   raw counters + engagement rate
  recency             0–70   step function of age in hours
  engaged author      0/50   followed or previously liked author
  preferred kind      0–30   share of positive history with this content kind
  tag affinity        0–20   overlap with tags from positive history
  skill relevance     0–40   tags matching the viewer's skills
  industry relevance  0/25   author industry in viewer's preferred categories
  role kind           0–40   recruiters favour intros, job seekers job posts etc.
  location            0–30   same city 30, same region 15
  culture fit         0–25   author culture traits ∩ viewer preferences
  quality             0–20   long caption, well tagged, has thumbnail
  viewed penalty      0/−80  already seen this session

Pass-level terms (diversity, rarity, discovery) live in ranking.diversity.
Weights are policy, not derived constants — tune freely.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from swipehire.schemas import (
    KIND_COMPANY_CULTURE,
    KIND_INTRO,
    KIND_JOB_POST,
    KIND_TIPS,
    AuthorProfile,
    ContentItem,
    RankingContext,
    ScoreBreakdown,
    ViewerProfile,
)

ENGAGEMENT_MAX = 80.0
ENGAGEMENT_RATE_WEIGHT = 30.0
RECENCY_BUCKETS = [(3, 70.0), (12, 55.0), (24, 45.0), (48, 35.0), (72, 25.0), (168, 15.0)]
ENGAGED_AUTHOR_BONUS = 50.0
PREFERRED_KIND_MAX = 30.0
TAG_AFFINITY_PER_TAG = 5.0
TAG_AFFINITY_MAX = 20.0
SKILL_MATCH_PER_TAG = 20.0
SKILL_RELEVANCE_MAX = 40.0
INDUSTRY_BONUS = 25.0
LOCATION_CITY_BONUS = 30.0
LOCATION_REGION_BONUS = 15.0
CULTURE_FIT_MAX = 25.0
VIEWED_PENALTY = -80.0

RECRUITER_KIND_BONUS = {KIND_INTRO: 40.0}
JOB_SEEKER_KIND_BONUS = {KIND_JOB_POST: 40.0, KIND_COMPANY_CULTURE: 30.0, KIND_TIPS: 25.0}

# Targets that are users themselves
AUTHOR_TARGETS = frozenset({"candidate", "company", "user"})
# Swipes on non-video targets still say something about preferred content
TARGET_KINDS = {"job": KIND_JOB_POST, "candidate": KIND_INTRO}


@dataclass
class Preferences:
    """Implicit preferences inferred from the viewer's positive history."""
    liked_authors: set[str] = field(default_factory=set)
    kind_counts: Counter = field(default_factory=Counter)
    tag_counts: Counter = field(default_factory=Counter)

    @property
    def total_kinds(self) -> int:
        return sum(self.kind_counts.values())


def infer_preferences(context: RankingContext, pool: dict[str, ContentItem]) -> Preferences:
    """
    Build liked authors, kind counts and tag counts from positive interactions
    and the posts liked this session. Videos outside the pool only contribute
    through an explicit author_id on the interaction.
    """
    prefs = Preferences()
    liked_videos = set(context.liked)

    for ix in context.interactions:
        if not ix.is_positive:
            continue
        if ix.author_id:
            prefs.liked_authors.add(ix.author_id)
        if ix.target_type in AUTHOR_TARGETS:
            prefs.liked_authors.add(ix.target_id)
        if ix.target_type == "video":
            liked_videos.add(ix.target_id)
        elif ix.target_type in TARGET_KINDS:
            prefs.kind_counts[TARGET_KINDS[ix.target_type]] += 1

    for post_id in liked_videos:
        item = pool.get(post_id)
        if item is None:
            continue
        if item.author_id:
            prefs.liked_authors.add(item.author_id)
        if item.type:
            prefs.kind_counts[item.type] += 1
        prefs.tag_counts.update(t.lower() for t in item.tags)

    return prefs


# ── Item-only terms ────────────────────────────────────────────────────────

def engagement_score(item: ContentItem) -> float:
    raw = item.likes * 2 + item.views * 0.1 + item.shares * 4 + item.comments_count * 3
    rate = 0.0
    if item.views:
        rate = (item.likes + 2 * item.shares + item.comments_count) / item.views
    return min(ENGAGEMENT_MAX, raw + ENGAGEMENT_RATE_WEIGHT * min(rate, 1.0))


def age_hours(item: ContentItem, now: datetime) -> Optional[float]:
    created = item.created_date
    if created is None:
        return None
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return max(0.0, (now - created).total_seconds() / 3600)


def recency_score(item: ContentItem, now: datetime) -> float:
    age = age_hours(item, now)
    if age is None:
        return 0.0
    for limit, points in RECENCY_BUCKETS:
        if age < limit:
            return points
    return 0.0


def quality_score(item: ContentItem) -> float:
    score = 0.0
    if len(item.caption or "") > 50:
        score += 10
    if len(item.tags) >= 3:
        score += 5
    if item.thumbnail_url:
        score += 5
    return score


# ── History terms ──────────────────────────────────────────────────────────

def preferred_kind_score(item: ContentItem, prefs: Preferences) -> float:
    total = prefs.total_kinds
    if not total or not item.type:
        return 0.0
    return min(PREFERRED_KIND_MAX, PREFERRED_KIND_MAX * prefs.kind_counts[item.type] / total)


def tag_affinity_score(item: ContentItem, prefs: Preferences) -> float:
    overlap = sum(1 for t in item.tags if t.lower() in prefs.tag_counts)
    return min(TAG_AFFINITY_MAX, TAG_AFFINITY_PER_TAG * overlap)


# ── Profile terms ──────────────────────────────────────────────────────────

def skill_relevance_score(item: ContentItem, viewer: ViewerProfile) -> float:
    skills = [s.lower() for s in viewer.skills]
    matches = 0
    for tag in item.tags:
        t = tag.lower()
        if any(s in t or t in s for s in skills):
            matches += 1
    return min(SKILL_RELEVANCE_MAX, SKILL_MATCH_PER_TAG * matches)


def industry_score(author: Optional[AuthorProfile], viewer: ViewerProfile) -> float:
    industry = ((author.industry if author else None) or "").strip().lower()
    if not industry:
        return 0.0
    for category in viewer.preferred_categories:
        c = category.lower()
        if c in industry or industry in c:
            return INDUSTRY_BONUS
    return 0.0


def role_kind_score(item: ContentItem, viewer: ViewerProfile) -> float:
    table = RECRUITER_KIND_BONUS if viewer.is_recruiter else JOB_SEEKER_KIND_BONUS
    return table.get(item.type, 0.0)


def _location_tokens(location: Optional[str]) -> tuple[str, str]:
    parts = [p.strip().lower() for p in (location or "").split(",") if p.strip()]
    if not parts:
        return "", ""
    return parts[0], parts[-1]


def location_score(author: Optional[AuthorProfile], viewer: ViewerProfile) -> float:
    viewer_city, viewer_region = _location_tokens(viewer.location)
    author_city, author_region = _location_tokens(author.location if author else None)
    if not viewer_city or not author_city:
        return 0.0
    if viewer_city == author_city:
        return LOCATION_CITY_BONUS
    if viewer_region == author_region:
        return LOCATION_REGION_BONUS
    return 0.0


def culture_fit_score(author: Optional[AuthorProfile], viewer: ViewerProfile) -> float:
    wanted = {p.lower() for p in viewer.culture_preferences}
    if not wanted or author is None:
        return 0.0
    overlap = len(wanted & {t.lower() for t in author.culture_traits})
    return min(CULTURE_FIT_MAX, CULTURE_FIT_MAX * overlap / len(wanted))


# ── Combined ───────────────────────────────────────────────────────────────

def score_item(
    item: ContentItem,
    context: RankingContext,
    prefs: Preferences,
    engaged_authors: set[str],
    now: datetime,
) -> ScoreBreakdown:
    """
    Score everything about an item that does not depend on the rest of the
    pass. Profile terms stay at 0 without a viewer; for anonymous viewers the
    engine also passes empty preferences and no engaged authors.
    """
    breakdown = ScoreBreakdown(
        engagement=engagement_score(item),
        recency=recency_score(item, now),
        engaged_author=ENGAGED_AUTHOR_BONUS if item.author_id in engaged_authors else 0.0,
        preferred_kind=preferred_kind_score(item, prefs),
        tag_affinity=tag_affinity_score(item, prefs),
        quality=quality_score(item),
        viewed_penalty=VIEWED_PENALTY if item.id in context.viewed else 0.0,
    )

    viewer = context.viewer
    if viewer is not None:
        author = context.authors.get(item.author_id)
        breakdown.skill_relevance = skill_relevance_score(item, viewer)
        breakdown.industry_relevance = industry_score(author, viewer)
        breakdown.role_kind = role_kind_score(item, viewer)
        breakdown.location = location_score(author, viewer)
        breakdown.culture_fit = culture_fit_score(author, viewer)

    return breakdown
