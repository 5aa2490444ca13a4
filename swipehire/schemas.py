"""
Pydantic schemas shared by the ranking engine, the data-store client and the
HTTP layer.

Field names on the record models (ContentItem, Interaction) follow the remote
data store's entities so records can be validated straight from its JSON.
Validators coerce missing or malformed values to empty/zero instead of failing:
the ranking engine must never raise on bad data.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# ── Vocabularies ───────────────────────────────────────────────────────────

KIND_INTRO = "intro"
KIND_JOB_POST = "job_post"
KIND_COMPANY_CULTURE = "company_culture"
KIND_TIPS = "tips"
KIND_DAY_IN_LIFE = "day_in_life"
CONTENT_KINDS = (KIND_INTRO, KIND_JOB_POST, KIND_COMPANY_CULTURE, KIND_TIPS, KIND_DAY_IN_LIFE)

AUTHOR_CANDIDATE = "candidate"
AUTHOR_EMPLOYER = "employer"

ROLE_JOB_SEEKER = "job_seeker"
ROLE_RECRUITER = "recruiter"

MODERATION_REJECTED = "rejected"

POSITIVE_DIRECTIONS = frozenset({"right", "super", "like"})

# Epoch numbers above this are milliseconds (seconds would be past year 5000)
MILLISECOND_EPOCH_THRESHOLD = 1e11


def _string_list(value) -> list[str]:
    """Coerce a tag/skill field to a clean list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple, set, frozenset)):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def _count(value) -> int:
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0


def _id_string(value):
    """Store ids may arrive as JSON numbers."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _timestamp(value):
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        if abs(value) > MILLISECOND_EPOCH_THRESHOLD:
            value = value / 1000
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


# ──────────────────────────── Records ─────────────────────────────────────

class ContentItem(BaseModel):
    """A single feed post (short video) — the remote VideoPost record."""
    id: str
    author_id: str = ""
    author_type: Optional[str] = None      # 'candidate' | 'employer'
    type: str = ""                         # content kind
    caption: Optional[str] = None
    tags: list[str] = []
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    views: int = 0
    likes: int = 0
    shares: int = 0
    comments_count: int = 0
    moderation_status: Optional[str] = None  # 'approved' | 'pending' | 'rejected'
    created_date: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, v):
        return _string_list(v)

    @field_validator("views", "likes", "shares", "comments_count", mode="before")
    @classmethod
    def _clean_counts(cls, v):
        return _count(v)

    @field_validator("created_date", mode="before")
    @classmethod
    def _clean_created(cls, v):
        return _timestamp(v)

    @field_validator("id", mode="before")
    @classmethod
    def _clean_id(cls, v):
        return _id_string(v)

    @field_validator("author_id", "type", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        v = _id_string(v)
        return v if isinstance(v, str) else ""


class AuthorProfile(BaseModel):
    """Profile fields of a post author, merged from Candidate/Company records."""
    user_id: str
    kind: Optional[str] = None             # 'candidate' | 'employer'
    display_name: Optional[str] = None
    headline: Optional[str] = None
    company_name: Optional[str] = None
    skills: list[str] = []
    location: Optional[str] = None
    industry: Optional[str] = None
    culture_traits: list[str] = []

    @field_validator("skills", "culture_traits", mode="before")
    @classmethod
    def _clean_lists(cls, v):
        return _string_list(v)


class ViewerProfile(BaseModel):
    user_id: Optional[str] = None
    role: str = ROLE_JOB_SEEKER
    skills: list[str] = []
    location: Optional[str] = None
    culture_preferences: list[str] = []
    preferred_categories: list[str] = []
    experience_level: Optional[str] = None

    @field_validator("skills", "culture_preferences", "preferred_categories", mode="before")
    @classmethod
    def _clean_lists(cls, v):
        return _string_list(v)

    @property
    def is_recruiter(self) -> bool:
        return self.role == ROLE_RECRUITER


class Interaction(BaseModel):
    """A past directional action of the viewer (a swipe or a connection)."""
    target_id: str
    target_type: str = "video"   # 'video' | 'job' | 'candidate' | 'company' | 'user'
    direction: str = "right"
    # Owner of the target when it is not a user itself (e.g. the employer behind a job)
    author_id: Optional[str] = None

    @property
    def is_positive(self) -> bool:
        return self.direction in POSITIVE_DIRECTIONS


# ──────────────────────────── Ranking I/O ─────────────────────────────────

class FeedFilters(BaseModel):
    content_types: list[str] = []
    author_types: list[str] = []
    location: Optional[str] = None
    skills: list[str] = []

    @field_validator("content_types", "author_types", "skills", mode="before")
    @classmethod
    def _clean_lists(cls, v):
        return _string_list(v)


class RankingContext(BaseModel):
    """Everything the engine knows about the viewer for one ranking pass."""
    viewer: Optional[ViewerProfile] = None
    interactions: list[Interaction] = []
    follows: set[str] = set()
    viewed: set[str] = set()
    liked: set[str] = set()
    authors: dict[str, AuthorProfile] = {}


class ScoreBreakdown(BaseModel):
    engagement: float = 0.0
    recency: float = 0.0
    engaged_author: float = 0.0
    preferred_kind: float = 0.0
    tag_affinity: float = 0.0
    skill_relevance: float = 0.0
    industry_relevance: float = 0.0
    role_kind: float = 0.0
    location: float = 0.0
    culture_fit: float = 0.0
    quality: float = 0.0
    diversity_penalty: float = 0.0
    rarity: float = 0.0
    discovery: float = 0.0
    viewed_penalty: float = 0.0

    def without_discovery(self) -> float:
        """Sum of every term except the discovery bonus, unclamped."""
        return sum(v for k, v in self.__dict__.items() if k != "discovery")

    @property
    def total(self) -> float:
        return max(0.0, self.without_discovery() + self.discovery)


class RankedItem(BaseModel):
    item: ContentItem
    score: float
    breakdown: ScoreBreakdown
    author_name: Optional[str] = None


class FeedPage(BaseModel):
    items: list[RankedItem]
    has_more: bool
    total: int
    page: int = 0


# ──────────────────────────── Feed API ────────────────────────────────────

class FeedPost(BaseModel):
    """A ranked post returned in the feed."""
    post_id: str
    author_id: str
    author_type: Optional[str]
    author_name: Optional[str] = None
    type: str
    caption: Optional[str]
    tags: list[str]
    video_url: Optional[str]
    thumbnail_url: Optional[str]
    views: int
    likes: int
    shares: int
    comments_count: int
    created_date: Optional[datetime]
    # Ranking signal exposed for debugging / tuning
    rank_score: float


class FeedResponse(BaseModel):
    session_id: str
    load_id: str
    page: int
    page_size: int
    posts: list[FeedPost]
    has_more: bool
    total: int
    latency_ms: float


class EngagementRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    post_id: str = Field(..., min_length=1)


# ──────────────────────────── Rank API ────────────────────────────────────

class RankRequest(BaseModel):
    items: list[ContentItem]
    context: RankingContext = Field(default_factory=RankingContext)
    query: Optional[str] = None
    filters: Optional[FeedFilters] = None
    page: int = Field(0, ge=0)
    page_size: int = Field(20, ge=1, le=500)
    seed: Optional[int] = None


class PostScore(BaseModel):
    post_id: str
    score: float
    breakdown: ScoreBreakdown


class RankResponse(BaseModel):
    page: int
    has_more: bool
    total: int
    scores: list[PostScore]
