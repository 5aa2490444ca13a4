"""
Feed endpoints — GET /feed/?viewer_id=<id>&session_id=<sid>&page=<n>

Page 0 runs the full pipeline and stores the ordering in the feed session:

  Stage 1 │ Snapshot
  ────────┼──────────────────────────────────────────────────────────────
          │  Remote store: latest posts, follows, swipes + connections,
          │  viewer profile, author profiles (Candidate / Company).
          │  Session store: posts viewed / liked this session.

  Stage 2 │ Ranking
  ────────┼──────────────────────────────────────────────────────────────
          │  ranking.engine.rank_pool — filter, score, sort.

  Stage 3 │ Store & paginate
  ────────┼──────────────────────────────────────────────────────────────
          │  Save the ordering under the load token; a load that was
          │  superseded while fetching is discarded (409).
          │  Return the first page.

Pages > 0 are slices of the stored ordering — no refetch, no reshuffle.

POST /feed/views and /feed/likes record engagement in the session and bump
the post's counters in the remote store.
"""
import asyncio
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from opentelemetry import trace

from swipehire.clients.datastore_client import (
    DatastoreClient,
    DatastoreError,
    datastore_client,
)
from swipehire.clients.redis_client import SessionStore, session_store
from swipehire.config import settings
from swipehire.ranking.engine import paginate, rank_pool
from swipehire.schemas import (
    EngagementRequest,
    FeedFilters,
    FeedPost,
    FeedResponse,
    RankedItem,
    RankingContext,
)
from swipehire.telemetry import (
    FEED_CANDIDATES_TOTAL,
    FEED_LATENCY,
    FEED_STALE_LOADS_TOTAL,
    RANKING_LATENCY,
)

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


def get_datastore() -> DatastoreClient:
    return datastore_client


def get_session_store() -> SessionStore:
    return session_store


def _to_feed_post(ranked: RankedItem) -> FeedPost:
    item = ranked.item
    return FeedPost(
        post_id=item.id,
        author_id=item.author_id,
        author_type=item.author_type,
        author_name=ranked.author_name,
        type=item.type,
        caption=item.caption,
        tags=item.tags,
        video_url=item.video_url,
        thumbnail_url=item.thumbnail_url,
        views=item.views,
        likes=item.likes,
        shares=item.shares,
        comments_count=item.comments_count,
        created_date=item.created_date,
        rank_score=ranked.score,
    )


async def _viewer_snapshot(datastore: DatastoreClient, viewer_id: Optional[str]):
    """Follows, interactions and profile of the viewer; empty for anonymous viewers."""
    if not viewer_id:
        return set(), [], None
    follows, interactions, profile = await asyncio.gather(
        datastore.list_follows(viewer_id),
        datastore.list_interactions(viewer_id),
        datastore.get_viewer_profile(viewer_id),
    )
    return follows, interactions, profile


@router.get("/", response_model=FeedResponse)
async def get_feed(
    viewer_id: Optional[str] = Query(None, description="ID of the requesting user; omit for anonymous"),
    session_id: Optional[str] = Query(None, description="Feed session; a new one is created when omitted"),
    page: int = Query(0, ge=0),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    q: Optional[str] = Query(None, description="Free-text search"),
    content_types: list[str] = Query([]),
    author_types: list[str] = Query([]),
    location: Optional[str] = None,
    skills: list[str] = Query([]),
    seed: Optional[int] = Query(None, description="Seed for the discovery draw"),
    datastore: DatastoreClient = Depends(get_datastore),
    sessions: SessionStore = Depends(get_session_store),
):
    start_time = time.time()
    page_size = page_size or settings.feed_page_size

    with tracer.start_as_current_span("get_feed") as span:
        span.set_attribute("feed.page", page)

        # ── Later pages: slice the stored ordering ────────────────────────
        if page > 0:
            if not session_id:
                raise HTTPException(status_code=400, detail="session_id is required for page > 0")
            with tracer.start_as_current_span("paginate"):
                stored = await sessions.read_page(session_id, page_size, page)
            if stored is None:
                raise HTTPException(
                    status_code=404,
                    detail="Feed session expired — reload from page 0",
                )
            page_items, has_more, total, load_id = stored
            return _response(session_id, load_id, page, page_size, page_items, has_more, total, start_time)

        # ── Page 0: fresh load ────────────────────────────────────────────
        session_id = session_id or sessions.new_session_id()
        load_id = await sessions.begin_load(session_id)
        span.set_attribute("feed.session_id", session_id)
        if viewer_id:
            span.set_attribute("user.id", viewer_id)

        with tracer.start_as_current_span("fetch_snapshot"):
            try:
                items, (follows, interactions, viewer) = await asyncio.gather(
                    datastore.list_content_items(limit=settings.candidate_pool_limit),
                    _viewer_snapshot(datastore, viewer_id),
                )
                authors = await datastore.list_author_profiles(
                    {i.author_id for i in items if i.author_id}
                )
            except DatastoreError as exc:
                logger.warning("Feed snapshot failed (session=%s): %s", session_id, exc)
                raise HTTPException(status_code=502, detail="Feed data unavailable") from exc
            viewed, liked = await asyncio.gather(
                sessions.get_viewed(session_id),
                sessions.get_liked(session_id),
            )

        context = RankingContext(
            viewer=viewer,
            interactions=interactions,
            follows=follows,
            viewed=viewed,
            liked=liked,
            authors=authors,
        )
        filters = FeedFilters(
            content_types=content_types,
            author_types=author_types,
            location=location,
            skills=skills,
        )

        with tracer.start_as_current_span("rank_pool") as rank_span:
            t0 = time.perf_counter()
            ranked = rank_pool(items, context, query=q, filters=filters, seed=seed)
            RANKING_LATENCY.observe(time.perf_counter() - t0)
            rank_span.set_attribute("candidates.fetched", len(items))
            rank_span.set_attribute("candidates.ranked", len(ranked))

        FEED_CANDIDATES_TOTAL.labels(stage="fetched").inc(len(items))
        FEED_CANDIDATES_TOTAL.labels(stage="ranked").inc(len(ranked))

        with tracer.start_as_current_span("store_ranking"):
            stored = await sessions.store_ranking(session_id, load_id, ranked)
        if not stored:
            FEED_STALE_LOADS_TOTAL.inc()
            logger.info("Discarding stale feed load %s (session=%s)", load_id, session_id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Feed load superseded by a newer load",
            )

        page_items, has_more = paginate(ranked, page_size, 0)
        return _response(session_id, load_id, 0, page_size, page_items, has_more, len(ranked), start_time)


def _response(session_id, load_id, page, page_size, page_items, has_more, total, start_time) -> FeedResponse:
    latency_ms = (time.time() - start_time) * 1000
    FEED_LATENCY.observe(latency_ms / 1000)
    return FeedResponse(
        session_id=session_id,
        load_id=load_id,
        page=page,
        page_size=page_size,
        posts=[_to_feed_post(r) for r in page_items],
        has_more=has_more,
        total=total,
        latency_ms=round(latency_ms, 2),
    )


async def _record_engagement(
    datastore: DatastoreClient,
    post_id: str,
    field: str,
) -> None:
    try:
        await datastore.increment_engagement(post_id, field)
    except DatastoreError as exc:
        # Session state is already updated; the counter catches up on the next action
        logger.warning("Could not increment %s for post %s: %s", field, post_id, exc)


@router.post("/views", status_code=status.HTTP_204_NO_CONTENT)
async def record_view(
    body: EngagementRequest,
    datastore: DatastoreClient = Depends(get_datastore),
    sessions: SessionStore = Depends(get_session_store),
):
    """Mark a post as viewed for this session so the next load ranks it down."""
    with tracer.start_as_current_span("record_view"):
        await sessions.mark_viewed(body.session_id, body.post_id)
        await _record_engagement(datastore, body.post_id, "views")


@router.post("/likes", status_code=status.HTTP_204_NO_CONTENT)
async def record_like(
    body: EngagementRequest,
    datastore: DatastoreClient = Depends(get_datastore),
    sessions: SessionStore = Depends(get_session_store),
):
    """Mark a post as liked; its author, kind and tags feed the next ranking."""
    with tracer.start_as_current_span("record_like"):
        await sessions.mark_liked(body.session_id, body.post_id)
        await _record_engagement(datastore, body.post_id, "likes")
