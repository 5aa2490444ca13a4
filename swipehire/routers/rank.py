"""
POST /rank — stateless ranking of a caller-supplied pool.

Same engine as the feed, but the caller sends the posts and the viewer
context in the body and gets per-term score breakdowns back. Useful for
tuning weights against recorded pools (see scripts/sample_pool.py).
"""
import logging
import time

from fastapi import APIRouter
from opentelemetry import trace

from swipehire.ranking.engine import rank_feed
from swipehire.schemas import PostScore, RankRequest, RankResponse
from swipehire.telemetry import RANKING_LATENCY

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("/rank", response_model=RankResponse)
def rank(request: RankRequest):
    with tracer.start_as_current_span("rank_candidates") as span:
        t0 = time.perf_counter()

        page = rank_feed(
            request.items,
            request.context,
            query=request.query,
            filters=request.filters,
            page_size=request.page_size,
            page_index=request.page,
            seed=request.seed,
        )

        latency = time.perf_counter() - t0
        RANKING_LATENCY.observe(latency)

        span.set_attribute("batch.size", len(request.items))
        span.set_attribute("ranking.latency_ms", round(latency * 1000, 2))

        return RankResponse(
            page=page.page,
            has_more=page.has_more,
            total=page.total,
            scores=[
                PostScore(post_id=r.item.id, score=r.score, breakdown=r.breakdown)
                for r in page.items
            ],
        )
