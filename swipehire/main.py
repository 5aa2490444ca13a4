"""
SwipeHire Feed Service — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Start the remote data-store HTTP client
  3. Connect the Redis feed session store
  4. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from swipehire.config import settings
from swipehire.telemetry import setup_tracing, instrument_app
from swipehire.clients.datastore_client import datastore_client
from swipehire.clients.redis_client import session_store
from swipehire.routers import feed, rank

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting SwipeHire Feed Service (env=%s)", settings.environment)

    await datastore_client.start()
    await session_store.start()

    logger.info("All services connected. Feed service ready.")
    yield

    logger.info("Shutting down...")
    await datastore_client.stop()
    await session_store.stop()


app = FastAPI(
    title="SwipeHire Feed Service",
    description=(
        "Personalised short-video feed for the SwipeHire recruiting marketplace: "
        "heuristic multi-factor ranking over the remote data store."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(feed.router, prefix="/feed", tags=["Feed"])
app.include_router(rank.router, tags=["Ranking"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
