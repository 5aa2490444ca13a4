import httpx
import pytest

from scripts.sample_pool import build_pool, rank_remote
from swipehire.main import app


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def test_rank_sample_pool(client):
    body = build_pool(seed=7)

    resp = await client.post("/rank", json=body)

    assert resp.status_code == 200
    result = resp.json()
    assert len(result["scores"]) == 10
    assert result["has_more"] is True
    rejected = {p["id"] for p in body["items"] if p["moderation_status"] == "rejected"}
    assert rejected
    assert result["total"] == len(body["items"]) - len(rejected)
    assert not rejected & {s["post_id"] for s in result["scores"]}
    scores = [s["score"] for s in result["scores"]]
    assert scores == sorted(scores, reverse=True)
    assert set(result["scores"][0]["breakdown"]) >= {"engagement", "recency", "discovery", "diversity_penalty"}


async def test_rank_is_reproducible_with_a_seed(client):
    body = build_pool(seed=3)
    first = (await client.post("/rank", json=body)).json()
    second = (await client.post("/rank", json=body)).json()
    assert first["scores"] == second["scores"]


async def test_rank_follows_boost_followed_authors(client):
    body = build_pool(seed=1)
    result = (await client.post("/rank", json={**body, "page_size": 50})).json()

    followed = set(body["context"]["follows"])
    authors = {p["id"]: p["author_id"] for p in body["items"]}
    for s in result["scores"]:
        expected = 50 if authors[s["post_id"]] in followed else 0
        assert s["breakdown"]["engaged_author"] == expected


async def test_rank_empty_pool(client):
    resp = await client.post("/rank", json={"items": []})
    assert resp.json() == {"page": 0, "has_more": False, "total": 0, "scores": []}


async def test_rank_validates_page_size(client):
    resp = await client.post("/rank", json={"items": [], "page_size": 0})
    assert resp.status_code == 422


def test_rank_remote_waits_for_health_then_ranks(monkeypatch):
    monkeypatch.setattr("scripts.sample_pool.time.sleep", lambda s: None)
    health = iter([httpx.Response(503), httpx.Response(200, json={"status": "ok"})])
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path == "/health":
            return next(health)
        return httpx.Response(200, json={"page": 0, "has_more": False, "total": 0, "scores": []})

    result = rank_remote("http://svc", build_pool(seed=1), transport=httpx.MockTransport(handler))

    assert seen == ["/health", "/health", "/rank"]
    assert result["total"] == 0


def test_rank_remote_gives_up_when_never_healthy(monkeypatch):
    monkeypatch.setattr("scripts.sample_pool.time.sleep", lambda s: None)
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    with pytest.raises(RuntimeError):
        rank_remote("http://svc", {}, retries=2, transport=transport)
