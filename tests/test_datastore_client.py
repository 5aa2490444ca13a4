import json

import httpx
import pytest

from swipehire.clients.datastore_client import DatastoreClient, DatastoreError


def _store(records: dict, calls: list):
    """MockTransport handler serving entity lists filtered by equality on the q params."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        path = request.url.path.split("/entities/", 1)[1]
        if "/" in path:
            entity, record_id = path.split("/", 1)
            if request.method == "PUT":
                return httpx.Response(200, json={"id": record_id, **json.loads(request.content)})
            match = [r for r in records.get(entity, []) if r.get("id") == record_id]
            return httpx.Response(200 if match else 404, json=match[0] if match else {})

        rows = records.get(path, [])
        query = json.loads(request.url.params.get("q", "{}"))
        for field, wanted in query.items():
            if isinstance(wanted, dict) and "$in" in wanted:
                rows = [r for r in rows if r.get(field) in wanted["$in"]]
            else:
                rows = [r for r in rows if r.get(field) == wanted]
        return httpx.Response(200, json=rows)

    return handler


@pytest.fixture
def calls():
    return []


async def _client(records, calls) -> DatastoreClient:
    client = DatastoreClient()
    await client.start(transport=httpx.MockTransport(_store(records, calls)))
    return client


async def test_list_content_items_skips_malformed_records(calls):
    records = {
        "VideoPost": [
            {"id": "v1", "author_id": "u1", "type": "tips", "video_url": "x.mp4", "tags": None, "likes": "7"},
            {"author_id": "u2", "video_url": "no-id.mp4"},
            {"id": "v3", "created_date": "2026-03-01T10:00:00Z"},
        ]
    }
    client = await _client(records, calls)

    items = await client.list_content_items(limit=50)

    assert [i.id for i in items] == ["v1", "v3"]
    assert items[0].likes == 7
    assert items[0].tags == []
    assert items[1].created_date.year == 2026
    assert calls[0].url.params["sort"] == "-created_date"
    assert calls[0].url.params["limit"] == "50"
    await client.stop()


async def test_list_follows(calls):
    records = {
        "Follow": [
            {"follower_id": "me", "followed_id": "u1"},
            {"follower_id": "me", "followed_id": "u2"},
            {"follower_id": "other", "followed_id": "u3"},
            {"follower_id": "me"},
        ]
    }
    client = await _client(records, calls)
    assert await client.list_follows("me") == {"u1", "u2"}
    await client.stop()


async def test_list_interactions_resolves_job_owners_and_connections(calls):
    records = {
        "Swipe": [
            {"swiper_id": "me", "job_id": "j1", "direction": "right"},
            {"swiper_id": "me", "target_id": "c9", "direction": "left"},
            {"swiper_id": "me", "target_id": "v5", "target_type": "video", "direction": "like"},
            {"swiper_id": "me"},
        ],
        "Job": [{"id": "j1", "company_id": "co1"}],
        "Company": [{"id": "co1", "user_id": "boss"}],
        "Connection": [
            {"requester_id": "me", "recipient_id": "friend", "status": "accepted"},
            {"requester_id": "fan", "recipient_id": "me", "status": "accepted"},
            {"requester_id": "me", "recipient_id": "pending", "status": "pending"},
        ],
    }
    client = await _client(records, calls)

    interactions = await client.list_interactions("me")

    by_target = {ix.target_id: ix for ix in interactions}
    assert set(by_target) == {"j1", "c9", "v5", "friend", "fan"}
    assert by_target["j1"].target_type == "job"
    assert by_target["j1"].author_id == "boss"
    assert by_target["j1"].is_positive
    assert by_target["c9"].target_type == "candidate"
    assert not by_target["c9"].is_positive
    assert by_target["v5"].is_positive
    assert by_target["friend"].target_type == "user"
    assert by_target["fan"].is_positive
    await client.stop()


async def test_author_profiles_merge_candidate_and_company(calls):
    records = {
        "Candidate": [
            {"user_id": "u1", "full_name": "Ana Ruiz", "headline": "Data nerd", "skills": ["SQL"], "location": "Austin, TX"},
            {"user_id": "u2", "full_name": "Founder", "headline": "Building things", "skills": ["Go"]},
        ],
        "Company": [
            {"user_id": "u2", "name": "Initech", "industry": "Technology", "culture_traits": ["mentorship"]},
        ],
    }
    client = await _client(records, calls)

    profiles = await client.list_author_profiles({"u1", "u2", "u3"})

    assert set(profiles) == {"u1", "u2"}
    assert profiles["u1"].kind == "candidate"
    assert profiles["u1"].display_name == "Ana Ruiz"
    assert profiles["u2"].kind == "employer"
    assert profiles["u2"].company_name == "Initech"
    assert profiles["u2"].headline == "Building things"
    assert profiles["u2"].skills == ["Go"]
    assert profiles["u2"].culture_traits == ["mentorship"]
    assert await client.list_author_profiles(set()) == {}
    await client.stop()


async def test_viewer_profile_roles(calls):
    records = {
        "Candidate": [
            {"user_id": "seeker", "skills": ["Python"], "location": "Austin, TX",
             "culture_preferences": ["remote-first"], "preferred_job_types": ["Technology"],
             "experience_level": "senior"},
        ],
        "Company": [{"user_id": "hr", "name": "Hooli", "industry": "Technology", "location": "SF, CA"}],
    }
    client = await _client(records, calls)

    seeker = await client.get_viewer_profile("seeker")
    recruiter = await client.get_viewer_profile("hr")

    assert seeker.role == "job_seeker"
    assert seeker.skills == ["Python"]
    assert seeker.preferred_categories == ["Technology"]
    assert recruiter.is_recruiter
    assert recruiter.preferred_categories == ["Technology"]
    assert await client.get_viewer_profile("nobody") is None
    await client.stop()


async def test_increment_engagement(calls):
    records = {"VideoPost": [{"id": "v1", "views": 41}]}
    client = await _client(records, calls)

    assert await client.increment_engagement("v1", "views") == 42

    put = calls[-1]
    assert put.method == "PUT"
    assert put.url.path.endswith("/entities/VideoPost/v1")
    assert json.loads(put.content) == {"views": 42}
    with pytest.raises(ValueError):
        await client.increment_engagement("v1", "moderation_status")
    await client.stop()


async def test_http_errors_become_datastore_errors(calls):
    client = DatastoreClient()
    await client.start(transport=httpx.MockTransport(lambda request: httpx.Response(503)))

    with pytest.raises(DatastoreError):
        await client.list_content_items()
    with pytest.raises(DatastoreError):
        await client.increment_engagement("v1", "likes")
    await client.stop()


async def test_client_must_be_started():
    with pytest.raises(RuntimeError):
        await DatastoreClient().list_follows("me")


async def test_overflowing_counters_do_not_fail_the_listing(calls):
    body = b'[{"id": "p1", "video_url": "x.mp4", "views": 1e400, "created_date": 1760000000000},' \
           b' {"id": 2, "author_id": 9, "video_url": "y.mp4"}]'
    client = DatastoreClient()
    await client.start(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body)))

    items = await client.list_content_items()

    assert [i.id for i in items] == ["p1", "2"]
    assert items[0].views == 0
    assert items[0].created_date.year == 2025
    assert items[1].author_id == "9"
    await client.stop()
