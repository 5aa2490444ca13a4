"""
Remote data store client.

All SwipeHire records (video posts, profiles, follows, swipes, connections)
live in a backend-as-a-service platform exposing a small REST surface:

  GET  /entities/{Entity}?q=<json filter>&sort=<field>&limit=<n>
  GET  /entities/{Entity}/{id}
  PUT  /entities/{Entity}/{id}          body: partial record

Every transport or HTTP failure is counted and re-raised as DatastoreError so
the feed router can answer with an error state instead of ranking partial data.
"""
import json
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from swipehire.config import settings
from swipehire.schemas import (
    AUTHOR_CANDIDATE,
    AUTHOR_EMPLOYER,
    ROLE_JOB_SEEKER,
    ROLE_RECRUITER,
    AuthorProfile,
    ContentItem,
    Interaction,
    ViewerProfile,
)
from swipehire.telemetry import DATASTORE_ERRORS_TOTAL

logger = logging.getLogger(__name__)

ENGAGEMENT_FIELDS = frozenset({"views", "likes", "shares", "comments_count"})


class DatastoreError(Exception):
    """The remote data store could not be reached or rejected the request."""


class DatastoreClient:
    def __init__(self) -> None:
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        headers = {}
        if settings.datastore_api_key:
            headers["Authorization"] = f"Bearer {settings.datastore_api_key}"
        self._http = httpx.AsyncClient(
            base_url=settings.datastore_url,
            headers=headers,
            timeout=settings.datastore_timeout,
            transport=transport,
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()

    # ── Transport ──────────────────────────────────────────────────────────

    async def _request(self, operation: str, method: str, path: str, **kwargs):
        if self._http is None:
            raise RuntimeError("Datastore client not started — call start() at startup")
        try:
            resp = await self._http.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            DATASTORE_ERRORS_TOTAL.labels(operation=operation).inc()
            logger.warning("Datastore %s failed (%s %s): %s", operation, method, path, exc)
            raise DatastoreError(f"{operation} failed: {exc}") from exc

    async def _list(
        self,
        entity: str,
        query: Optional[dict] = None,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        params = {}
        if query:
            params["q"] = json.dumps(query)
        if sort:
            params["sort"] = sort
        if limit:
            params["limit"] = limit
        data = await self._request(f"list_{entity}", "GET", f"/entities/{entity}", params=params)
        if not isinstance(data, list):
            return []
        return [rec for rec in data if isinstance(rec, dict)]

    # ── Content ────────────────────────────────────────────────────────────

    async def list_content_items(self, limit: int = 100) -> list[ContentItem]:
        """Return up to `limit` most recent video posts."""
        records = await self._list("VideoPost", sort="-created_date", limit=limit)
        items: list[ContentItem] = []
        for rec in records:
            try:
                items.append(ContentItem.model_validate(rec))
            except ValidationError as exc:
                logger.warning("Skipping malformed VideoPost %s: %s", rec.get("id"), exc)
        return items

    async def increment_engagement(self, post_id: str, field: str) -> int:
        """Bump one engagement counter of a post and return the new value."""
        if field not in ENGAGEMENT_FIELDS:
            raise ValueError(f"Unknown engagement field: {field}")
        record = await self._request("get_VideoPost", "GET", f"/entities/VideoPost/{post_id}")
        if not isinstance(record, dict):
            record = {}
        current = ContentItem.model_validate({**record, "id": post_id})
        new_count = getattr(current, field) + 1
        await self._request(
            "update_VideoPost", "PUT", f"/entities/VideoPost/{post_id}", json={field: new_count}
        )
        return new_count

    # ── Social graph & history ─────────────────────────────────────────────

    async def list_follows(self, viewer_id: str) -> set[str]:
        records = await self._list("Follow", {"follower_id": viewer_id})
        return {r["followed_id"] for r in records if r.get("followed_id")}

    async def list_interactions(self, viewer_id: str) -> list[Interaction]:
        """
        The viewer's swipes plus accepted connections.

        Job swipes are resolved to the employer user behind the job so they
        count towards that author's engagement.
        """
        swipes = await self._list("Swipe", {"swiper_id": viewer_id})
        interactions: list[Interaction] = []
        job_ids: set[str] = set()
        for rec in swipes:
            target_id = rec.get("target_id") or rec.get("job_id")
            if not target_id:
                continue
            target_type = rec.get("target_type") or ("job" if rec.get("job_id") else "candidate")
            if target_type == "job":
                job_ids.add(target_id)
            interactions.append(
                Interaction(
                    target_id=target_id,
                    target_type=target_type,
                    direction=rec.get("direction") or "left",
                )
            )

        if job_ids:
            owners = await self._job_owners(job_ids)
            for ix in interactions:
                if ix.target_type == "job":
                    ix.author_id = owners.get(ix.target_id)

        for side, other in (("requester_id", "recipient_id"), ("recipient_id", "requester_id")):
            connections = await self._list("Connection", {side: viewer_id, "status": "accepted"})
            for rec in connections:
                if rec.get(other):
                    interactions.append(
                        Interaction(target_id=rec[other], target_type="user", direction="right")
                    )
        return interactions

    async def _job_owners(self, job_ids: set[str]) -> dict[str, str]:
        jobs = await self._list("Job", {"id": {"$in": sorted(job_ids)}})
        company_ids = {j["company_id"] for j in jobs if j.get("company_id")}
        if not company_ids:
            return {}
        companies = await self._list("Company", {"id": {"$in": sorted(company_ids)}})
        company_users = {c["id"]: c.get("user_id") for c in companies if c.get("id")}
        return {
            j["id"]: company_users[j["company_id"]]
            for j in jobs
            if j.get("id") and company_users.get(j.get("company_id"))
        }

    # ── Profiles ───────────────────────────────────────────────────────────

    async def list_author_profiles(self, author_ids: set[str]) -> dict[str, AuthorProfile]:
        if not author_ids:
            return {}
        query = {"user_id": {"$in": sorted(author_ids)}}
        candidates = await self._list("Candidate", query)
        companies = await self._list("Company", query)

        profiles: dict[str, AuthorProfile] = {}
        for rec in candidates:
            uid = rec.get("user_id")
            if uid:
                profiles[uid] = _candidate_profile(rec)
        for rec in companies:
            uid = rec.get("user_id")
            if not uid:
                continue
            company = _company_profile(rec)
            existing = profiles.get(uid)
            if existing is not None:
                # Company fields win, candidate fields fill the gaps
                company = company.model_copy(update={
                    "headline": company.headline or existing.headline,
                    "skills": company.skills or existing.skills,
                })
            profiles[uid] = company
        return profiles

    async def get_viewer_profile(self, viewer_id: str) -> Optional[ViewerProfile]:
        query = {"user_id": viewer_id}
        candidates = await self._list("Candidate", query, limit=1)
        companies = await self._list("Company", query, limit=1)
        if companies:
            company = companies[0]
            industry = company.get("industry")
            return ViewerProfile(
                user_id=viewer_id,
                role=ROLE_RECRUITER,
                location=company.get("location"),
                culture_preferences=company.get("culture_traits"),
                preferred_categories=[industry] if isinstance(industry, str) else [],
            )
        if candidates:
            cand = candidates[0]
            return ViewerProfile(
                user_id=viewer_id,
                role=ROLE_JOB_SEEKER,
                skills=cand.get("skills"),
                location=cand.get("location"),
                culture_preferences=cand.get("culture_preferences"),
                preferred_categories=cand.get("preferred_job_types") or cand.get("interests"),
                experience_level=cand.get("experience_level"),
            )
        return None


def _candidate_profile(rec: dict) -> AuthorProfile:
    return AuthorProfile(
        user_id=rec["user_id"],
        kind=AUTHOR_CANDIDATE,
        display_name=rec.get("full_name") or rec.get("name"),
        headline=rec.get("headline"),
        skills=rec.get("skills"),
        location=rec.get("location"),
    )


def _company_profile(rec: dict) -> AuthorProfile:
    return AuthorProfile(
        user_id=rec["user_id"],
        kind=AUTHOR_EMPLOYER,
        display_name=rec.get("name"),
        headline=rec.get("description"),
        company_name=rec.get("name"),
        location=rec.get("location"),
        industry=rec.get("industry"),
        culture_traits=rec.get("culture_traits"),
    )


# Singleton — started/stopped in app lifespan (main.py)
datastore_client = DatastoreClient()
