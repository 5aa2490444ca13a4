#!/usr/bin/env python3
"""
Sample-pool script — builds a synthetic candidate pool and ranks it through
POST /rank so weight changes can be eyeballed without a data store.

Creates:
  • 10 authors (5 candidates, 5 employers) with locations and skills
  • 5 video posts per author across all content kinds
  • A viewer profile that follows two of the authors

Run against a running service:
  python scripts/sample_pool.py --api-url http://localhost:8000 --seed 7

Prints the first page with each post's score breakdown.
"""
import argparse
import random
import time
from datetime import datetime, timedelta, timezone

import httpx


AUTHORS = [
    ("u-alice", "candidate", "Alice Chen", "Austin, TX", ["Python", "Django"]),
    ("u-bob", "candidate", "Bob Martinez", "Denver, CO", ["React", "TypeScript"]),
    ("u-carol", "candidate", "Carol Singh", "Remote", ["Data Analysis", "SQL"]),
    ("u-dave", "candidate", "Dave Kim", "Seattle, WA", ["Design", "Figma"]),
    ("u-eve", "candidate", "Eve Johnson", "Austin, TX", ["Sales", "Communication"]),
    ("u-acme", "employer", "Acme Robotics", "Austin, TX", []),
    ("u-globex", "employer", "Globex", "New York, NY", []),
    ("u-initech", "employer", "Initech", "Dallas, TX", []),
    ("u-umbrella", "employer", "Umbrella Health", "Remote", []),
    ("u-hooli", "employer", "Hooli", "San Francisco, CA", []),
]

INDUSTRIES = ["Technology", "Finance", "Healthcare", "Retail", "Manufacturing"]
CULTURE = ["remote-first", "fast-paced", "collaborative", "mentorship", "work-life balance"]
KINDS = ["intro", "job_post", "company_culture", "tips", "day_in_life"]
TAGS = ["python", "react", "sql", "design", "sales", "leadership", "aws", "career", "remote", "startup"]

CAPTIONS = [
    "A quick hello and what I am looking for next.",
    "We are hiring! Come build the future of warehouse robotics with a small, senior team.",
    "Behind the scenes at our Friday demo day.",
    "Three things I wish I knew before my first technical interview.",
    "A day in my life as a data analyst — coffee, dashboards and a lot of SQL.",
]


def build_pool(seed: int = 0, posts_per_author: int = 5) -> dict:
    """Return a /rank request body with a reproducible synthetic pool."""
    rng = random.Random(seed)
    now = datetime.now(timezone.utc)

    authors = {}
    for i, (uid, kind, name, location, skills) in enumerate(AUTHORS):
        profile = {
            "user_id": uid,
            "kind": kind,
            "display_name": name,
            "location": location,
            "skills": skills,
        }
        if kind == "employer":
            profile["company_name"] = name
            profile["industry"] = INDUSTRIES[i % len(INDUSTRIES)]
            profile["culture_traits"] = rng.sample(CULTURE, k=2)
        authors[uid] = profile

    items = []
    n = 0
    for uid, kind, *_ in AUTHORS:
        for _ in range(posts_per_author):
            views = rng.randint(0, 400)
            items.append({
                "id": f"post-{n:03d}",
                "author_id": uid,
                "author_type": kind,
                "type": KINDS[n % len(KINDS)],
                "caption": CAPTIONS[n % len(CAPTIONS)],
                "tags": rng.sample(TAGS, k=rng.randint(0, 4)),
                "video_url": f"https://cdn.example.com/videos/{n}.mp4",
                "thumbnail_url": f"https://cdn.example.com/thumbs/{n}.jpg" if n % 2 else None,
                "views": views,
                "likes": rng.randint(0, max(1, views // 5)),
                "shares": rng.randint(0, 10),
                "comments_count": rng.randint(0, 20),
                "moderation_status": "rejected" if n % 17 == 16 else "approved",
                "created_date": (now - timedelta(hours=rng.uniform(0, 240))).isoformat(),
            })
            n += 1

    context = {
        "viewer": {
            "user_id": "u-viewer",
            "role": "job_seeker",
            "skills": ["Python", "SQL", "AWS"],
            "location": "Austin, TX",
            "culture_preferences": ["remote-first", "mentorship"],
            "preferred_categories": ["Technology"],
        },
        "follows": ["u-acme", "u-carol"],
        "authors": authors,
    }
    return {"items": items, "context": context, "page": 0, "page_size": 10, "seed": seed}


def rank_remote(api_url: str, body: dict, retries: int = 15, transport=None) -> dict:
    """Wait for the service to report healthy, then POST the pool to /rank."""
    with httpx.Client(base_url=api_url, timeout=10, transport=transport) as http:
        print(f"Waiting for API at {api_url} ...")
        for _ in range(retries):
            try:
                if http.get("/health").json().get("status") == "ok":
                    break
            except (httpx.HTTPError, ValueError):
                pass
            time.sleep(3)
        else:
            raise RuntimeError(f"API not reachable at {api_url} after {retries} retries")

        resp = http.post("/rank", json=body)
        resp.raise_for_status()
        return resp.json()


def main(api_url: str, seed: int) -> None:
    body = build_pool(seed)
    print(f"Ranking {len(body['items'])} posts (seed={seed})...\n")
    result = rank_remote(api_url, body)

    posts = {p["id"]: p for p in body["items"]}
    print(f"{'post':<10} {'author':<12} {'kind':<16} {'score':>7}  top terms")
    print("-" * 72)
    for s in result["scores"]:
        post = posts[s["post_id"]]
        terms = sorted(
            ((k, v) for k, v in s["breakdown"].items() if v),
            key=lambda kv: abs(kv[1]),
            reverse=True,
        )[:3]
        summary = ", ".join(f"{k}={v:.0f}" for k, v in terms)
        print(f"{s['post_id']:<10} {post['author_id']:<12} {post['type']:<16} {s['score']:>7.1f}  {summary}")
    print("-" * 72)
    print(f"{result['total']} ranked, has_more={result['has_more']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rank a synthetic SwipeHire feed pool")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--seed", type=int, default=0, help="Seed for the pool and the discovery draw")
    args = parser.parse_args()
    main(args.api_url, args.seed)
