import os

# Must be set before swipehire.config is imported
os.environ.setdefault("OTEL_ENABLED", "false")

import random
from datetime import datetime, timedelta, timezone

import pytest

from swipehire.schemas import ContentItem

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class ConstantRandom(random.Random):
    """Random source whose draws are always the same value."""

    def __init__(self, value: float = 0.5) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def make_item(post_id: str, **overrides) -> ContentItem:
    fields = {
        "id": post_id,
        "author_id": "author-x",
        "author_type": "candidate",
        "type": "intro",
        "caption": "hello",
        "tags": [],
        "video_url": f"https://cdn.example.com/{post_id}.mp4",
        "moderation_status": "approved",
        "created_date": NOW - timedelta(hours=1),
    }
    fields.update(overrides)
    return ContentItem(**fields)


@pytest.fixture
def const_rng():
    return ConstantRandom()
