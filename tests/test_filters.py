from conftest import make_item

from swipehire.ranking.filters import filter_pool, is_eligible, matches_filters, matches_query
from swipehire.schemas import AuthorProfile, ContentItem, FeedFilters


def test_rejected_and_mediafree_posts_are_not_eligible():
    assert is_eligible(make_item("p1"))
    assert is_eligible(make_item("p2", moderation_status="pending"))
    assert is_eligible(make_item("p3", moderation_status=None))
    assert not is_eligible(make_item("p4", moderation_status="rejected"))
    assert not is_eligible(make_item("p5", video_url=""))
    assert not is_eligible(make_item("p6", video_url="   "))
    assert not is_eligible(make_item("p7", video_url=None))


def test_query_matches_caption_author_tags_and_skills():
    author = AuthorProfile(
        user_id="a1",
        display_name="Dana Lee",
        headline="Frontend engineer",
        company_name="Globex",
        skills=["TypeScript"],
    )
    item = make_item("p1", caption="My first week", tags=["career"])

    assert matches_query(item, author, "first WEEK")
    assert matches_query(item, author, "dana")
    assert matches_query(item, author, "frontend")
    assert matches_query(item, author, "globex")
    assert matches_query(item, author, "typescript")
    assert matches_query(item, author, "CAREER")
    assert not matches_query(item, author, "react")
    assert matches_query(item, None, "first")
    assert matches_query(item, author, "   ")


def test_query_react_returns_only_matching_posts():
    authors = {
        "a1": AuthorProfile(user_id="a1", skills=["React", "CSS"]),
        "a2": AuthorProfile(user_id="a2", headline="Backend in Go"),
    }
    items = [
        make_item("by-skill", author_id="a1"),
        make_item("by-caption", author_id="a2", caption="Why I moved from Vue to react"),
        make_item("by-tag", author_id="a2", tags=["ReactNative"]),
        make_item("no-match", author_id="a2", caption="Scaling Postgres"),
    ]

    kept = filter_pool(items, authors, query="React")

    assert [i.id for i in kept] == ["by-skill", "by-caption", "by-tag"]


def test_content_and_author_kind_filters():
    author = AuthorProfile(user_id="a1", kind="employer")
    job = make_item("p1", type="job_post", author_type=None, author_id="a1")
    intro = make_item("p2", type="intro", author_type="candidate")

    only_jobs = FeedFilters(content_types=["job_post"])
    assert matches_filters(job, author, only_jobs)
    assert not matches_filters(intro, None, only_jobs)

    employers = FeedFilters(author_types=["employer"])
    # Falls back to the author profile when the post has no author_type
    assert matches_filters(job, author, employers)
    assert not matches_filters(intro, None, employers)


def test_location_filter_lets_remote_authors_through():
    austin = AuthorProfile(user_id="a1", location="Austin, TX")
    remote = AuthorProfile(user_id="a2", location="Remote (US)")
    nowhere = AuthorProfile(user_id="a3")
    filters = FeedFilters(location="austin")
    item = make_item("p1")

    assert matches_filters(item, austin, filters)
    assert matches_filters(item, remote, filters)
    assert not matches_filters(item, nowhere, filters)
    assert not matches_filters(item, AuthorProfile(user_id="a4", location="Denver, CO"), filters)


def test_skill_filter_matches_in_both_directions():
    filters = FeedFilters(skills=["React"])
    author = AuthorProfile(user_id="a1", skills=["Python"])

    assert matches_filters(make_item("p1", tags=["react-native"]), author, filters)
    assert matches_filters(make_item("p2", tags=["re"]), author, FeedFilters(skills=["React"]))
    assert not matches_filters(make_item("p3", tags=["design"]), author, filters)
    assert matches_filters(make_item("p4"), author, FeedFilters(skills=["python"]))


def test_empty_filters_keep_everything():
    item = make_item("p1")
    assert matches_filters(item, None, None)
    assert matches_filters(item, None, FeedFilters())
    assert matches_filters(item, None, FeedFilters(location="  "))


def test_malformed_records_are_coerced_not_rejected():
    item = ContentItem(
        id="p1",
        author_id=None,
        type=None,
        tags=None,
        views="abc",
        likes=None,
        shares=-3,
        comments_count="4",
        created_date="not a date",
    )
    assert item.tags == []
    assert item.author_id == ""
    assert item.type == ""
    assert (item.views, item.likes, item.shares, item.comments_count) == (0, 0, 0, 4)
    assert item.created_date is None

    assert ContentItem(id="p2", tags="python, sql ,").tags == ["python", "sql"]
    assert ContentItem(id="p3", tags=[1, "aws", None, ""]).tags == ["aws"]
    assert ContentItem(id="p4", tags={"bad": "shape"}).tags == []
    assert FeedFilters(skills=None).skills == []


def test_out_of_range_numbers_are_coerced_not_raised():
    item = ContentItem(
        id="p1",
        views=float("inf"),
        likes=float("nan"),
        shares=1e400,
        created_date=1e300,
    )
    assert (item.views, item.likes, item.shares) == (0, 0, 0)
    assert item.created_date is None
    assert ContentItem(id="p2", created_date=float("-inf")).created_date is None


def test_epoch_timestamps_in_seconds_and_milliseconds():
    seconds = ContentItem(id="p1", created_date=1760000000)
    millis = ContentItem(id="p2", created_date=1760000000000)
    assert seconds.created_date == millis.created_date
    assert millis.created_date.year == 2025


def test_numeric_ids_become_strings():
    item = ContentItem(id=42, author_id=7)
    assert item.id == "42"
    assert item.author_id == "7"
    assert ContentItem(id="p1", author_id=True).author_id == ""
