"""
Sample registries, rows and a recording database double.

No live database is needed: FakeDatabase answers fetch() from canned rows
and records every query so tests can assert on batching.
"""

from typing import Any, Optional

from models import Category, Channel, ChannelField

NOW = 1_700_000_000  # 2023-11-14T22:13:20Z


class FakeDatabase:
    """Stands in for DatabaseConnection. Responds to the first registered needle found in the SQL."""

    def __init__(self):
        self.calls: list[tuple[str, tuple]] = []
        self._responses: list[tuple[str, list]] = []

    def respond(self, needle: str, rows: list[dict]) -> None:
        self._responses.append((needle, rows))

    async def fetch(self, query: str, *args, timeout: Optional[float] = None) -> list[dict]:
        self.calls.append((query, args))
        for needle, rows in self._responses:
            if needle in query:
                return rows
        return []

    def calls_matching(self, needle: str) -> list[tuple[str, tuple]]:
        return [call for call in self.calls if needle in call[0]]


CHANNELS = [
    Channel(channel_id=1, channel_name="news", channel_title="News", field_group=1),
    Channel(channel_id=2, channel_name="blog", channel_title="Blog", field_group=2),
    Channel(channel_id=3, channel_name="pages", channel_title="Pages", field_group=1),
]

FIELDS = [
    ChannelField(field_id=1, group_id=1, field_name="body", field_type="text", field_order=1),
    ChannelField(field_id=2, group_id=1, field_name="event_date", field_type="date", field_order=2),
    ChannelField(field_id=3, group_id=1, field_name="tags", field_type="multi_select", field_order=3),
    ChannelField(field_id=4, group_id=1, field_name="related", field_type="relationship", field_order=4),
    ChannelField(field_id=5, group_id=1, field_name="image", field_type="file", field_order=5),
    ChannelField(field_id=6, group_id=2, field_name="body", field_type="text", field_order=1),
    ChannelField(field_id=7, group_id=2, field_name="summary", field_type="textarea", field_order=2),
]

CATEGORIES = [
    Category(cat_id=10, group_id=1, cat_name="Sports", cat_url_title="sports"),
    Category(cat_id=11, group_id=1, cat_name="Music", cat_url_title="music"),
    Category(cat_id=12, group_id=2, cat_name="Sports", cat_url_title="sports-2"),
]


def make_row(entry_id: int, channel_id: int = 1, **columns: Any) -> dict:
    """A joined channel_titles + channel_data row"""
    row = {
        "entry_id": entry_id,
        "site_id": 1,
        "channel_id": channel_id,
        "author_id": 1,
        "forum_topic_id": None,
        "ip_address": "127.0.0.1",
        "title": f"Entry {entry_id}",
        "url_title": f"entry-{entry_id}",
        "status": "open",
        "versioning_enabled": "n",
        "allow_comments": "y",
        "sticky": "n",
        "entry_date": NOW - 86400,
        "edit_date": 20231114221320,
        "expiration_date": 0,
        "comment_expiration_date": 0,
        "recent_comment_date": 0,
        "year": 2023,
        "month": 11,
        "day": 13,
        "comment_total": 0,
    }
    for field in FIELDS:
        row[f"field_id_{field.field_id}"] = None
        row[f"field_ft_{field.field_id}"] = "none"
    row.update(columns)
    return row


# ============================================================================
# Content store seed (integration tests against PostgreSQL)
# ============================================================================

MEMBERS = [
    {"member_id": 1, "group_id": 1, "username": "alice", "screen_name": "Alice"},
    {"member_id": 2, "group_id": 5, "username": "bob", "screen_name": "Bob"},
]

DAY = 86400


def seed_entries(now: int) -> list[dict]:
    """
    Entries 1-5 with distinct entry dates (1 newest). Expiry is relative to now:
    1 never (0), 2 unset (NULL), 3 in a month, 4 yesterday, 5 never.
    """
    return [
        make_row(1, 1, author_id=1, entry_date=NOW - 1 * DAY, field_id_1="Score was a_c", field_id_2="1705276800"),
        make_row(2, 1, author_id=2, entry_date=NOW - 2 * DAY, expiration_date=None, field_id_1="abc"),
        make_row(3, 1, author_id=1, entry_date=NOW - 3 * DAY, expiration_date=now + 30 * DAY,
                 sticky="y", field_id_1="50% off"),
        make_row(4, 1, author_id=2, entry_date=NOW - 4 * DAY, expiration_date=now - DAY, field_id_1="5000 miles"),
        make_row(5, 2, author_id=1, entry_date=NOW - 5 * DAY, field_id_6="Blog body", field_id_7="Short"),
    ]


# (entry_id, cat_id); entry 1 sits in two categories of the same group
CATEGORY_POSTS = [(1, 10), (1, 11), (2, 10), (5, 12)]


def split_row(row: dict) -> tuple[dict, dict]:
    """Split a joined row into its channel_titles and channel_data parts"""
    data = {key: row[key] for key in ("entry_id", "site_id", "channel_id")}
    titles = {}
    for key, value in row.items():
        if key.startswith(("field_id_", "field_ft_")):
            data[key] = value
        else:
            titles[key] = value
    return titles, data
