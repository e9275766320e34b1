"""
Filter Vocabulary

The fixed set of filter and ordering operations an entry query can be
composed from. Each operation mutates the shared EntryQuery and returns it.

Operations are addressed by FilterOp; a FilterCall is one operation plus its
argument, so a parameter map can be translated into an ordered list of calls
(data) before anything is applied to a query.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional, Sequence

from errors import InvalidParameterError

from .builder import DIRECTIONS, Condition, EntryQuery

if TYPE_CHECKING:
    from repositories import CategoryRepository, ChannelRepository, FieldRepository

logger = logging.getLogger(__name__)

TITLES = "channel_titles"
DATA = "channel_data"
MEMBERS = "members"

_CATEGORY_POSTS_BY_ID = (
    "SELECT category_posts.entry_id FROM category_posts "
    "WHERE category_posts.cat_id = ANY({param})"
)
_CATEGORY_POSTS_BY_GROUP = (
    "SELECT category_posts.entry_id FROM category_posts "
    "JOIN categories ON categories.cat_id = category_posts.cat_id "
    "WHERE categories.group_id = ANY({param})"
)
_CATEGORIZED_ENTRIES = "SELECT category_posts.entry_id FROM category_posts"

# orderby names that map to fixed columns; anything else is looked up as a custom field
ORDERABLE_COLUMNS = {
    "date": f"{TITLES}.entry_date",
    "entry_date": f"{TITLES}.entry_date",
    "edit_date": f"{TITLES}.edit_date",
    "expiration_date": f"{TITLES}.expiration_date",
    "title": f"{TITLES}.title",
    "url_title": f"{TITLES}.url_title",
    "entry_id": f"{TITLES}.entry_id",
    "status": f"{TITLES}.status",
    "comment_total": f"{TITLES}.comment_total",
    "random": "RANDOM()",
}

_ORDERBY_SOURCE = "orderby:"


class FilterOp(str, Enum):
    CHANNEL = "channel"
    CHANNEL_ID = "channel_id"
    CATEGORY = "category"
    NOT_CATEGORY = "not_category"
    CATEGORY_NAME = "category_name"
    CATEGORY_GROUP = "category_group"
    NOT_CATEGORY_GROUP = "not_category_group"
    UNCATEGORIZED_ENTRIES = "uncategorized_entries"
    AUTHOR_ID = "author_id"
    NOT_AUTHOR_ID = "not_author_id"
    GROUP_ID = "group_id"
    NOT_GROUP_ID = "not_group_id"
    USERNAME = "username"
    NOT_USERNAME = "not_username"
    STATUS = "status"
    NOT_STATUS = "not_status"
    ENTRY_ID = "entry_id"
    NOT_ENTRY_ID = "not_entry_id"
    ENTRY_ID_FROM = "entry_id_from"
    ENTRY_ID_TO = "entry_id_to"
    URL_TITLE = "url_title"
    NOT_URL_TITLE = "not_url_title"
    SHOW_EXPIRED = "show_expired"
    SHOW_FUTURE_ENTRIES = "show_future_entries"
    START_ON = "start_on"
    STOP_BEFORE = "stop_before"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    STICKY = "sticky"
    FIXED_ORDER = "fixed_order"
    ORDERBY = "orderby"
    SORT = "sort"
    LIMIT = "limit"
    OFFSET = "offset"
    SEARCH = "search"


@dataclass(frozen=True)
class FilterCall:
    """One filter operation and its argument."""
    op: FilterOp
    argument: Any = None


# ============================================================================
# Value coercion
# ============================================================================

def _to_int(value: Any, parameter: str) -> int:
    if isinstance(value, bool):
        raise InvalidParameterError(parameter, value, "an integer")
    try:
        return int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(parameter, value, "an integer")


def _to_ints(values: Sequence, parameter: str) -> list[int]:
    return [_to_int(v, parameter) for v in values]


def _to_epoch(value: Any, parameter: str) -> int:
    """Normalize a unix time, datetime, date or date string to unix time. Naive values are UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        try:
            return _to_epoch(datetime.fromisoformat(text), parameter)
        except ValueError:
            pass
    raise InvalidParameterError(parameter, value, "a unix timestamp or ISO date")


class FilterSet:
    """
    Applies filter operations to an EntryQuery.

    Registries are injected; the clock is injectable so expiry and
    future-entry checks can be evaluated at a fixed time.
    """

    def __init__(
        self,
        channels: "ChannelRepository",
        fields: "FieldRepository",
        categories: Optional["CategoryRepository"] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.channels = channels
        self.fields = fields
        self.categories = categories
        self.clock = clock
        self._operations: dict[FilterOp, Callable[[EntryQuery, Any], EntryQuery]] = {
            FilterOp.CHANNEL: self.channel,
            FilterOp.CHANNEL_ID: self.channel_id,
            FilterOp.CATEGORY: self.category,
            FilterOp.NOT_CATEGORY: self.not_category,
            FilterOp.CATEGORY_NAME: self.category_name,
            FilterOp.CATEGORY_GROUP: self.category_group,
            FilterOp.NOT_CATEGORY_GROUP: self.not_category_group,
            FilterOp.UNCATEGORIZED_ENTRIES: self.uncategorized_entries,
            FilterOp.AUTHOR_ID: self.author_id,
            FilterOp.NOT_AUTHOR_ID: self.not_author_id,
            FilterOp.GROUP_ID: self.group_id,
            FilterOp.NOT_GROUP_ID: self.not_group_id,
            FilterOp.USERNAME: self.username,
            FilterOp.NOT_USERNAME: self.not_username,
            FilterOp.STATUS: self.status,
            FilterOp.NOT_STATUS: self.not_status,
            FilterOp.ENTRY_ID: self.entry_id,
            FilterOp.NOT_ENTRY_ID: self.not_entry_id,
            FilterOp.ENTRY_ID_FROM: self.entry_id_from,
            FilterOp.ENTRY_ID_TO: self.entry_id_to,
            FilterOp.URL_TITLE: self.url_title,
            FilterOp.NOT_URL_TITLE: self.not_url_title,
            FilterOp.SHOW_EXPIRED: self.show_expired,
            FilterOp.SHOW_FUTURE_ENTRIES: self.show_future_entries,
            FilterOp.START_ON: self.start_on,
            FilterOp.STOP_BEFORE: self.stop_before,
            FilterOp.YEAR: self.year,
            FilterOp.MONTH: self.month,
            FilterOp.DAY: self.day,
            FilterOp.STICKY: self.sticky,
            FilterOp.FIXED_ORDER: self.fixed_order,
            FilterOp.ORDERBY: self.orderby,
            FilterOp.SORT: self.sort,
            FilterOp.LIMIT: self.limit,
            FilterOp.OFFSET: self.offset,
            FilterOp.SEARCH: self.search,
        }

    def apply(self, query: EntryQuery, calls: Iterable[FilterCall]) -> EntryQuery:
        """Apply filter calls in order."""
        for call in calls:
            self._operations[call.op](query, call.argument)
        return query

    def _require_members(self, query: EntryQuery) -> EntryQuery:
        return query.join(MEMBERS, f"{MEMBERS}.member_id", "=", f"{TITLES}.author_id")

    def _require_data(self, query: EntryQuery) -> EntryQuery:
        return query.join(DATA, f"{DATA}.entry_id", "=", f"{TITLES}.entry_id")

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def channel(self, query: EntryQuery, names: Sequence[str]) -> EntryQuery:
        """Filter by channel name. Names that resolve to nothing add no constraint."""
        channel_ids = [c.channel_id for c in self.channels.get_channels_by_name(names)]
        if not channel_ids:
            logger.debug(f"No channels matched {list(names)}; channel filter skipped")
            return query
        return self.channel_id(query, channel_ids)

    def channel_id(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_in(f"{TITLES}.channel_id", _to_ints(ids, "channel_id"))

    # ------------------------------------------------------------------
    # Categories (semi-joins: an entry in several matching categories appears once)
    # ------------------------------------------------------------------

    def category(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_in_subquery(f"{TITLES}.entry_id", _CATEGORY_POSTS_BY_ID, _to_ints(ids, "category"))

    def not_category(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_in_subquery(
            f"{TITLES}.entry_id", _CATEGORY_POSTS_BY_ID, _to_ints(ids, "not_category"), negate=True
        )

    def category_name(self, query: EntryQuery, names: Sequence[str]) -> EntryQuery:
        """Filter by category name. Names that resolve to nothing add no constraint."""
        category_ids = []
        if self.categories is not None:
            category_ids = [c.cat_id for c in self.categories.get_categories_by_name(names)]
        if not category_ids:
            logger.debug(f"No categories matched {list(names)}; category filter skipped")
            return query
        return self.category(query, category_ids)

    def category_group(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_in_subquery(
            f"{TITLES}.entry_id", _CATEGORY_POSTS_BY_GROUP, _to_ints(ids, "category_group")
        )

    def not_category_group(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_in_subquery(
            f"{TITLES}.entry_id", _CATEGORY_POSTS_BY_GROUP, _to_ints(ids, "not_category_group"), negate=True
        )

    def uncategorized_entries(self, query: EntryQuery, uncategorized: bool = True) -> EntryQuery:
        if not uncategorized:
            query.where_in_subquery(f"{TITLES}.entry_id", _CATEGORIZED_ENTRIES)
        return query

    # ------------------------------------------------------------------
    # Authors and members
    # ------------------------------------------------------------------

    def author_id(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_in(f"{TITLES}.author_id", _to_ints(ids, "author_id"))

    def not_author_id(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_not_in(f"{TITLES}.author_id", _to_ints(ids, "not_author_id"))

    def group_id(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return self._require_members(query).where_in(f"{MEMBERS}.group_id", _to_ints(ids, "group_id"))

    def not_group_id(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return self._require_members(query).where_not_in(f"{MEMBERS}.group_id", _to_ints(ids, "not_group_id"))

    def username(self, query: EntryQuery, names: Sequence[str]) -> EntryQuery:
        return self._require_members(query).where_in(f"{MEMBERS}.username", list(names))

    def not_username(self, query: EntryQuery, names: Sequence[str]) -> EntryQuery:
        return self._require_members(query).where_not_in(f"{MEMBERS}.username", list(names))

    # ------------------------------------------------------------------
    # Entry attributes
    # ------------------------------------------------------------------

    def status(self, query: EntryQuery, statuses: Sequence[str]) -> EntryQuery:
        return query.where_in(f"{TITLES}.status", list(statuses))

    def not_status(self, query: EntryQuery, statuses: Sequence[str]) -> EntryQuery:
        return query.where_not_in(f"{TITLES}.status", list(statuses))

    def entry_id(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_in(f"{TITLES}.entry_id", _to_ints(ids, "entry_id"))

    def not_entry_id(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        return query.where_not_in(f"{TITLES}.entry_id", _to_ints(ids, "not_entry_id"))

    def entry_id_from(self, query: EntryQuery, entry_id: Any) -> EntryQuery:
        return query.where(f"{TITLES}.entry_id", ">=", _to_int(entry_id, "entry_id_from"))

    def entry_id_to(self, query: EntryQuery, entry_id: Any) -> EntryQuery:
        return query.where(f"{TITLES}.entry_id", "<=", _to_int(entry_id, "entry_id_to"))

    def url_title(self, query: EntryQuery, url_titles: Sequence[str]) -> EntryQuery:
        return query.where_in(f"{TITLES}.url_title", list(url_titles))

    def not_url_title(self, query: EntryQuery, url_titles: Sequence[str]) -> EntryQuery:
        return query.where_not_in(f"{TITLES}.url_title", list(url_titles))

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def show_expired(self, query: EntryQuery, show_expired: bool = True) -> EntryQuery:
        """When false, keep entries with no expiration date or one still in the future."""
        if not show_expired:
            column = f"{TITLES}.expiration_date"
            query.where_any([
                Condition(column, "is null"),
                Condition(column, "=", 0),
                Condition(column, ">", int(self.clock())),
            ])
        return query

    def show_future_entries(self, query: EntryQuery, show_future_entries: bool = True) -> EntryQuery:
        if not show_future_entries:
            query.where(f"{TITLES}.entry_date", "<=", int(self.clock()))
        return query

    def start_on(self, query: EntryQuery, start_on: Any) -> EntryQuery:
        """Inclusive lower bound on entry_date"""
        return query.where(f"{TITLES}.entry_date", ">=", _to_epoch(start_on, "start_on"))

    def stop_before(self, query: EntryQuery, stop_before: Any) -> EntryQuery:
        """Exclusive upper bound on entry_date"""
        return query.where(f"{TITLES}.entry_date", "<", _to_epoch(stop_before, "stop_before"))

    def year(self, query: EntryQuery, year: Any) -> EntryQuery:
        return query.where(f"{TITLES}.year", "=", _to_int(year, "year"))

    def month(self, query: EntryQuery, month: Any) -> EntryQuery:
        return query.where(f"{TITLES}.month", "=", _to_int(month, "month"))

    def day(self, query: EntryQuery, day: Any) -> EntryQuery:
        return query.where(f"{TITLES}.day", "=", _to_int(day, "day"))

    # ------------------------------------------------------------------
    # Ordering and pagination
    # ------------------------------------------------------------------

    def sticky(self, query: EntryQuery, sticky: bool = True) -> EntryQuery:
        """Sticky entries first, ahead of every other ordering."""
        if sticky:
            query.order_by(f"{TITLES}.sticky", "desc", prepend=True, source="sticky")
        return query

    def fixed_order(self, query: EntryQuery, ids: Sequence) -> EntryQuery:
        """Restrict to exactly these entries, returned in the given sequence."""
        entry_ids = _to_ints(ids, "fixed_order")
        self.entry_id(query, entry_ids)
        return query.order_by_sequence(f"{TITLES}.entry_id", entry_ids, source="fixed_order")

    def _order_column(self, query: EntryQuery, name: str) -> Optional[str]:
        if name in ORDERABLE_COLUMNS:
            return ORDERABLE_COLUMNS[name]
        if self.fields.has_field(name):
            self._require_data(query)
            return f"{DATA}.field_id_{self.fields.get_field_id(name)}"
        return None

    def orderby(self, query: EntryQuery, names: Sequence[str]) -> EntryQuery:
        """
        Order by named columns or custom fields. Directions come from sort,
        matched by position; unmatched positions sort descending.
        """
        for position, name in enumerate(names):
            column = self._order_column(query, name.strip())
            if column is None:
                logger.debug(f"Unknown orderby '{name}' ignored")
                continue
            direction = "desc"
            if position < len(query.sort_directions):
                direction = query.sort_directions[position]
            query.order_by(column, direction, source=f"{_ORDERBY_SOURCE}{position}")
        return query

    def sort(self, query: EntryQuery, directions: Sequence[str]) -> EntryQuery:
        normalized = [d.strip().lower() for d in directions]
        query.sort_directions = [d if d in DIRECTIONS else "desc" for d in normalized]
        for order in query.orders:
            if order.source.startswith(_ORDERBY_SOURCE):
                position = int(order.source[len(_ORDERBY_SOURCE):])
                if position < len(query.sort_directions):
                    order.direction = query.sort_directions[position]
        return query

    def limit(self, query: EntryQuery, limit: Any) -> EntryQuery:
        n = _to_int(limit, "limit")
        if n < 0:
            raise InvalidParameterError("limit", limit, "a non-negative integer")
        return query.limit(n)

    def offset(self, query: EntryQuery, offset: Any) -> EntryQuery:
        n = _to_int(offset, "offset")
        if n < 0:
            raise InvalidParameterError("offset", offset, "a non-negative integer")
        return query.offset(n)

    # ------------------------------------------------------------------
    # Custom field search
    # ------------------------------------------------------------------

    def search(self, query: EntryQuery, search: Mapping[str, Sequence[str]]) -> EntryQuery:
        """
        Substring search on custom fields. Values for one field are ORed,
        distinct fields are ANDed. Unknown field names are skipped.
        """
        self._require_data(query)

        for field_name, values in search.items():
            if not self.fields.has_field(field_name):
                logger.debug(f"Search on unknown field '{field_name}' skipped")
                continue

            column = f"{DATA}.field_id_{self.fields.get_field_id(field_name)}"
            query.where_any([Condition(column, "like", value) for value in values])

        return query
