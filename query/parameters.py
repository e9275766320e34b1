"""
Tag Parameter Translation

Turns a flat map of tag parameters (name → string value) into an ordered
list of FilterCalls, then applies them to an EntryQuery.

Protocol:
- List values are pipe delimited: channel="news|blog"
- A list parameter with a registered not_<name> counterpart switches to it
  when the value starts with "not ": category="not 3|4"
- Boolean values: exactly "yes" is true, anything else is false
- search:<field> values are pipe-delimited alternatives; all of them are
  merged into one search call applied after every other filter
- Unknown parameter names are ignored
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from .builder import EntryQuery
from .filters import FilterCall, FilterOp, FilterSet

logger = logging.getLogger(__name__)

LIST = "list"
BOOL = "bool"
SCALAR = "scalar"

LIST_DELIMITER = "|"
NEGATION_PREFIX = "not "
SEARCH_PREFIX = "search:"
TRUE_VALUE = "yes"


@dataclass(frozen=True)
class ParameterDef:
    """Maps a tag parameter to the filter operation it invokes."""
    op: FilterOp
    kind: str = SCALAR  # list, bool, scalar


# =============================================================================
# Parameter Registry
# =============================================================================

PARAMETERS: dict[str, ParameterDef] = {
    "author_id": ParameterDef(FilterOp.AUTHOR_ID, LIST),
    "not_author_id": ParameterDef(FilterOp.NOT_AUTHOR_ID, LIST),
    "category": ParameterDef(FilterOp.CATEGORY, LIST),
    "not_category": ParameterDef(FilterOp.NOT_CATEGORY, LIST),
    "category_group": ParameterDef(FilterOp.CATEGORY_GROUP, LIST),
    "not_category_group": ParameterDef(FilterOp.NOT_CATEGORY_GROUP, LIST),
    "channel": ParameterDef(FilterOp.CHANNEL, LIST),
    "entry_id": ParameterDef(FilterOp.ENTRY_ID, LIST),
    "not_entry_id": ParameterDef(FilterOp.NOT_ENTRY_ID, LIST),
    "entry_id_from": ParameterDef(FilterOp.ENTRY_ID_FROM),
    "entry_id_to": ParameterDef(FilterOp.ENTRY_ID_TO),
    "entry_id_fo": ParameterDef(FilterOp.ENTRY_ID_TO),  # legacy spelling
    "fixed_order": ParameterDef(FilterOp.FIXED_ORDER, LIST),
    "group_id": ParameterDef(FilterOp.GROUP_ID, LIST),
    "not_group_id": ParameterDef(FilterOp.NOT_GROUP_ID, LIST),
    "limit": ParameterDef(FilterOp.LIMIT),
    "offset": ParameterDef(FilterOp.OFFSET),
    "orderby": ParameterDef(FilterOp.ORDERBY, LIST),
    "sort": ParameterDef(FilterOp.SORT, LIST),
    "show_expired": ParameterDef(FilterOp.SHOW_EXPIRED, BOOL),
    "show_future_entries": ParameterDef(FilterOp.SHOW_FUTURE_ENTRIES, BOOL),
    "start_on": ParameterDef(FilterOp.START_ON),
    "stop_before": ParameterDef(FilterOp.STOP_BEFORE),
    "status": ParameterDef(FilterOp.STATUS, LIST),
    "not_status": ParameterDef(FilterOp.NOT_STATUS, LIST),
    "sticky": ParameterDef(FilterOp.STICKY, BOOL),
    "uncategorized_entries": ParameterDef(FilterOp.UNCATEGORIZED_ENTRIES, BOOL),
    "url_title": ParameterDef(FilterOp.URL_TITLE, LIST),
    "not_url_title": ParameterDef(FilterOp.NOT_URL_TITLE, LIST),
    # not_username is left unregistered until the intended meaning of a
    # negated username is decided; FilterSet.not_username is still callable.
    "username": ParameterDef(FilterOp.USERNAME, LIST),
    "year": ParameterDef(FilterOp.YEAR),
    "month": ParameterDef(FilterOp.MONTH),
    "day": ParameterDef(FilterOp.DAY),
}


def split_list(value: str) -> list[str]:
    return value.split(LIST_DELIMITER)


class ParameterTranslator:
    """Translates tag parameters into filter calls and applies them."""

    def __init__(self, filters: FilterSet, parameters: Optional[Mapping[str, ParameterDef]] = None):
        self.filters = filters
        self.parameters = parameters if parameters is not None else PARAMETERS

    def _translate_one(self, name: str, definition: ParameterDef, value: str) -> FilterCall:
        if definition.kind == LIST:
            negated = self.parameters.get(f"not_{name}")
            if negated is not None and value.startswith(NEGATION_PREFIX):
                return FilterCall(negated.op, split_list(value[len(NEGATION_PREFIX):]))
            return FilterCall(definition.op, split_list(value))

        if definition.kind == BOOL:
            return FilterCall(definition.op, value == TRUE_VALUE)

        return FilterCall(definition.op, value)

    def translate(self, parameters: Mapping[str, str]) -> list[FilterCall]:
        """
        Build the ordered filter list for a parameter map.
        Calls follow the map's iteration order; search comes last.
        """
        calls: list[FilterCall] = []
        search: dict[str, list[str]] = {}

        for name, value in parameters.items():
            value = "" if value is None else str(value)

            if name.startswith(SEARCH_PREFIX):
                search[name[len(SEARCH_PREFIX):]] = split_list(value)
                continue

            definition = self.parameters.get(name)
            if definition is None:
                logger.debug(f"Ignoring unknown parameter '{name}'")
                continue

            calls.append(self._translate_one(name, definition, value))

        if search:
            calls.append(FilterCall(FilterOp.SEARCH, search))

        return calls

    def apply(self, query: EntryQuery, parameters: Mapping[str, str]) -> EntryQuery:
        """Translate parameters and apply them to query."""
        return self.filters.apply(query, self.translate(parameters))
