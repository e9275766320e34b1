"""
Built-in Fieldtype Hydrators

- text-like fields pass the raw value through
- date fields become aware UTC datetimes
- multi-select fields become lists of options
- relationship fields become ordered lists of related entry ids (one batch query)
- file fields become File models resolved against upload destinations (one batch query)
"""

import logging
import re
from collections import defaultdict
from typing import Any, Sequence

from models import ChannelField, Entry, File, from_timestamp

from .hydrator import Hydrator, HydratorRegistry

logger = logging.getLogger(__name__)

TEXT_FIELDTYPES = ("text", "textarea", "select", "radio", "rte")
DATE_FIELDTYPES = ("date",)
MULTI_SELECT_FIELDTYPES = ("multi_select", "checkboxes")
RELATIONSHIP_FIELDTYPES = ("relationship", "playa")
FILE_FIELDTYPES = ("file",)

_FILEDIR_RE = re.compile(r"^\{filedir_(\d+)\}(.*)$")


class TextHydrator(Hydrator):
    """Raw value as stored"""


class DateHydrator(Hydrator):
    """Unix time → aware UTC datetime; empty or unreadable values become None"""

    def convert(self, entry: Entry, field: ChannelField, value: Any) -> Any:
        if value is None or str(value).strip() == "":
            return None
        try:
            return from_timestamp(int(float(value)))
        except (ValueError, TypeError, OverflowError, OSError):
            logger.warning(f"Unreadable date {value!r} in field {field.field_name} on entry {entry.entry_id}")
            return None


class MultiSelectHydrator(Hydrator):
    """Newline-separated options → list"""

    def convert(self, entry: Entry, field: ChannelField, value: Any) -> Any:
        if not value:
            return []
        return [option.strip() for option in str(value).split("\n") if option.strip()]


class RelationshipHydrator(Hydrator):
    """Related entry ids per (entry, field), in stored order"""

    def __init__(self, db, collection, fields):
        super().__init__(db, collection, fields)
        self._children: dict[tuple[int, int], list[int]] = defaultdict(list)

    async def preload(self, entry_ids: Sequence[int]) -> None:
        field_ids = [field.field_id for field in self.fields]
        if not entry_ids or not field_ids:
            return

        rows = await self.db.fetch(
            'SELECT parent_id, child_id, field_id FROM relationships '
            'WHERE parent_id = ANY($1) AND field_id = ANY($2) '
            'ORDER BY parent_id, "order"',
            list(entry_ids),
            field_ids,
        )
        for row in rows:
            self._children[(row["parent_id"], row["field_id"])].append(row["child_id"])

    def convert(self, entry: Entry, field: ChannelField, value: Any) -> Any:
        return list(self._children.get((entry.entry_id, field.field_id), []))


class FileHydrator(Hydrator):
    """{filedir_N}name → File with url and server path of upload destination N"""

    def __init__(self, db, collection, fields):
        super().__init__(db, collection, fields)
        self._destinations: dict[int, dict] = {}

    def _directory_ids(self) -> list[int]:
        ids = set()
        for entry in self.collection:
            for field in self.fields_for(entry):
                match = _FILEDIR_RE.match(str(entry.raw_value(field.field_id) or ""))
                if match:
                    ids.add(int(match.group(1)))
        return sorted(ids)

    async def preload(self, entry_ids: Sequence[int]) -> None:
        directory_ids = self._directory_ids()
        if not directory_ids:
            return

        rows = await self.db.fetch(
            "SELECT id, name, url, server_path FROM upload_prefs WHERE id = ANY($1)",
            directory_ids,
        )
        self._destinations = {row["id"]: dict(row) for row in rows}

    def convert(self, entry: Entry, field: ChannelField, value: Any) -> Any:
        if not value:
            return None

        match = _FILEDIR_RE.match(str(value))
        if not match:
            return File(filename=str(value))

        directory_id = int(match.group(1))
        filename = match.group(2)
        destination = self._destinations.get(directory_id)
        if destination is None:
            logger.warning(f"Unknown upload destination {directory_id} on entry {entry.entry_id}")
            return File(upload_dir_id=directory_id, filename=filename)

        return File(
            upload_dir_id=directory_id,
            filename=filename,
            url=f"{destination['url'] or ''}{filename}",
            server_path=f"{destination['server_path'] or ''}{filename}",
        )


def register_builtin_hydrators(registry: HydratorRegistry) -> HydratorRegistry:
    for fieldtypes, hydrator in (
        (TEXT_FIELDTYPES, TextHydrator),
        (DATE_FIELDTYPES, DateHydrator),
        (MULTI_SELECT_FIELDTYPES, MultiSelectHydrator),
        (RELATIONSHIP_FIELDTYPES, RelationshipHydrator),
        (FILE_FIELDTYPES, FileHydrator),
    ):
        for fieldtype in fieldtypes:
            registry.register(fieldtype, hydrator)
    return registry
