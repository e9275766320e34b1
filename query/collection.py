"""
Entry Collection

An ordered result set plus the metadata hydrators need: the channels
represented, the union of their field groups, and the entry id index used
for batched preloads.
"""

import logging
from typing import TYPE_CHECKING, Iterator, Sequence

from models import Channel, ChannelField, Entry

if TYPE_CHECKING:
    from repositories import ChannelRepository, FieldRepository

logger = logging.getLogger(__name__)


class EntryCollection:
    """Entries from one query, in result order."""

    def __init__(self, entries: Sequence[Entry] = ()):
        self.entries: list[Entry] = list(entries)
        self.channels: list[Channel] = []
        self.fields: list[ChannelField] = []
        self.entry_ids: list[int] = [entry.entry_id for entry in self.entries]

    @classmethod
    def build(
        cls,
        entries: Sequence[Entry],
        channels: "ChannelRepository",
        fields: "FieldRepository",
    ) -> "EntryCollection":
        """
        Attach each entry's channel and collect the field set.

        Channels are looked up once per distinct channel id. The field set is
        the union of the field groups of every channel present, so hydrators
        see the same fields whichever entries carry values.
        """
        collection = cls(entries)

        channel_ids = list(dict.fromkeys(entry.channel_id for entry in collection.entries))
        collection.channels = channels.get_channels_by_id(channel_ids)
        by_id = {channel.channel_id: channel for channel in collection.channels}

        for entry in collection.entries:
            entry.channel = by_id.get(entry.channel_id)
            if entry.channel is None:
                logger.warning(f"Entry {entry.entry_id} references unknown channel {entry.channel_id}")

        seen_groups = set()
        seen_fields = set()
        for channel in collection.channels:
            if channel.field_group is None or channel.field_group in seen_groups:
                continue
            seen_groups.add(channel.field_group)
            for field in fields.get_fields_by_group(channel.field_group):
                if field.field_id not in seen_fields:
                    seen_fields.add(field.field_id)
                    collection.fields.append(field)

        return collection

    @property
    def fieldtypes(self) -> list[str]:
        """Distinct fieldtypes in the order they first appear in the field set"""
        return list(dict.fromkeys(field.field_type for field in self.fields))

    def fields_of_type(self, fieldtype: str) -> list[ChannelField]:
        return [field for field in self.fields if field.field_type == fieldtype]

    def to_list(self) -> list[dict]:
        return [entry.to_dict() for entry in self.entries]

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> Entry:
        return self.entries[index]

    def __bool__(self) -> bool:
        return bool(self.entries)
