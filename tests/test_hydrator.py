"""
Collection hydration tests.

Covers the two-phase contract: one preload per distinct fieldtype no
matter how many entries, every preload finished before any entry is
hydrated, and values resolved against each entry's own field group.
"""

import asyncio

import pytest

from models import ChannelField, Entry
from query.collection import EntryCollection
from query.fieldtypes import TextHydrator
from query.hydrator import CollectionHydrator, Hydrator, HydratorRegistry
from repositories import FieldRepository
from tests.fixtures import FIELDS, make_row


class RecordingHydrator(Hydrator):
    """Logs preload and hydrate events to a shared list"""

    def __init__(self, db, collection, fields, log):
        super().__init__(db, collection, fields)
        self.log = log
        self.fieldtype = self.fields[0].field_type

    async def preload(self, entry_ids):
        self.log.append(("preload-start", self.fieldtype, len(entry_ids)))
        await asyncio.sleep(0)
        self.log.append(("preload-done", self.fieldtype, len(entry_ids)))

    def hydrate(self, entry):
        self.log.append(("hydrate", self.fieldtype, entry.entry_id))
        super().hydrate(entry)


def recording_registry(log):
    return HydratorRegistry(fallback=lambda db, collection, fields: RecordingHydrator(db, collection, fields, log))


def build(channels, fields, pairs):
    entries = [Entry.from_row(make_row(entry_id, channel_id)) for entry_id, channel_id in pairs]
    return EntryCollection.build(entries, channels, fields)


class TestPreloadBatching:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [1, 10_000])
    async def test_one_preload_per_fieldtype_regardless_of_size(self, fake_db, channels, fields, size):
        log = []
        collection = build(channels, fields, [(i, 1) for i in range(1, size + 1)])

        await CollectionHydrator(recording_registry(log), fake_db).hydrate(collection)

        preloads = [event for event in log if event[0] == "preload-start"]
        assert [event[1] for event in preloads] == ["text", "date", "multi_select", "relationship", "file"]
        assert all(event[2] == size for event in preloads)

    @pytest.mark.asyncio
    async def test_builtin_preloads_issue_one_query_each(self, fake_db, channels, fields):
        collection = build(channels, fields, [(i, 1) for i in range(1, 501)])

        await CollectionHydrator(HydratorRegistry.default(), fake_db).hydrate(collection)

        assert len(fake_db.calls_matching("FROM relationships")) == 1
        assert len(fake_db.calls) == 1  # no file values, so no upload destination lookup


class TestPhaseOrdering:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [True, False])
    async def test_every_preload_finishes_before_hydration(self, fake_db, channels, fields, parallel):
        log = []
        collection = build(channels, fields, [(1, 1), (2, 2)])

        await CollectionHydrator(recording_registry(log), fake_db, parallel=parallel).hydrate(collection)

        first_hydrate = next(i for i, event in enumerate(log) if event[0] == "hydrate")
        last_preload = max(i for i, event in enumerate(log) if event[0] == "preload-done")
        assert last_preload < first_hydrate

    @pytest.mark.asyncio
    async def test_sequential_preloads_do_not_interleave(self, fake_db, channels, fields):
        log = []
        collection = build(channels, fields, [(1, 2)])

        await CollectionHydrator(recording_registry(log), fake_db, parallel=False).hydrate(collection)

        assert [event[:2] for event in log if event[0].startswith("preload")] == [
            ("preload-start", "text"),
            ("preload-done", "text"),
            ("preload-start", "textarea"),
            ("preload-done", "textarea"),
        ]

    @pytest.mark.asyncio
    async def test_hydrators_applied_per_entry_in_fieldtype_order(self, fake_db, channels, fields):
        log = []
        collection = build(channels, fields, [(1, 2), (2, 2)])

        await CollectionHydrator(recording_registry(log), fake_db).hydrate(collection)

        assert [event[1:] for event in log if event[0] == "hydrate"] == [
            ("text", 1), ("textarea", 1), ("text", 2), ("textarea", 2),
        ]


class TestHydratedValues:

    @pytest.mark.asyncio
    async def test_fields_resolved_against_entry_group(self, fake_db, channels, fields):
        entries = [
            Entry.from_row(make_row(1, 1, field_id_1="news body", field_id_6="stale")),
            Entry.from_row(make_row(2, 2, field_id_1="stale", field_id_6="blog body", field_id_7="short")),
        ]
        collection = EntryCollection.build(entries, channels, fields)

        await CollectionHydrator(HydratorRegistry.default(), fake_db).hydrate(collection)

        assert entries[0]["body"] == "news body"
        assert "summary" not in entries[0]
        assert entries[1]["body"] == "blog body"
        assert entries[1]["summary"] == "short"

    @pytest.mark.asyncio
    async def test_entries_marked_hydrated(self, fake_db, channels, fields):
        collection = build(channels, fields, [(1, 2)])

        await CollectionHydrator(HydratorRegistry.default(), fake_db).hydrate(collection)

        entry = collection[0]
        assert entry.is_hydrated
        with pytest.raises(RuntimeError):
            entry.set_custom_field("body", "changed")

    @pytest.mark.asyncio
    async def test_unregistered_fieldtype_without_fallback_is_skipped(self, fake_db, channels, fields):
        registry = HydratorRegistry()
        registry.register("text", TextHydrator)
        entries = [Entry.from_row(make_row(1, 1, field_id_1="hello", field_id_2="1700000000"))]
        collection = EntryCollection.build(entries, channels, fields)

        await CollectionHydrator(registry, fake_db).hydrate(collection)

        assert dict(entries[0].custom_fields) == {"body": "hello"}
        assert entries[0].is_hydrated

    @pytest.mark.asyncio
    async def test_default_registry_falls_back_to_text(self, fake_db, channels):
        fields = FieldRepository(FIELDS + [
            ChannelField(field_id=8, group_id=2, field_name="colour", field_type="color_picker", field_order=3),
        ])
        entries = [Entry.from_row(make_row(1, 2, field_id_8="#ff0000"))]
        collection = EntryCollection.build(entries, channels, fields)

        await CollectionHydrator(HydratorRegistry.default(), fake_db).hydrate(collection)

        assert entries[0]["colour"] == "#ff0000"

    @pytest.mark.asyncio
    async def test_empty_collection_is_untouched(self, fake_db, channels, fields):
        registry = HydratorRegistry()
        collection = EntryCollection.build([], channels, fields)

        result = await CollectionHydrator(registry, fake_db).hydrate(collection)

        assert result is collection
        assert fake_db.calls == []
