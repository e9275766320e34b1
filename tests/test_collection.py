"""
EntryCollection tests: channel attachment, field set union, id index.
"""

from unittest.mock import MagicMock

from models import Entry
from query.collection import EntryCollection
from tests.fixtures import make_row


def _entries(*pairs):
    return [Entry.from_row(make_row(entry_id, channel_id)) for entry_id, channel_id in pairs]


class TestBuild:

    def test_channels_looked_up_once_per_distinct_id(self, channels, fields):
        lookup = MagicMock(wraps=channels)
        entries = _entries((5, 1), (3, 2), (9, 1), (4, 3))

        collection = EntryCollection.build(entries, lookup, fields)

        lookup.get_channels_by_id.assert_called_once_with([1, 2, 3])
        assert [c.channel_id for c in collection.channels] == [1, 2, 3]
        assert [e.channel.channel_name for e in collection] == ["news", "blog", "news", "pages"]

    def test_field_set_is_union_of_field_groups(self, channels, fields):
        collection = EntryCollection.build(_entries((1, 1), (2, 2), (3, 3)), channels, fields)

        # channels 1 and 3 share field group 1, so its fields appear once
        assert [f.field_id for f in collection.fields] == [1, 2, 3, 4, 5, 6, 7]

    def test_field_set_limited_to_present_channels(self, channels, fields):
        collection = EntryCollection.build(_entries((1, 2)), channels, fields)
        assert [f.field_name for f in collection.fields] == ["body", "summary"]

    def test_fieldtypes_distinct_in_field_order(self, channels, fields):
        collection = EntryCollection.build(_entries((1, 1), (2, 2)), channels, fields)

        assert collection.fieldtypes == ["text", "date", "multi_select", "relationship", "file", "textarea"]
        assert [f.field_id for f in collection.fields_of_type("text")] == [1, 6]

    def test_entry_ids_preserve_result_order(self, channels, fields):
        collection = EntryCollection.build(_entries((5, 1), (3, 1), (9, 2)), channels, fields)
        assert collection.entry_ids == [5, 3, 9]

    def test_unknown_channel_leaves_entry_unattached(self, channels, fields, caplog):
        collection = EntryCollection.build(_entries((1, 99)), channels, fields)

        assert collection[0].channel is None
        assert collection.fields == []
        assert "unknown channel 99" in caplog.text

    def test_empty_collection(self, channels, fields):
        collection = EntryCollection.build([], channels, fields)

        assert not collection
        assert len(collection) == 0
        assert collection.fieldtypes == []
        assert collection.to_list() == []
