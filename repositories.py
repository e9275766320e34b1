"""
Repository layer for entries
Provides the channel/field/category lookups and the read-only entry pipeline
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from config import QueryConfig
from database import DatabaseConnection
from errors import UnsupportedOperationError
from models import Category, Channel, ChannelField, Entry
from query.builder import EntryQuery
from query.collection import EntryCollection
from query.filters import DATA, TITLES
from query.hydrator import CollectionHydrator
from query.parameters import ParameterTranslator

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base repository with common operations"""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    @staticmethod
    def _list_to_models(data_list: Iterable[Mapping[str, Any]], model_class) -> list:
        """Convert list of database records to Pydantic models"""
        return [model_class(**dict(row)) for row in data_list]


# ============================================================================
# Lookup registries
#
# Loaded once, immutable afterwards, so concurrent preloads can read them
# without locking.
# ============================================================================

class ChannelRepository:
    """Channel lookups by id and by name"""

    def __init__(self, channels: Iterable[Channel]):
        channels = tuple(channels)
        self._by_id: Mapping[int, Channel] = MappingProxyType({c.channel_id: c for c in channels})
        self._by_name: Mapping[str, Channel] = MappingProxyType({c.channel_name: c for c in channels})

    @classmethod
    async def load(cls, db: DatabaseConnection) -> "ChannelRepository":
        rows = await db.fetch(
            "SELECT channel_id, site_id, channel_name, channel_title, field_group "
            "FROM channels ORDER BY channel_id"
        )
        repository = cls(BaseRepository._list_to_models(rows, Channel))
        logger.info(f"Loaded {len(repository)} channels")
        return repository

    def find(self, channel_id: int) -> Optional[Channel]:
        return self._by_id.get(channel_id)

    def get_channels_by_id(self, channel_ids: Sequence[int]) -> List[Channel]:
        return [self._by_id[i] for i in channel_ids if i in self._by_id]

    def get_channels_by_name(self, names: Sequence[str]) -> List[Channel]:
        return [self._by_name[n] for n in names if n in self._by_name]

    def __len__(self) -> int:
        return len(self._by_id)


class FieldRepository:
    """
    Custom field lookups.

    Field names are unique per group but may repeat across groups; name
    lookups return the first field registered under that name.
    """

    def __init__(self, fields: Iterable[ChannelField]):
        fields = sorted(fields, key=lambda f: (f.group_id, f.field_order, f.field_id))
        by_name: Dict[str, ChannelField] = {}
        by_group: Dict[int, List[ChannelField]] = {}
        for field in fields:
            by_name.setdefault(field.field_name, field)
            by_group.setdefault(field.group_id, []).append(field)

        self._by_id: Mapping[int, ChannelField] = MappingProxyType({f.field_id: f for f in fields})
        self._by_name: Mapping[str, ChannelField] = MappingProxyType(by_name)
        self._by_group: Mapping[int, tuple] = MappingProxyType({g: tuple(fs) for g, fs in by_group.items()})

    @classmethod
    async def load(cls, db: DatabaseConnection) -> "FieldRepository":
        rows = await db.fetch(
            "SELECT field_id, site_id, group_id, field_name, field_label, field_type, field_order "
            "FROM channel_fields ORDER BY group_id, field_order"
        )
        repository = cls(BaseRepository._list_to_models(rows, ChannelField))
        logger.info(f"Loaded {len(repository)} custom fields")
        return repository

    def has_field(self, name: str) -> bool:
        return name in self._by_name

    def get_field(self, name: str) -> Optional[ChannelField]:
        return self._by_name.get(name)

    def get_field_id(self, name: str) -> Optional[int]:
        field = self._by_name.get(name)
        return field.field_id if field else None

    def get_fields_by_group(self, group_id: int) -> List[ChannelField]:
        return list(self._by_group.get(group_id, ()))

    def __len__(self) -> int:
        return len(self._by_id)


class CategoryRepository:
    """Category lookups by name (names may repeat across category groups)"""

    def __init__(self, categories: Iterable[Category]):
        by_name: Dict[str, List[Category]] = {}
        for category in categories:
            by_name.setdefault(category.cat_name, []).append(category)
        self._by_name: Mapping[str, tuple] = MappingProxyType({n: tuple(cs) for n, cs in by_name.items()})

    @classmethod
    async def load(cls, db: DatabaseConnection) -> "CategoryRepository":
        rows = await db.fetch("SELECT cat_id, group_id, cat_name, cat_url_title FROM categories ORDER BY cat_id")
        repository = cls(BaseRepository._list_to_models(rows, Category))
        logger.info(f"Loaded {len(rows)} categories")
        return repository

    def get_categories_by_name(self, names: Sequence[str]) -> List[Category]:
        return [category for name in names for category in self._by_name.get(name, ())]


# ============================================================================
# Entries
# ============================================================================

class EntryRepository(BaseRepository):
    """Read-only access to entries: translate, fetch, collect, hydrate"""

    def __init__(
        self,
        db: DatabaseConnection,
        translator: ParameterTranslator,
        hydrator: CollectionHydrator,
        channels: ChannelRepository,
        fields: FieldRepository,
        config: Optional[QueryConfig] = None,
    ):
        super().__init__(db)
        self.translator = translator
        self.hydrator = hydrator
        self.channels = channels
        self.fields = fields
        self.config = config or QueryConfig()

    def new_query(self) -> EntryQuery:
        """channel_titles joined with channel_data"""
        query = EntryQuery(TITLES, default_order=self.config.default_order)
        query.select_all(TITLES).select_all(DATA)
        query.join(DATA, f"{DATA}.entry_id", "=", f"{TITLES}.entry_id")
        return query

    async def get_entries(self, parameters: Mapping[str, str]) -> EntryCollection:
        """Entries matching a tag parameter map"""
        query = self.translator.apply(self.new_query(), parameters)
        return await self.fetch_collection(query)

    async def fetch_collection(self, query: EntryQuery) -> EntryCollection:
        sql, params = query.compile()
        if self.config.log_sql:
            logger.debug(f"Entries query: {sql} params={params}")

        rows = await self.db.fetch(sql, *params)
        entries = [Entry.from_row(row) for row in rows]

        collection = EntryCollection.build(entries, self.channels, self.fields)
        return await self.hydrator.hydrate(collection)

    async def find(self, entry_id: int) -> Optional[Entry]:
        collection = await self.get_entries({"entry_id": str(entry_id), "limit": "1"})
        return collection[0] if collection else None

    async def save(self, entry: Entry) -> None:
        raise UnsupportedOperationError("save")
