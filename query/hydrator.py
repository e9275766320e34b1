"""
Collection Hydrator

Converts raw custom-field columns into typed values in two phases:

1. preload: once per distinct fieldtype in the collection, each hydrator
   fetches whatever auxiliary data it needs for every entry at once
   (one batch query, never one per entry)
2. hydrate: for each entry, each hydrator sets the typed values of its
   fields on the entry

Preloads read disjoint data and may run concurrently; no entry is hydrated
until every preload has finished.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

from models import ChannelField, Entry

from .collection import EntryCollection

if TYPE_CHECKING:
    from database import DatabaseConnection

logger = logging.getLogger(__name__)


class Hydrator:
    """
    Base hydrator for one fieldtype.

    Subclasses override preload() to batch-fetch auxiliary data and
    convert() to turn a raw value into a typed one.
    """

    def __init__(self, db: "DatabaseConnection", collection: EntryCollection, fields: Sequence[ChannelField]):
        self.db = db
        self.collection = collection
        self.fields = list(fields)

    async def preload(self, entry_ids: Sequence[int]) -> None:
        """Fetch auxiliary data for all entries. No-op by default."""

    def convert(self, entry: Entry, field: ChannelField, value: Any) -> Any:
        return value

    def fields_for(self, entry: Entry) -> list[ChannelField]:
        """This hydrator's fields that belong to the entry's field group"""
        if entry.channel is None:
            return []
        return [f for f in self.fields if f.group_id == entry.channel.field_group]

    def hydrate(self, entry: Entry) -> None:
        for field in self.fields_for(entry):
            entry.set_custom_field(field.field_name, self.convert(entry, field, entry.raw_value(field.field_id)))


HydratorFactory = Callable[["DatabaseConnection", EntryCollection, Sequence[ChannelField]], Hydrator]


class HydratorRegistry:
    """Maps fieldtype identifiers to hydrator factories."""

    def __init__(self, fallback: Optional[HydratorFactory] = None):
        self._factories: dict[str, HydratorFactory] = {}
        self.fallback = fallback

    def register(self, fieldtype: str, factory: HydratorFactory) -> None:
        self._factories[fieldtype] = factory

    def create(
        self,
        fieldtype: str,
        db: "DatabaseConnection",
        collection: EntryCollection,
        fields: Sequence[ChannelField],
    ) -> Optional[Hydrator]:
        factory = self._factories.get(fieldtype)
        if factory is None:
            if self.fallback is None:
                logger.warning(f"No hydrator registered for fieldtype '{fieldtype}'")
                return None
            logger.debug(f"Using fallback hydrator for fieldtype '{fieldtype}'")
            factory = self.fallback
        return factory(db, collection, fields)

    @classmethod
    def default(cls) -> "HydratorRegistry":
        """Registry with the built-in fieldtypes"""
        from .fieldtypes import register_builtin_hydrators, TextHydrator

        registry = cls(fallback=TextHydrator)
        register_builtin_hydrators(registry)
        return registry


class CollectionHydrator:
    """Drives preload then per-entry hydration for a collection."""

    def __init__(self, registry: HydratorRegistry, db: "DatabaseConnection", parallel: bool = True):
        self.registry = registry
        self.db = db
        self.parallel = parallel

    def hydrators_for(self, collection: EntryCollection) -> list[Hydrator]:
        """One hydrator per distinct fieldtype, in field-set order"""
        hydrators = []
        for fieldtype in collection.fieldtypes:
            hydrator = self.registry.create(fieldtype, self.db, collection, collection.fields_of_type(fieldtype))
            if hydrator is not None:
                hydrators.append(hydrator)
        return hydrators

    async def preload(self, hydrators: Sequence[Hydrator], entry_ids: Sequence[int]) -> None:
        if self.parallel:
            await asyncio.gather(*(hydrator.preload(entry_ids) for hydrator in hydrators))
        else:
            for hydrator in hydrators:
                await hydrator.preload(entry_ids)

    async def hydrate(self, collection: EntryCollection) -> EntryCollection:
        if not collection:
            return collection

        hydrators = self.hydrators_for(collection)

        await self.preload(hydrators, collection.entry_ids)

        for entry in collection:
            for hydrator in hydrators:
                hydrator.hydrate(entry)
            entry.mark_hydrated()

        logger.debug(f"Hydrated {len(collection)} entries with {len(hydrators)} hydrators")
        return collection
