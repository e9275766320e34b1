"""
Registry Container - explicit dependency wiring

Builds the lookup registries, filter vocabulary, translator, hydrator
pipeline and entry repository from one database connection. Nothing is
held in module globals; each server (or test) owns its container.
"""

from typing import Callable, Optional
import time

from config import QueryConfig
from database import DatabaseConnection
from query.filters import FilterSet
from query.hydrator import CollectionHydrator, HydratorRegistry
from query.parameters import ParameterTranslator
from repositories import CategoryRepository, ChannelRepository, EntryRepository, FieldRepository


class RegistryContainer:
    """
    Container for registry and repository instances with attribute access.
    """
    def __init__(
        self,
        db: DatabaseConnection,
        channels: ChannelRepository,
        fields: FieldRepository,
        categories: Optional[CategoryRepository] = None,
        hydrators: Optional[HydratorRegistry] = None,
        config: Optional[QueryConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.db = db
        self.config = config or QueryConfig()
        self.channels = channels
        self.fields = fields
        self.categories = categories
        self.hydrators = hydrators or HydratorRegistry.default()

        self.filters = FilterSet(channels, fields, categories, clock=clock)
        self.translator = ParameterTranslator(self.filters)
        self.collection_hydrator = CollectionHydrator(self.hydrators, db, parallel=self.config.parallel_preload)
        self.entries = EntryRepository(
            db, self.translator, self.collection_hydrator, channels, fields, self.config
        )

    @classmethod
    async def load(
        cls,
        db: DatabaseConnection,
        config: Optional[QueryConfig] = None,
        hydrators: Optional[HydratorRegistry] = None,
    ) -> "RegistryContainer":
        """Load every registry from the database once"""
        channels = await ChannelRepository.load(db)
        fields = await FieldRepository.load(db)
        categories = await CategoryRepository.load(db)
        return cls(db, channels, fields, categories, hydrators=hydrators, config=config)
