"""
Entry Query Engine

Translates tag parameters into a composed entry query and hydrates the
resulting entries' custom fields in bulk.
"""

from .builder import EntryQuery, Condition
from .filters import FilterCall, FilterOp, FilterSet
from .parameters import PARAMETERS, ParameterDef, ParameterTranslator
from .collection import EntryCollection
from .hydrator import CollectionHydrator, Hydrator, HydratorRegistry

__all__ = [
    'EntryQuery',
    'Condition',
    'FilterCall',
    'FilterOp',
    'FilterSet',
    'PARAMETERS',
    'ParameterDef',
    'ParameterTranslator',
    'EntryCollection',
    'CollectionHydrator',
    'Hydrator',
    'HydratorRegistry',
]
