"""
Repository layer for data access.

BaseRepository supplies the default CRUD/query operations; concrete
repositories subclass it per entity type and add their own queries.
"""
from .base import BaseRepository
from .fields import ABSENT, Present
from .interfaces import HandleInstance, Mapper, PersistenceHandle, Repository
from .mapper import BaseMapper

__all__ = [
    "ABSENT",
    "BaseMapper",
    "BaseRepository",
    "HandleInstance",
    "Mapper",
    "PersistenceHandle",
    "Present",
    "Repository",
]
