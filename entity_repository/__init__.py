"""
Generic async repository layer over SQLAlchemy.

Repositories translate entities through a mapper and delegate storage to a
persistence handle bound to one table.
"""
from .core.options import FindOptions
from .db.handle import ModelHandle
from .repositories import (
    ABSENT,
    BaseMapper,
    BaseRepository,
    Mapper,
    PersistenceHandle,
    Present,
    Repository,
)

__all__ = [
    "ABSENT",
    "BaseMapper",
    "BaseRepository",
    "FindOptions",
    "Mapper",
    "ModelHandle",
    "PersistenceHandle",
    "Present",
    "Repository",
]
