"""
Database package initializer exposing key public interfaces for configuration,
engine/session management, declarative bases and the model handle.
"""

from .base import Base, IntegerPkMixin, SoftDeleteMixin, TimestampMixin, SOFT_DELETE_COLUMN
from .config import get_settings, Settings
from entity_repository.core.options import FindOptions
from .handle import BuiltRecord, ModelHandle, record_to_dict
from .session import (
    dispose_engine,
    get_async_session,
    get_engine,
    get_session_maker,
    make_session_maker,
)

__all__ = [
    "Base",
    "IntegerPkMixin",
    "SoftDeleteMixin",
    "TimestampMixin",
    "SOFT_DELETE_COLUMN",
    "Settings",
    "get_settings",
    "BuiltRecord",
    "FindOptions",
    "ModelHandle",
    "record_to_dict",
    "dispose_engine",
    "get_async_session",
    "get_engine",
    "get_session_maker",
    "make_session_maker",
]
