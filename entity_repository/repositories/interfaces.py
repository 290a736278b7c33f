"""
Collaborator contracts for repositories.

A repository talks to exactly two collaborators: a persistence handle bound to
one table and a mapper that translates between entities and records. Both are
structural protocols; ``entity_repository.db.handle.ModelHandle`` and
``entity_repository.repositories.mapper.BaseMapper`` are the shipped
implementations.
"""
from __future__ import annotations

from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    TypeVar,
    runtime_checkable,
)

from entity_repository.core.options import FindOptions

EntityT = TypeVar("EntityT")


@runtime_checkable
class HandleInstance(Protocol):
    """A transient record built by ``PersistenceHandle.build``."""

    async def save(self) -> Any:
        """Insert or fully update the record; return the stored record."""
        ...

    async def destroy(self, force: bool = False) -> int:
        """Delete (or soft-delete) the record; return the affected row count."""
        ...


@runtime_checkable
class PersistenceHandle(Protocol):
    """Store primitives for one table."""

    @property
    def primary_keys(self) -> Tuple[str, ...]:
        ...

    @property
    def table_name(self) -> str:
        ...

    def build(self, values: Mapping[str, Any], is_new_record: bool) -> HandleInstance:
        ...

    async def find_one(self, options: FindOptions) -> Any:
        ...

    async def find_all(self, options: FindOptions) -> List[Any]:
        ...

    async def count(self, where: Mapping[str, Any], paranoid: bool = True) -> int:
        ...

    async def update(
        self, values: Mapping[str, Any], where: Mapping[str, Any], fields: Sequence[str]
    ) -> int:
        ...

    async def destroy(self, where: Mapping[str, Any], force: bool = False) -> int:
        ...

    async def upsert(
        self,
        insert_values: Mapping[str, Any],
        update_values: Mapping[str, Any],
        where: Mapping[str, Any],
    ) -> Any:
        ...


@runtime_checkable
class Mapper(Protocol[EntityT]):
    """Bidirectional entity <-> record translation plus an entity constructor."""

    def to_database(self, entity_fields: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    def to_entity(self, record: Any) -> Optional[EntityT]:
        ...

    def create_entity(self, fields: Mapping[str, Any], hydrated: bool = False) -> EntityT:
        ...


class Repository(Protocol[EntityT]):
    """Operation surface every repository provides."""

    @property
    def primary_key_name(self) -> Optional[str]:
        ...

    def has_primary_key_filled(self, entity: Any) -> bool:
        ...

    async def save(self, entity: EntityT) -> EntityT:
        ...

    async def update(
        self,
        entity: EntityT,
        fields: Sequence[str],
        relationship_fields: Optional[Mapping[str, Any]] = None,
        where_fields: Sequence[str] = (),
    ) -> EntityT:
        ...

    async def update_fields(
        self,
        entity: EntityT,
        new_fields: Mapping[str, Any],
        relationship_fields: Optional[Mapping[str, Any]] = None,
        where_fields: Sequence[str] = (),
    ) -> EntityT:
        ...

    async def update_by_diff(
        self,
        original: EntityT,
        updated: EntityT,
        relationship_fields: Optional[Mapping[str, Any]] = None,
    ) -> EntityT:
        ...

    async def upsert(
        self,
        insert_values: Mapping[str, Any],
        update_values: Mapping[str, Any],
        where: Mapping[str, Any],
    ) -> Any:
        ...

    async def delete(self, entity: EntityT, force: bool = False) -> int:
        ...

    async def delete_all_by_criterias(self, where: Mapping[str, Any], force: bool = False) -> int:
        ...

    async def find_one_by(self, options: FindOptions) -> Optional[EntityT]:
        ...

    async def find_one_by_id(self, id: Any) -> Optional[EntityT]:
        ...

    async def find_one_by_criterias(self, where: Mapping[str, Any]) -> Optional[EntityT]:
        ...

    async def find_all_by(self, options: FindOptions) -> List[EntityT]:
        ...

    async def find_all_by_criterias(
        self, where: Mapping[str, Any], paranoid: bool = True
    ) -> List[EntityT]:
        ...

    async def count_by_criterias(self, where: Mapping[str, Any]) -> int:
        ...


__all__ = [
    "EntityT",
    "FindOptions",
    "HandleInstance",
    "Mapper",
    "PersistenceHandle",
    "Repository",
]
