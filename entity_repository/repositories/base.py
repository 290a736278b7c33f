from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Generic, List, Mapping, Optional, Sequence, Tuple, TypeVar

from entity_repository.core.logging import repository_context
from entity_repository.core.options import FindOptions
from .entities import entity_fields, get_field, set_field
from .fields import present_fields, resolve_fields
from .interfaces import EntityT, Mapper, PersistenceHandle

logger = logging.getLogger(__name__)

_R = TypeVar("_R")


def _operation(fn: Callable[..., Awaitable[_R]]) -> Callable[..., Awaitable[_R]]:
    """Run a repository coroutine with the repository name bound to log records."""

    @wraps(fn)
    async def wrapper(self: "BaseRepository[Any]", *args: Any, **kwargs: Any) -> _R:
        with repository_context(type(self).__name__):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("%s on %s", fn.__name__, self.handle.table_name)
            return await fn(self, *args, **kwargs)

    return wrapper


class BaseRepository(Generic[EntityT]):
    """
    Default repository implementation over a persistence handle and a mapper.

    Entity-shaped arguments are translated through the mapper, the I/O is
    delegated to the handle, and results come back as entities. Concrete
    repositories subclass this to add or override named operations; they can
    call the built-in operations through ``self``.

    Class attributes:
        primary_key: entity field holding the primary key. When unset, the
            first of ``handle.primary_keys`` is used.
        timestamp_fields: store-managed fields that ``save`` always takes from
            the stored row when it has a value for them.

    Example:
        class UserRepository(BaseRepository[User]):
            primary_key = "id"

            async def find_by_email(self, email: str) -> Optional[User]:
                return await self.find_one_by_criterias({"email_address": email})
    """

    primary_key: Optional[str] = None
    timestamp_fields: Tuple[str, ...] = ("created_at", "updated_at")

    def __init__(self, handle: PersistenceHandle, mapper: Mapper[EntityT]) -> None:
        self.handle = handle
        self.mapper = mapper
        self._primary_key_name = self._resolve_primary_key()

    def _resolve_primary_key(self) -> Optional[str]:
        if self.primary_key:
            return self.primary_key
        keys = tuple(self.handle.primary_keys or ())
        if not keys:
            logger.warning(
                "%s: table %s declares no primary key; key-based operations cannot target a row",
                type(self).__name__,
                self.handle.table_name,
            )
            return None
        if len(keys) > 1:
            logger.warning(
                "%s: table %s has composite primary key %s; using %r. Declare primary_key to choose explicitly",
                type(self).__name__,
                self.handle.table_name,
                keys,
                keys[0],
            )
        return keys[0]

    @property
    def primary_key_name(self) -> Optional[str]:
        return self._primary_key_name

    def _require_primary_key(self, operation: str) -> str:
        if not self._primary_key_name:
            raise ValueError(
                f"{type(self).__name__}.{operation} needs a primary key; "
                f"table {self.handle.table_name!r} declares none"
            )
        return self._primary_key_name

    def has_primary_key_filled(self, entity: Any) -> bool:
        """An entity counts as persisted iff its primary-key field is truthy."""
        if entity is None or not self._primary_key_name:
            return False
        return bool(get_field(entity, self._primary_key_name))

    # CREATE / UPDATE

    @_operation
    async def save(self, entity: EntityT) -> EntityT:
        """
        Insert the entity, or overwrite its row when the primary key is filled.

        The returned entity keeps every caller-supplied field and takes the
        primary key and timestamps from the stored row.
        """
        is_new_record = not self.has_primary_key_filled(entity)
        logger.debug("save branch: %s", "insert" if is_new_record else "update")
        values = self.mapper.to_database(entity_fields(entity))
        record = await self.handle.build(values, is_new_record=is_new_record).save()
        return self._merge_saved(entity, record)

    def _merge_saved(self, entity: EntityT, record: Any) -> EntityT:
        saved = entity_fields(self.mapper.to_entity(record))
        generated = {
            name: saved[name]
            for name in (self._primary_key_name, *self.timestamp_fields)
            if name and saved.get(name)
        }
        merged = {**saved, **entity_fields(entity), **generated}
        return self.mapper.create_entity(merged, hydrated=True)

    @_operation
    async def update(
        self,
        entity: EntityT,
        fields: Sequence[str],
        relationship_fields: Optional[Mapping[str, Any]] = None,
        where_fields: Sequence[str] = (),
    ) -> EntityT:
        """
        Write only ``fields`` of ``entity`` to its row.

        ``relationship_fields`` are store-native columns written as-is (foreign
        keys and the like). ``where_fields`` add entity fields to the match
        criteria beside the primary key. Returns ``entity`` unchanged.
        """
        primary_key = self._require_primary_key("update")
        wrapped = present_fields({name: get_field(entity, name) for name in fields})
        column_values = resolve_fields(self.mapper.to_database(wrapped))
        column_values.update(relationship_fields or {})

        key_values: Dict[str, Any] = {primary_key: get_field(entity, primary_key)}
        for name in where_fields:
            key_values[name] = get_field(entity, name)
        where = resolve_fields(self.mapper.to_database(present_fields(key_values)))

        logger.debug("update columns %s where %s", sorted(column_values), sorted(map(str, where)))
        await self.handle.update(column_values, where=where, fields=list(column_values))
        return entity

    @_operation
    async def update_fields(
        self,
        entity: EntityT,
        new_fields: Mapping[str, Any],
        relationship_fields: Optional[Mapping[str, Any]] = None,
        where_fields: Sequence[str] = (),
    ) -> EntityT:
        """
        Assign ``new_fields`` onto ``entity`` in place, then write just those fields.

        ``new_fields`` must name fields the entity accepts; a pydantic entity
        raises ``ValueError`` for anything else. Columns that are not entity
        fields go in ``relationship_fields``.
        """
        self._require_primary_key("update_fields")
        for name, value in new_fields.items():
            set_field(entity, name, value)
        return await self.update(entity, list(new_fields), relationship_fields, where_fields)

    @_operation
    async def update_by_diff(
        self,
        original: EntityT,
        updated: EntityT,
        relationship_fields: Optional[Mapping[str, Any]] = None,
    ) -> EntityT:
        """
        Write the top-level fields of ``original`` whose value differs on
        ``updated``. Comparison is shallow. Nothing differs: no write, and
        ``original`` is returned.
        """
        changed = [
            name
            for name, value in entity_fields(original).items()
            if value != get_field(updated, name)
        ]
        if not changed:
            logger.debug("update_by_diff found no changed fields; skipping write")
            return original
        return await self.update(updated, changed, relationship_fields)

    @_operation
    async def upsert(
        self,
        insert_values: Mapping[str, Any],
        update_values: Mapping[str, Any],
        where: Mapping[str, Any],
    ) -> Any:
        """Store-native insert-or-update; values are column keys, not entity fields."""
        return await self.handle.upsert(insert_values, update_values, where)

    # DELETE

    @_operation
    async def delete(self, entity: EntityT, force: bool = False) -> int:
        is_new_record = not self.has_primary_key_filled(entity)
        values = self.mapper.to_database(entity_fields(entity))
        return await self.handle.build(values, is_new_record=is_new_record).destroy(force=force)

    @_operation
    async def delete_all_by_criterias(self, where: Mapping[str, Any], force: bool = False) -> int:
        return await self.handle.destroy(where, force=force)

    # READ

    @_operation
    async def find_one_by(self, options: Optional[FindOptions] = None) -> Optional[EntityT]:
        record = await self.handle.find_one(options or FindOptions())
        return self.mapper.to_entity(record)

    async def find_one_by_id(self, id: Any) -> Optional[EntityT]:
        primary_key = self._require_primary_key("find_one_by_id")
        return await self.find_one_by(FindOptions(where={primary_key: id}, raw=True))

    async def find_one_by_criterias(self, where: Mapping[str, Any]) -> Optional[EntityT]:
        return await self.find_one_by(FindOptions(where=dict(where), raw=True))

    @_operation
    async def find_all_by(self, options: Optional[FindOptions] = None) -> List[EntityT]:
        records = await self.handle.find_all(options or FindOptions())
        return [self.mapper.to_entity(record) for record in records]

    async def find_all_by_criterias(
        self, where: Mapping[str, Any], paranoid: bool = True
    ) -> List[EntityT]:
        """Find all rows matching ``where``; ``paranoid=False`` includes soft-deleted rows."""
        return await self.find_all_by(FindOptions(where=dict(where), raw=True, paranoid=paranoid))

    @_operation
    async def count_by_criterias(self, where: Mapping[str, Any]) -> int:
        return await self.handle.count(where)
