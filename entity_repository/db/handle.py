"""
SQLAlchemy-backed persistence handle.

``ModelHandle`` exposes the store primitives a repository needs for one
declarative model. It is built once per model and keeps no session of its own:
every primitive opens a short-lived ``AsyncSession`` from the factory it was
given and commits before returning, so one handle can serve concurrent callers.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from sqlalchemy import Select, delete, func, inspect, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from entity_repository.core.options import FindOptions
from .base import SOFT_DELETE_COLUMN

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


# PUBLIC_INTERFACE
def record_to_dict(record: Any) -> Dict[str, Any]:
    """Return the column values of an ORM instance (or a copy of a mapping)."""
    if isinstance(record, Mapping):
        return dict(record)
    state = inspect(record)
    return {attr.key: getattr(record, attr.key) for attr in state.mapper.column_attrs}


class BuiltRecord:
    """
    A transient record produced by ``ModelHandle.build``.

    ``is_new_record`` decides whether ``save`` inserts or overwrites the row
    identified by the primary key in ``values``.
    """

    def __init__(self, handle: "ModelHandle", values: Mapping[str, Any], is_new_record: bool) -> None:
        self.handle = handle
        self.values = dict(values)
        self.is_new_record = is_new_record

    async def save(self) -> Any:
        """Insert or update the row and return the refreshed ORM instance."""
        model = self.handle.model
        async with self.handle.session_maker() as session:
            if self.is_new_record:
                record = model(**self.values)
                session.add(record)
            else:
                record = await session.merge(model(**self.values))
            await session.flush()
            # Pull server-generated keys and timestamps into the instance.
            await session.refresh(record)
            # Detached before commit so expire_on_commit cannot expire it.
            session.expunge(record)
            await session.commit()
        return record

    async def destroy(self, force: bool = False) -> int:
        """Delete this row; soft-deletes on paranoid models unless ``force``."""
        if self.is_new_record:
            logger.debug("destroy on unsaved %s record skipped", self.handle.table_name)
            return 0
        where = {key: self.values.get(key) for key in self.handle.primary_keys}
        return await self.handle.destroy(where, force=force)


class ModelHandle:
    """Store primitives for one SQLAlchemy declarative model."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], model: Type[Any]) -> None:
        self.session_maker = session_maker
        self.model = model
        self._mapper = inspect(model)
        self._columns = {attr.key: attr for attr in self._mapper.column_attrs}
        self._primary_keys = tuple(
            self._mapper.get_property_by_column(column).key
            for column in self._mapper.primary_key
        )

    @property
    def primary_keys(self) -> Tuple[str, ...]:
        """Primary-key attribute names in the table's constraint order."""
        return self._primary_keys

    @property
    def table_name(self) -> str:
        return self._mapper.local_table.name

    @property
    def paranoid(self) -> bool:
        """True when the model maps a soft-delete column."""
        return SOFT_DELETE_COLUMN in self._columns

    def column(self, key: str):
        """Return the mapped attribute for ``key`` or raise ValueError."""
        if key not in self._columns:
            raise ValueError(f"Unknown column {key!r} for table {self.table_name!r}")
        return getattr(self.model, key)

    def _criteria(self, where: Mapping[str, Any]) -> List[ColumnElement[bool]]:
        clauses: List[ColumnElement[bool]] = []
        for key, value in where.items():
            col = self.column(key)
            if value is None:
                clauses.append(col.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(col.in_(list(value)))
            else:
                clauses.append(col == value)
        return clauses

    def _scoped_criteria(self, where: Mapping[str, Any], paranoid: bool) -> List[ColumnElement[bool]]:
        clauses = self._criteria(where)
        if paranoid and self.paranoid:
            clauses.append(self.column(SOFT_DELETE_COLUMN).is_(None))
        return clauses

    def _writable(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Drop None for columns the store (or SQLAlchemy) fills in itself."""
        writable: Dict[str, Any] = {}
        for key, value in values.items():
            if value is None and key in self._columns:
                column = self._columns[key].columns[0]
                if column.primary_key or column.server_default is not None or column.default is not None:
                    continue
            writable[key] = value
        return writable

    def _select(self, options: FindOptions) -> Select:
        stmt = select(self.model).where(*self._scoped_criteria(options.where, options.paranoid))
        for key in options.order_by:
            col = self.column(key.lstrip("-"))
            stmt = stmt.order_by(col.desc() if key.startswith("-") else col.asc())
        if options.offset is not None:
            stmt = stmt.offset(options.offset)
        if options.limit is not None:
            stmt = stmt.limit(options.limit)
        return stmt

    # PUBLIC_INTERFACE
    def build(self, values: Mapping[str, Any], is_new_record: bool) -> BuiltRecord:
        """Wrap record values in a transient instance that can save or destroy itself."""
        return BuiltRecord(self, self._writable(values), is_new_record)

    # PUBLIC_INTERFACE
    async def find_one(self, options: FindOptions) -> Any:
        """Return the first matching record, or None."""
        stmt = self._select(options).limit(1)
        async with self.session_maker() as session:
            result = await session.execute(stmt)
            record = result.scalars().first()
        if record is None:
            return None
        return record_to_dict(record) if options.raw else record

    # PUBLIC_INTERFACE
    async def find_all(self, options: FindOptions) -> List[Any]:
        """Return every matching record."""
        async with self.session_maker() as session:
            result = await session.execute(self._select(options))
            records = list(result.scalars().all())
        if options.raw:
            return [record_to_dict(record) for record in records]
        return records

    # PUBLIC_INTERFACE
    async def count(self, where: Mapping[str, Any], paranoid: bool = True) -> int:
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(*self._scoped_criteria(where, paranoid))
        )
        async with self.session_maker() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    # PUBLIC_INTERFACE
    async def update(
        self, values: Mapping[str, Any], where: Mapping[str, Any], fields: Sequence[str]
    ) -> int:
        """
        Write ``values`` restricted to ``fields`` to every live row matching
        ``where``. Returns the affected row count.
        """
        payload = {key: values[key] for key in fields if key in values}
        if not payload:
            return 0
        for key in payload:
            self.column(key)
        stmt = (
            update(self.model)
            .where(*self._scoped_criteria(where, paranoid=True))
            .values(**payload)
            .execution_options(synchronize_session=False)
        )
        async with self.session_maker() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount

    # PUBLIC_INTERFACE
    async def destroy(self, where: Mapping[str, Any], force: bool = False) -> int:
        """
        Remove every row matching ``where``.

        Paranoid models get ``deleted_at`` stamped on live rows instead, unless
        ``force`` is set.
        """
        if self.paranoid and not force:
            stmt = (
                update(self.model)
                .where(*self._scoped_criteria(where, paranoid=True))
                .values({SOFT_DELETE_COLUMN: func.now()})
                .execution_options(synchronize_session=False)
            )
        else:
            stmt = (
                delete(self.model)
                .where(*self._criteria(where))
                .execution_options(synchronize_session=False)
            )
        async with self.session_maker() as session:
            result = await session.execute(stmt)
            await session.commit()
        logger.debug(
            "destroyed %s row(s) in %s (soft=%s)",
            result.rowcount,
            self.table_name,
            self.paranoid and not force,
        )
        return result.rowcount

    # PUBLIC_INTERFACE
    async def upsert(
        self,
        insert_values: Mapping[str, Any],
        update_values: Mapping[str, Any],
        where: Mapping[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        Insert a row, or update it when it conflicts on the columns named by
        ``where``. Returns the resulting row, or None when an empty
        ``update_values`` turned the conflict into a no-op.
        """
        table = self._mapper.local_table
        async with self.session_maker() as session:
            dialect = session.get_bind().dialect.name
            insert_fn = _UPSERT_DIALECTS.get(dialect)
            if insert_fn is None:
                raise NotImplementedError(f"upsert is not supported for dialect {dialect!r}")
            stmt = insert_fn(table).values({**where, **insert_values})
            if update_values:
                stmt = stmt.on_conflict_do_update(index_elements=list(where), set_=dict(update_values))
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=list(where))
            result = await session.execute(stmt.returning(*table.columns))
            row = result.mappings().first()
            await session.commit()
        return dict(row) if row is not None else None
