from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Generic, Mapping, Optional, Type

from pydantic import BaseModel

from entity_repository.db.handle import record_to_dict
from .fields import ABSENT, Present
from .interfaces import EntityT

Converter = Callable[[Any], Any]


def _convert(value: Any, fn: Converter) -> Any:
    if isinstance(value, Present):
        return value.map(fn)
    if value is ABSENT or value is None:
        return value
    return fn(value)


class BaseMapper(Generic[EntityT]):
    """
    Declarative mapper between a pydantic entity and table columns.

    Subclasses set ``entity_class`` and, where entity field names differ from
    column keys, ``field_map`` (entity field -> column key). ``to_column`` and
    ``to_field`` hold optional per-field value converters, keyed by entity
    field name. Converters never see ``None``; tagged ``Present`` values are
    converted inside the tag.

    Example:
        class UserMapper(BaseMapper[User]):
            entity_class = User
            field_map = {"email": "email_address"}
            to_column = {"status": lambda s: s.value}
            to_field = {"status": UserStatus}
    """

    entity_class: ClassVar[Type[BaseModel]]
    field_map: ClassVar[Dict[str, str]] = {}
    to_column: ClassVar[Dict[str, Converter]] = {}
    to_field: ClassVar[Dict[str, Converter]] = {}

    def __init__(self) -> None:
        self._column_map = {column: field for field, column in self.field_map.items()}

    # PUBLIC_INTERFACE
    def to_database(self, entity_fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Rename entity fields to column keys and convert their values."""
        record: Dict[str, Any] = {}
        for name, value in entity_fields.items():
            convert = self.to_column.get(name)
            if convert is not None:
                value = _convert(value, convert)
            record[self.field_map.get(name, name)] = value
        return record

    # PUBLIC_INTERFACE
    def to_entity(self, record: Any) -> Optional[EntityT]:
        """Build a hydrated entity from an ORM instance or column dict; None stays None."""
        if record is None:
            return None
        known = self.entity_class.model_fields
        fields: Dict[str, Any] = {}
        for column, value in record_to_dict(record).items():
            name = self._column_map.get(column, column)
            if name not in known:
                continue
            convert = self.to_field.get(name)
            fields[name] = _convert(value, convert) if convert is not None else value
        return self.create_entity(fields, hydrated=True)

    # PUBLIC_INTERFACE
    def create_entity(self, fields: Mapping[str, Any], hydrated: bool = False) -> EntityT:
        """
        Construct an entity.

        Hydrated entities come from the store and are built without validation;
        anything else goes through ``model_validate``.
        """
        if hydrated:
            return self.entity_class.model_construct(**dict(fields))  # type: ignore[return-value]
        return self.entity_class.model_validate(dict(fields))  # type: ignore[return-value]
