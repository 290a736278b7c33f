from __future__ import annotations

import dataclasses
from typing import Any, Dict, Mapping, MutableMapping

from pydantic import BaseModel


def entity_fields(entity: Any) -> Dict[str, Any]:
    """Return the top-level fields of an entity as a new dict (shallow)."""
    if entity is None:
        return {}
    if isinstance(entity, BaseModel):
        values = {name: getattr(entity, name) for name in type(entity).model_fields}
        if entity.model_extra:
            values.update(entity.model_extra)
        return values
    if isinstance(entity, Mapping):
        return dict(entity)
    if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        return {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)}
    raise TypeError(f"Unsupported entity type: {type(entity).__name__}")


def get_field(entity: Any, name: str) -> Any:
    """Read one field; a missing field reads as None."""
    if isinstance(entity, Mapping):
        return entity.get(name)
    return getattr(entity, name, None)


def set_field(entity: Any, name: str, value: Any) -> None:
    """Assign one field in place."""
    if isinstance(entity, MutableMapping):
        entity[name] = value
    else:
        setattr(entity, name, value)
