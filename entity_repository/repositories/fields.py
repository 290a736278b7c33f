"""
Tagged field values for partial writes.

A partial update has to tell "set this column to NULL" apart from "leave this
column alone". Values headed for a restricted update are wrapped in
``Present`` before they reach the mapper, so a mapper that drops ``None``
entries still carries ``Present(None)`` through; anything the mapper emits as
``ABSENT`` is left out of the write.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Union


@dataclass(frozen=True)
class Present:
    """A field that takes part in the write, possibly with a null value."""
    value: Any

    def map(self, fn: Callable[[Any], Any]) -> "Present":
        """Apply ``fn`` to a non-null value, keeping the tag."""
        if self.value is None:
            return self
        return Present(fn(self.value))


class _Absent:
    """Singleton marker for a field that is not part of the write."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()

FieldValue = Union[Present, _Absent]


# PUBLIC_INTERFACE
def present_fields(values: Mapping[str, Any]) -> Dict[str, Present]:
    """Wrap every value (``None`` included) as ``Present``."""
    return {name: Present(value) for name, value in values.items()}


# PUBLIC_INTERFACE
def resolve_fields(values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Unwrap mapper output back to plain column values.

    ``Present(x)`` becomes ``x`` (so ``Present(None)`` becomes a real null),
    ``ABSENT`` entries are dropped and untagged values pass through unchanged.
    """
    resolved: Dict[str, Any] = {}
    for key, value in values.items():
        if value is ABSENT:
            continue
        resolved[key] = value.value if isinstance(value, Present) else value
    return resolved
