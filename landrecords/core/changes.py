"""Typed field-level diff carried by approval workflows.

Persisted wire shape (JSON column)::

    {"registered_owner": {"oldValue": "Alice", "newValue": "Bob",
                          "fieldName": "Registered Owner"}}

The map key is authoritative; ``fieldName`` inside an entry is a display
label only. Values are a closed variant: str, int, float, bool, datetime or
None.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, RootModel, StrictBool, StrictFloat, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

# bool first so True never degrades to 1
FieldValue = Optional[Union[StrictBool, StrictInt, StrictFloat, datetime, StrictStr]]


class FieldChange(BaseModel):
    """Old and new value for one field."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    old_value: FieldValue = None
    new_value: FieldValue = None
    field_name: Optional[str] = None


class ProposedChanges(RootModel[Dict[str, FieldChange]]):
    """Mapping of target field name to ``FieldChange``."""

    def __iter__(self) -> Iterator[Tuple[str, FieldChange]]:  # type: ignore[override]
        return iter(self.root.items())

    def __len__(self) -> int:
        return len(self.root)

    def keys(self):
        return self.root.keys()

    def to_wire(self) -> Dict[str, Dict[str, Any]]:
        """JSON-safe dict in the persisted camelCase shape."""
        return {
            name: change.model_dump(mode="json", by_alias=True)
            for name, change in self.root.items()
        }

    @classmethod
    def from_wire(cls, data: Optional[Dict[str, Any]]) -> "ProposedChanges":
        return cls.model_validate(data or {})


def humanize_field(field: str) -> str:
    """``registered_owner`` / ``registeredOwner`` -> ``Registered Owner``."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", field).replace("_", " ")
    return " ".join(word.capitalize() for word in spaced.split())


def stringify_value(value: Any) -> Optional[str]:
    """Deterministic, null-safe text form used for change-history rows."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def values_are_equal(old_value: Any, new_value: Any) -> bool:
    """Equality used when diffing a requested update against a record.

    None and "" are treated as the same empty value, numbers compare by
    magnitude regardless of int/float/str form, and strings ignore
    surrounding whitespace.
    """
    if old_value is None or old_value == "":
        return new_value is None or new_value == ""
    if new_value is None:
        return False

    if isinstance(old_value, bool) or isinstance(new_value, bool):
        return isinstance(old_value, bool) and isinstance(new_value, bool) and old_value == new_value

    if isinstance(old_value, (int, float)) or isinstance(new_value, (int, float)):
        old_num, new_num = _as_number(old_value), _as_number(new_value)
        if old_num is not None and new_num is not None:
            return old_num == new_num

    if isinstance(old_value, str) and isinstance(new_value, str):
        return old_value.strip() == new_value.strip()

    return old_value == new_value
