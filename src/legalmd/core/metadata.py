"""Typed front matter values: a tagged Value tree built once from parsed YAML"""

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


class ValueKind(str, Enum):
    string  = "string"
    number  = "number"
    boolean = "boolean"
    null    = "null"
    date    = "date"
    array   = "array"
    map     = "map"


@dataclass(frozen=True)
class Value:
    """Tagged union over YAML data. `data` is a list[Value] for arrays, dict[str, Value] for maps."""
    kind: ValueKind
    data: Any

    @classmethod
    def of(cls, raw: Any) -> "Value":
        """Infer the kind of a plain Python value (as returned by yaml.safe_load)."""
        if isinstance(raw, Value):
            return raw
        if raw is None:
            return cls(ValueKind.null, None)
        # bool before int: bool is an int subclass
        if isinstance(raw, bool):
            return cls(ValueKind.boolean, raw)
        if isinstance(raw, (int, float)):
            return cls(ValueKind.number, raw)
        if isinstance(raw, (datetime.date, datetime.datetime)):
            return cls(ValueKind.date, raw)
        if isinstance(raw, dict):
            return cls(ValueKind.map, {str(k): cls.of(v) for k, v in raw.items()})
        if isinstance(raw, (list, tuple)):
            return cls(ValueKind.array, [cls.of(v) for v in raw])
        return cls(ValueKind.string, str(raw))

    def to_plain(self) -> Any:
        if self.kind == ValueKind.map:
            return {k: v.to_plain() for k, v in self.data.items()}
        if self.kind == ValueKind.array:
            return [v.to_plain() for v in self.data]
        return self.data


class MetadataTree:
    """Immutable-by-convention mapping of top-level keys to Values with dotted-path lookup."""

    def __init__(self, values: dict[str, Value] = None):
        self._values: dict[str, Value] = dict(values or {})

    @classmethod
    def from_plain(cls, data: dict[str, Any] | None) -> "MetadataTree":
        return cls({str(k): Value.of(v) for k, v in (data or {}).items()})

    def value(self, path: str) -> Value | None:
        """Return the Value at a dotted path ('client.name'), or None when absent."""
        if path in self._values:
            return self._values[path]
        current = Value(ValueKind.map, self._values)
        for part in path.split("."):
            if current.kind == ValueKind.map and part in current.data:
                current = current.data[part]
            elif current.kind == ValueKind.array and part.isdigit() and int(part) < len(current.data):
                current = current.data[int(part)]
            else:
                return None
        return current

    def get(self, path: str, default: Any = None) -> Any:
        v = self.value(path)
        return default if v is None else v.to_plain()

    def kind(self, path: str) -> ValueKind | None:
        v = self.value(path)
        return v.kind if v is not None else None

    def items(self) -> Iterator[tuple[str, Value]]:
        return iter(self._values.items())

    def to_plain(self) -> dict[str, Any]:
        return {k: v.to_plain() for k, v in self._values.items()}

    def __contains__(self, path: str) -> bool:
        return self.value(path) is not None

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        return isinstance(other, MetadataTree) and self._values == other._values

    def __repr__(self) -> str:
        return f"MetadataTree({self.to_plain()!r})"


def lookup(data: dict[str, Any], path: str, default: Any = None) -> Any:
    """Resolve a dotted path against plain metadata; default when any segment is missing."""
    if path in data:
        return data[path]
    current: Any = data
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return default
    return current


def format_value(value: Any) -> str:
    """Render a metadata value as inline document text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ", ".join(format_value(v) for v in value)
    return str(value)
