from typing import Any, TypeAlias, cast
import json as basejson
from dataclasses import is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path

TJSON: TypeAlias = None | int | float | bool | str | list[Any] | dict[str, Any]


def asPrimitive(value: Any) -> Any:
	"""Converts the given value to a primitive value, that can be converted
	to JSON"""
	if value is None or type(value) in (bool, float, int, str):
		return value
	elif isinstance(value, tuple) and hasattr(value, "_fields"):
		return {k: asPrimitive(getattr(value, k)) for k in value._fields}
	elif isinstance(value, (list, tuple, set)):
		return [asPrimitive(v) for v in value]
	elif isinstance(value, dict):
		return {str(k): asPrimitive(v) for k, v in value.items()}
	elif is_dataclass(value) and not isinstance(value, type):
		return {k: asPrimitive(getattr(value, k)) for k in value.__annotations__}
	elif isinstance(value, Enum):
		return asPrimitive(value.value)
	elif isinstance(value, Path):
		return str(value)
	elif isinstance(value, (datetime, date)):
		return value.isoformat()
	else:
		return value


def json(value: Any) -> bytes:
	"""Converts the value to compact UTF-8 encoded JSON."""
	return basejson.dumps(
		asPrimitive(value), separators=(",", ":"), ensure_ascii=False
	).encode("utf8")


def unjson(value: bytes | str) -> TJSON:
	"""Parses JSON-encoded text, raising `ValueError` when malformed."""
	return cast(TJSON, basejson.loads(value))


# EOF
