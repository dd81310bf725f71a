"""JSON wire codec: key casing, timestamps and typed dataclass mapping."""

import dataclasses
import functools
import json
import logging
import math
import re
import types
import typing
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Union

from src.core.exceptions import DecodeError, EncodeError

logger = logging.getLogger("oeeecafe")

_UPPER = re.compile(r"[A-Z]")
_UNDERSCORE_LOWER = re.compile(r"_([a-z])")
_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")

# Tried in this order; the server may vary sub-second precision.
TIMESTAMP_WITH_FRACTION = "%Y-%m-%dT%H:%M:%S.%f%z"
TIMESTAMP_WITHOUT_FRACTION = "%Y-%m-%dT%H:%M:%S%z"


def to_snake_case(name: str) -> str:
    """camelCase -> snake_case. Inverse of to_camel_case for ASCII identifiers.

    Example:
        >>> to_snake_case("parentCommentId")
        'parent_comment_id'
    """
    return _UPPER.sub(lambda m: "_" + m.group(0).lower(), name)


def to_camel_case(name: str) -> str:
    """snake_case -> camelCase. Leading underscores are kept as-is.

    Example:
        >>> to_camel_case("has_more")
        'hasMore'
    """
    stripped = name.lstrip("_")
    prefix = name[:len(name) - len(stripped)]
    return prefix + _UNDERSCORE_LOWER.sub(lambda m: m.group(1).upper(), stripped)


def convert_keys(value: Any, converter: Callable[[str], str]) -> Any:
    """Recursively rename every dict key in a raw JSON structure."""
    if isinstance(value, dict):
        return {converter(k): convert_keys(v, converter) for k, v in value.items()}
    if isinstance(value, list):
        return [convert_keys(item, converter) for item in value]
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    First attempt includes fractional seconds, second attempt omits them.

    Raises:
        ValueError: neither format matches (message names the string)
    """
    normalized = _LONG_FRACTION.sub(r"\1", value, count=1)
    for fmt in (TIMESTAMP_WITH_FRACTION, TIMESTAMP_WITHOUT_FRACTION):
        try:
            parsed = datetime.strptime(normalized, fmt)
        except ValueError:
            continue
        return parsed.astimezone(timezone.utc)
    raise ValueError(f"Cannot decode date string {value!r}")


def format_timestamp(value: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with a Z suffix. Naive means UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    if value.microsecond:
        return value.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def _json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def _child(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


@functools.lru_cache(maxsize=None)
def _dataclass_hints(tp: type) -> dict:
    return typing.get_type_hints(tp)


class WireCodec:
    """Converts typed dataclass models to and from JSON bytes.

    Attribute names map to wire keys through ``key_to_wire`` (snake_case by
    default). Optional attributes set to None are left out of the payload;
    absent optional keys decode to the attribute default or None.
    """

    def __init__(self, key_to_wire: Callable[[str], str] = to_snake_case):
        self._key_to_wire = key_to_wire

    # --- encoding ---

    def encode(self, value: Any) -> bytes:
        """Serialize a typed value to UTF-8 JSON bytes.

        Raises:
            EncodeError: unsupported value or non-finite float
        """
        payload = self.to_wire(value)
        try:
            text = json.dumps(payload, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"Failed to encode request: {e}")
        return text.encode("utf-8")

    def to_wire(self, value: Any, path: str = "") -> Any:
        """Convert a typed value into plain JSON-compatible structures."""
        if isinstance(value, Enum):
            return self.to_wire(value.value, path)
        if value is None or isinstance(value, (bool, str)):
            return value
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise EncodeError(f"Non-finite number at {path or '<root>'}", path)
            return value
        if isinstance(value, datetime):
            return format_timestamp(value)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            out = {}
            for f in dataclasses.fields(value):
                attr = getattr(value, f.name)
                if attr is None:
                    continue
                key = self._key_to_wire(f.name)
                out[key] = self.to_wire(attr, _child(path, key))
            return out
        if isinstance(value, Mapping):
            out = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise EncodeError(
                        f"Non-string key {key!r} at {path or '<root>'}", path
                    )
                out[key] = self.to_wire(item, _child(path, key))
            return out
        if isinstance(value, (list, tuple)):
            return [self.to_wire(item, f"{path}[{i}]") for i, item in enumerate(value)]
        raise EncodeError(
            f"Unsupported type {type(value).__name__} at {path or '<root>'}", path
        )

    # --- decoding ---

    def decode(self, data: Union[bytes, str], target_type: Any) -> Any:
        """Deserialize JSON bytes into ``target_type``.

        Raises:
            DecodeError: invalid JSON, missing key, type mismatch or bad date
        """
        if isinstance(data, (bytes, bytearray)):
            try:
                data = bytes(data).decode("utf-8")
            except UnicodeDecodeError as e:
                raise DecodeError(
                    f"Data corrupted: body is not valid UTF-8 ({e.reason})",
                    expected="UTF-8 JSON", actual="binary",
                )
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            raise DecodeError(
                f"Data corrupted: invalid JSON at line {e.lineno} column {e.colno}: {e.msg}",
                expected="JSON", actual="invalid JSON",
            )
        return self.from_wire(payload, target_type)

    def from_wire(self, value: Any, tp: Any, path: str = "") -> Any:
        """Convert plain JSON structures into ``tp``."""
        if tp is Any or tp is object:
            return value

        origin = typing.get_origin(tp)
        args = typing.get_args(tp)

        if origin is Union or origin is types.UnionType:
            return self._from_union(value, args, path)

        if value is None:
            raise self._mismatch("Value not found", tp, value, path)

        if origin in (list, Sequence):
            item_type = args[0] if args else Any
            items = self._expect(value, list, tp, path)
            return [self.from_wire(item, item_type, f"{path}[{i}]")
                    for i, item in enumerate(items)]

        if origin is tuple:
            items = self._expect(value, list, tp, path)
            if not args or (len(args) == 2 and args[1] is Ellipsis):
                item_type = args[0] if args else Any
                return tuple(self.from_wire(item, item_type, f"{path}[{i}]")
                             for i, item in enumerate(items))
            if len(items) != len(args):
                raise self._mismatch("Type mismatch", tp, value, path)
            return tuple(self.from_wire(item, item_tp, f"{path}[{i}]")
                         for i, (item, item_tp) in enumerate(zip(items, args)))

        if origin in (dict, Mapping):
            value_type = args[1] if len(args) == 2 else Any
            obj = self._expect(value, dict, tp, path)
            return {k: self.from_wire(v, value_type, _child(path, k)) for k, v in obj.items()}

        if tp is bool:
            return self._expect(value, bool, tp, path)
        if tp is int:
            if isinstance(value, bool) or not isinstance(value, int):
                raise self._mismatch("Type mismatch", tp, value, path)
            return value
        if tp is float:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise self._mismatch("Type mismatch", tp, value, path)
            return float(value)
        if tp is str:
            return self._expect(value, str, tp, path)
        if tp is datetime:
            text = self._expect(value, str, tp, path)
            try:
                return parse_timestamp(text)
            except ValueError:
                raise DecodeError(
                    f"Data corrupted at {path or '<root>'}: Cannot decode date string {text!r}",
                    path=path, expected="ISO-8601 timestamp", actual=text,
                )
        if isinstance(tp, type) and issubclass(tp, Enum):
            try:
                return tp(value)
            except ValueError:
                raise DecodeError(
                    f"Data corrupted at {path or '<root>'}: {value!r} is not a valid {tp.__name__}",
                    path=path, expected=tp.__name__, actual=repr(value),
                )
        if dataclasses.is_dataclass(tp):
            return self._from_dataclass(value, tp, path)

        raise DecodeError(
            f"Unsupported target type {_type_name(tp)} at {path or '<root>'}",
            path=path, expected=_type_name(tp), actual=_json_type_name(value),
        )

    def _from_union(self, value: Any, args: tuple, path: str) -> Any:
        if value is None and type(None) in args:
            return None
        candidates = [a for a in args if a is not type(None)]
        if len(candidates) == 1:
            return self.from_wire(value, candidates[0], path)
        for candidate in candidates:
            try:
                return self.from_wire(value, candidate, path)
            except DecodeError:
                continue
        raise self._mismatch("Type mismatch", Union[tuple(candidates)], value, path)

    def _from_dataclass(self, value: Any, tp: type, path: str) -> Any:
        obj = self._expect(value, dict, tp, path)
        hints = _dataclass_hints(tp)
        kwargs = {}
        for f in dataclasses.fields(tp):
            if not f.init:
                continue
            key = self._key_to_wire(f.name)
            field_type = hints[f.name]
            if key in obj:
                kwargs[f.name] = self.from_wire(obj[key], field_type, _child(path, key))
            elif (f.default is not dataclasses.MISSING
                  or f.default_factory is not dataclasses.MISSING):
                continue
            elif type(None) in typing.get_args(field_type):
                kwargs[f.name] = None
            else:
                missing = _child(path, key)
                raise DecodeError(
                    f"Missing key '{key}' at {missing} (expected {_type_name(field_type)})",
                    path=missing, expected=_type_name(field_type), actual="missing",
                )
        return tp(**kwargs)

    def _expect(self, value: Any, json_type: type, tp: Any, path: str) -> Any:
        if json_type is not bool and isinstance(value, bool):
            raise self._mismatch("Type mismatch", tp, value, path)
        if not isinstance(value, json_type):
            raise self._mismatch("Type mismatch", tp, value, path)
        return value

    @staticmethod
    def _mismatch(reason: str, tp: Any, value: Any, path: str) -> DecodeError:
        expected = _type_name(tp)
        actual = _json_type_name(value)
        return DecodeError(
            f"{reason} at {path or '<root>'}: expected {expected}, got {actual}",
            path=path, expected=expected, actual=actual,
        )
