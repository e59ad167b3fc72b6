# coercion.py
# Coercion of loosely-typed JSON argument values into declared parameter types.
#
# Scalars go through an explicit (source, target) table. Structural targets
# (lists, dicts, pydantic models, dataclasses, TypedDicts) are validated with
# pydantic's TypeAdapter. coerce() is total: it returns a typed value or raises
# CoercionError, and never truncates.

import inspect
import json
import math
import re
import types
from functools import lru_cache
from typing import Any, Callable, Union, get_args, get_origin

from pydantic import TypeAdapter, ValidationError


class CoercionError(ValueError):
    """Raised when a value cannot be converted to the requested type."""


_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}

# Plain JSON-style numerals only: no underscores, no nan/inf.
_INT_LITERAL = re.compile(r"[+-]?\d+")
_FLOAT_LITERAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


# ---------------------------------------------------------------------------
# Scalar table
# ---------------------------------------------------------------------------


def _str_to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise CoercionError(f"'{value}' is not a boolean")


def _int_to_bool(value: int) -> bool:
    if value in (0, 1):
        return bool(value)
    raise CoercionError(f"{value} is not 0 or 1")


def _float_to_int(value: float) -> int:
    if not value.is_integer():
        raise CoercionError(f"{value} is not integral")
    return int(value)


def _str_to_int(value: str) -> int:
    text = value.strip()
    if not _INT_LITERAL.fullmatch(text):
        raise CoercionError(f"'{value}' is not an integer")
    return int(text)


def _str_to_float(value: str) -> float:
    text = value.strip()
    if not _FLOAT_LITERAL.fullmatch(text):
        raise CoercionError(f"'{value}' is not a number")
    return _finite(float(text))


def _finite(value: float) -> float:
    if not math.isfinite(value):
        raise CoercionError(f"{value} is not a finite number")
    return value


_SCALAR_TABLE: dict[tuple[type, type], Callable[[Any], Any]] = {
    (str, int): _str_to_int,
    (str, float): _str_to_float,
    (str, bool): _str_to_bool,
    (int, float): lambda v: _finite(float(v)),
    (int, bool): _int_to_bool,
    (float, int): _float_to_int,
    (int, str): str,
    (float, str): str,
    (bool, str): lambda v: "true" if v else "false",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_any(target: Any) -> bool:
    return target is Any or target is inspect.Parameter.empty or target is object


def _optional_inner(target: Any) -> Any | None:
    """Return T for Optional[T] / T | None, otherwise None."""
    origin = get_origin(target)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(target) if arg is not type(None)]
        if len(args) == 1 and len(get_args(target)) == 2:
            return args[0]
    return None


def _allows_none(target: Any) -> bool:
    origin = get_origin(target)
    if origin is Union or origin is types.UnionType:
        return type(None) in get_args(target)
    return target is None or target is type(None)


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def type_name(target: Any) -> str:
    if isinstance(target, type):
        return target.__name__
    return str(target).replace("typing.", "")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def coerce(value: Any, target: Any) -> Any:
    """Convert `value` to `target`, or raise CoercionError."""
    if _is_any(target):
        return value

    if value is None:
        if _allows_none(target):
            return None
        raise CoercionError(f"Cannot convert null to {type_name(target)}")

    inner = _optional_inner(target)
    if inner is not None:
        return coerce(value, inner)

    if isinstance(target, type) and get_origin(target) is None:
        source = type(value)
        if source is target:
            return value
        converter = _SCALAR_TABLE.get((source, target))
        if converter is not None:
            try:
                return converter(value)
            except (TypeError, ValueError, OverflowError) as exc:
                raise CoercionError(f"Cannot convert {value!r} to {type_name(target)}: {exc}") from exc
        if target in (int, float, bool, str):
            raise CoercionError(f"Cannot convert {source.__name__} {value!r} to {type_name(target)}")
        if isinstance(value, target):
            return value

    return _coerce_structural(value, target)


def _coerce_structural(value: Any, target: Any) -> Any:
    try:
        adapter = _adapter(target)
    except TypeError as exc:
        # TypeAdapter cannot build a schema for this target.
        raise CoercionError(f"No conversion available for {type_name(target)}: {exc}") from exc

    try:
        return adapter.validate_python(value)
    except ValidationError as exc:
        failure = exc

    # Models sometimes send nested objects as JSON-encoded strings.
    if isinstance(value, str):
        try:
            return adapter.validate_python(json.loads(value))
        except (json.JSONDecodeError, ValidationError):
            pass

    raise CoercionError(
        f"Cannot convert {value!r} to {type_name(target)}: {failure.error_count()} validation error(s)"
    ) from failure


def json_schema_for(target: Any) -> dict[str, Any]:
    """JSON schema advertised to the model for a parameter of type `target`."""
    if target is inspect.Parameter.empty:
        return {"type": "string"}
    if _is_any(target):
        return {}
    try:
        return dict(_adapter(target).json_schema())
    except (TypeError, ValueError):
        return {}
