"""Default functions callable from template expressions.

Expressions may call registered functions by name, ``{{ upper(user.name) }}``.
This module provides the functions every Environment starts with;
applications add their own through ``env.functions``.

All defaults are pure: they never touch the render context or perform I/O.
``None`` and UNDEFINED arguments are treated as empty where that is the
natural reading (``len(missing)`` is 0, ``upper(missing)`` is "").

"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from flux.template.helpers import Undefined, str_safe
from flux.utils.html import Markup, html_escape


def _missing(value: Any) -> bool:
    return value is None or isinstance(value, Undefined)


def count(value: Any) -> int:
    """Number of items, 0 for missing values (PHP ``count``)."""
    if _missing(value):
        return 0
    return len(value)


def upper(value: Any) -> str:
    return str_safe(value).upper()


def lower(value: Any) -> str:
    return str_safe(value).lower()


def title(value: Any) -> str:
    return str_safe(value).title()


def ucfirst(value: Any) -> str:
    text = str_safe(value)
    return text[:1].upper() + text[1:]


def trim(value: Any, chars: str | None = None) -> str:
    return str_safe(value).strip(chars)


def join(items: Any, separator: str = "") -> str:
    """Join items with ``separator``; missing items join to "" (PHP ``implode``)."""
    if _missing(items):
        return ""
    return separator.join(str_safe(item) for item in items)


def default(value: Any, fallback: Any = "") -> Any:
    """``value`` unless it is None, UNDEFINED or "" (falls back otherwise)."""
    if _missing(value) or value == "":
        return fallback
    return value


def to_json(value: Any, indent: int | None = None) -> Markup:
    """JSON-encode a value as Markup, for use inside attributes or scripts."""
    if isinstance(value, Undefined):
        value = None
    return Markup(json.dumps(value, indent=indent, default=_json_default))


def _json_default(value: Any) -> Any:
    if isinstance(value, Undefined):
        return None
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def number_format(
    value: Any,
    decimals: int = 0,
    dec_point: str = ".",
    thousands_sep: str = ",",
) -> str:
    """Format a number with grouped thousands (PHP ``number_format``).

    Example:
        >>> number_format(1234567.891, 2)
        '1,234,567.89'
    """
    formatted = f"{float(value or 0):,.{decimals}f}"
    return formatted.replace(",", "\x00").replace(".", dec_point).replace("\x00", thousands_sep)


def escape(value: Any) -> Markup:
    """HTML-escape a value and mark the result safe, so it is escaped once."""
    return Markup(html_escape(value))


def safe(value: Any) -> Markup:
    """Mark a value as safe HTML so ``{{ }}`` does not escape it."""
    return Markup(str_safe(value))


def keys(value: Any) -> list[Any]:
    if isinstance(value, Mapping):
        return list(value.keys())
    return list(range(count(value)))


def values(value: Any) -> list[Any]:
    if isinstance(value, Mapping):
        return list(value.values())
    if _missing(value):
        return []
    return list(value)


def _sorted(value: Iterable[Any], reverse: bool = False) -> list[Any]:
    if _missing(value):
        return []
    return sorted(value, reverse=reverse)


DEFAULT_FUNCTIONS: dict[str, Callable[..., Any]] = {
    # Python builtins that are safe on plain data
    "abs": abs,
    "bool": bool,
    "float": float,
    "int": int,
    "len": count,
    "list": list,
    "max": max,
    "min": min,
    "range": range,
    "round": round,
    "sorted": _sorted,
    "str": str_safe,
    "sum": sum,
    # PHP-flavored helpers
    "count": count,
    "default": default,
    "e": escape,
    "implode": join,
    "join": join,
    "json": to_json,
    "keys": keys,
    "lower": lower,
    "number_format": number_format,
    "safe": safe,
    "title": title,
    "trim": trim,
    "ucfirst": ucfirst,
    "upper": upper,
    "values": values,
}
