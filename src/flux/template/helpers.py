"""Runtime helper functions injected into the template namespace.

These functions are called by compiled template code at render time.
Value resolution comes in two flavors, chosen per Environment:

- lenient (default): unresolved names, keys and attributes evaluate to
  ``UNDEFINED``, which is falsy, iterates as empty and renders as ""
- strict: the same situations raise ExpressionEvaluationError with the
  template name, line and a "Did you mean" suggestion

Thread-Safety:
All functions are stateless and safe for concurrent use.

"""

from __future__ import annotations

import json
import operator
from collections.abc import Callable, Iterable, Mapping
from numbers import Number
from typing import Any, NoReturn

from flux.environment.exceptions import (
    ExpressionEvaluationError,
    TemplateRuntimeError,
    build_source_snippet,
)
from flux.render_context import get_render_context, get_render_context_required
from flux.template.loop_context import LoopContext
from flux.utils.html import Markup


def _empty_like(other: Any) -> Any:
    """Neutral value of ``other``'s type that UNDEFINED stands in for."""
    if isinstance(other, Undefined):
        return UNDEFINED
    if isinstance(other, str):
        return ""
    if isinstance(other, Number):
        return 0
    if isinstance(other, list):
        return []
    if isinstance(other, tuple):
        return ()
    return NotImplemented


def _undefined_operator(
    op: Callable[[Any, Any], Any], reflected: bool = False, numeric: bool = False
) -> Callable[[Undefined, Any], Any]:
    def method(self: Undefined, other: Any) -> Any:
        empty = _empty_like(other)
        if empty is NotImplemented or empty is UNDEFINED:
            return empty
        if numeric:
            empty = 0
        return op(other, empty) if reflected else op(empty, other)

    return method


class Undefined:
    """Value of an unresolved name, key or attribute in lenient mode.

    Falsy, empty when iterated, renders as the empty string and compares
    equal to ``None`` so ``@if(user.nickname == null)`` works either way.
    Ordering comparisons are always False. Under ``+`` and ``-`` it acts
    as the empty value of the other operand's type (0, "", [] or ()), and
    under ``*``, ``/``, ``//`` and ``%`` as 0, so ``{{ missing + 1 }}``
    renders ``1``.
    """

    __slots__ = ()

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return ""

    def __iter__(self):
        return iter(())

    def __len__(self) -> int:
        return 0

    def __int__(self) -> int:
        return 0

    def __float__(self) -> float:
        return 0.0

    def __eq__(self, other: object) -> bool:
        return other is None or isinstance(other, Undefined)

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    def __lt__(self, other: object) -> bool:
        return False

    __le__ = __gt__ = __ge__ = __lt__

    __add__ = _undefined_operator(operator.add)
    __radd__ = _undefined_operator(operator.add, reflected=True)
    __sub__ = _undefined_operator(operator.sub)
    __rsub__ = _undefined_operator(operator.sub, reflected=True)
    __mul__ = _undefined_operator(operator.mul, numeric=True)
    __rmul__ = _undefined_operator(operator.mul, reflected=True, numeric=True)
    __truediv__ = _undefined_operator(operator.truediv, numeric=True)
    __rtruediv__ = _undefined_operator(operator.truediv, reflected=True, numeric=True)
    __floordiv__ = _undefined_operator(operator.floordiv, numeric=True)
    __rfloordiv__ = _undefined_operator(operator.floordiv, reflected=True, numeric=True)
    __mod__ = _undefined_operator(operator.mod, numeric=True)
    __rmod__ = _undefined_operator(operator.mod, reflected=True, numeric=True)

    def __neg__(self) -> Undefined:
        return self

    __pos__ = __abs__ = __neg__

    def __hash__(self) -> int:
        return hash(None)

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = Undefined()

_MISSING = object()


# =============================================================================
# Static namespace shared by every Template
# =============================================================================

STATIC_NAMESPACE: dict[str, Any] = {
    "__builtins__": {},
    "_Markup": Markup,
    "_slice": slice,
    "_LoopContext": LoopContext,
    "_get_render_ctx": get_render_context_required,
}


def _raise_evaluation_error(name: str, message: str, available: Iterable[str] = ()) -> NoReturn:
    render_ctx = get_render_context()
    template_name = render_ctx.template_name if render_ctx else None
    lineno = render_ctx.line if render_ctx else None
    source = render_ctx.source if render_ctx else None
    snippet = build_source_snippet(source, lineno) if source and lineno else None
    raise ExpressionEvaluationError(
        name,
        message,
        available_names=frozenset(available),
        template_name=template_name,
        lineno=lineno,
        source_snippet=snippet,
        template_stack=render_ctx.template_stack if render_ctx else None,
    ) from None


# =============================================================================
# Value resolution
# =============================================================================


def lookup_lenient(ctx: Mapping[str, Any], name: str) -> Any:
    return ctx.get(name, UNDEFINED)


def lookup_strict(ctx: Mapping[str, Any], name: str) -> Any:
    """Look up a variable, raising on undefined names.

    Performance:
        - Fast path (defined var): O(1) dict lookup
        - Error path: Raises ExpressionEvaluationError with template context
    """
    try:
        return ctx[name]
    except KeyError:
        _raise_evaluation_error(name, f"Undefined variable '{name}'", ctx.keys())


def _resolve_attr(obj: Any, attr: str) -> Any:
    # Mapping keys win over attributes, like PHP array/object access.
    if isinstance(obj, Mapping):
        value = obj.get(attr, _MISSING)
        if value is not _MISSING:
            return value
    if obj is None or isinstance(obj, Undefined):
        return _MISSING
    return getattr(obj, attr, _MISSING)


def getattr_lenient(obj: Any, attr: str) -> Any:
    value = _resolve_attr(obj, attr)
    return UNDEFINED if value is _MISSING else value


def getattr_strict(obj: Any, attr: str) -> Any:
    value = _resolve_attr(obj, attr)
    if value is _MISSING:
        available = obj.keys() if isinstance(obj, Mapping) else ()
        _raise_evaluation_error(
            attr,
            f"'{type(obj).__name__}' value has no key or attribute '{attr}'",
            available,
        )
    return value


def getitem_lenient(obj: Any, key: Any) -> Any:
    try:
        return obj[key]
    except (KeyError, IndexError, TypeError):
        return UNDEFINED


def getitem_strict(obj: Any, key: Any) -> Any:
    try:
        return obj[key]
    except (KeyError, IndexError, TypeError):
        available = [str(k) for k in obj.keys()] if isinstance(obj, Mapping) else ()
        _raise_evaluation_error(
            str(key),
            f"'{type(obj).__name__}' value has no item {key!r}",
            available,
        )


def make_call(functions: Callable[[], Mapping[str, Callable[..., Any]]]) -> Callable[..., Any]:
    """Create the ``_call`` helper that dispatches to registered functions.

    ``functions`` returns the current registry mapping, so functions
    registered after the template was compiled are visible.
    """

    def _call(_name: str, /, *args: Any, **kwargs: Any) -> Any:
        registry = functions()
        func = registry.get(_name)
        if func is None:
            _raise_evaluation_error(_name, f"Unknown function '{_name}'", registry.keys())
        # Registered functions receive data only, never callables.
        for value in (*args, *kwargs.values()):
            if callable(value):
                _raise_evaluation_error(
                    _name,
                    f"Function '{_name}' cannot be passed a callable '{type(value).__name__}'",
                )
        return func(*args, **kwargs)

    return _call


# =============================================================================
# Output
# =============================================================================


def str_safe(value: Any) -> str:
    """Convert value to string, treating None and UNDEFINED as empty string."""
    if value is None or isinstance(value, Undefined):
        return ""
    return str(value)


def make_escaper(escape: Callable[[Any], str]) -> Callable[[Any], str]:
    """Wrap an escape function so Markup, None and UNDEFINED are handled first."""

    def _escape(value: Any) -> str:
        if value is None or isinstance(value, Undefined):
            return ""
        if hasattr(value, "__html__"):
            return str(value.__html__())
        return escape(value)

    return _escape


def make_yield(escape: Callable[[Any], str]) -> Callable[..., str]:
    """Create the ``_yield`` helper for ``@yield("name"[, default])``.

    Captured sections are Markup and emitted as-is; the default is escaped.
    """

    def _yield(sections: Mapping[str, str], name: str, default: Any = None) -> str:
        content = sections.get(name)
        if content is not None:
            return content
        if default is None:
            return ""
        return escape(default)

    return _yield


def json_output(value: Any) -> str:
    """Render ``@json(value)``: JSON with ``/`` escaped, safe inside <script>."""
    if isinstance(value, Undefined):
        value = None
    return json.dumps(value, default=_json_default).replace("/", "\\/")


def _json_default(value: Any) -> Any:
    if isinstance(value, Undefined):
        return None
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# =============================================================================
# Iteration
# =============================================================================


def iterate(value: Any, with_keys: bool = False) -> list[Any]:
    """Materialize an ``@foreach`` source.

    Mappings iterate their values, or ``(key, value)`` pairs when the loop
    names a key. Other iterables pair values with their 0-based position.
    None and UNDEFINED iterate as empty.
    """
    if value is None or isinstance(value, Undefined):
        return []
    if isinstance(value, Mapping):
        return list(value.items()) if with_keys else list(value.values())
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise TemplateRuntimeError(
            f"Cannot iterate over {type(value).__name__} value in '@foreach'",
            template_name=_current_template(),
            lineno=_current_line(),
        )
    return list(enumerate(value)) if with_keys else list(value)


def loop_limit(directive: str, limit: int) -> NoReturn:
    """Raise when a ``@while``/``@for`` loop exceeds ``max_loop_iterations``."""
    raise TemplateRuntimeError(
        f"'{directive}' loop exceeded {limit} iterations",
        template_name=_current_template(),
        lineno=_current_line(),
        suggestion="Check the loop condition, or raise Environment.max_loop_iterations",
    )


def _current_template() -> str | None:
    render_ctx = get_render_context()
    return render_ctx.template_name if render_ctx else None


def _current_line() -> int | None:
    render_ctx = get_render_context()
    return render_ctx.line if render_ctx else None


STATIC_NAMESPACE.update(
    {
        "_str": str_safe,
        "_iterate": iterate,
        "_json": json_output,
        "_loop_limit": loop_limit,
    }
)
