"""Flux Template: compiled template object ready for rendering.

The Template class wraps a CompiledTemplate and provides the ``render()``
API. Templates are immutable and safe for concurrent rendering.

Architecture:
    ```
    Template
    ├── _env_ref: WeakRef[Environment]  # Prevents circular refs
    ├── _compiled: CompiledTemplate     # Shared, cached by source hash
    ├── _render_func: callable          # Extracted render() function
    └── _name, _filename, _source       # For error messages
    ```

Render Pipeline:
    1. Merge ``env.globals``, the mapping argument and keyword arguments
       into a fresh context dict (the caller's mapping is never mutated)
    2. Run ``render(ctx, sections)``; sections fill the section table
    3. If the template declared ``@extends``, render the layout once with
       the original context and the completed section table; the child's
       own output outside sections is discarded
    4. Return the text

Nested renders (``@include``, component templates, the layout hop) run in
a child RenderContext one level deeper; exceeding ``max_depth`` raises
RecursionLimitExceededError.

Memory Safety:
Uses ``weakref.ref(env)`` to break potential cycles:
``Template → (weak) → Environment → cache → Template``

"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from flux.environment.exceptions import (
    ExpressionEvaluationError,
    NestedLayoutError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    build_source_snippet,
)
from flux.render_context import (
    get_render_context,
    get_render_context_required,
    render_context,
    reset_render_context,
    set_render_context,
)
from flux.template.helpers import (
    STATIC_NAMESPACE,
    Undefined,
    getattr_lenient,
    getattr_strict,
    getitem_lenient,
    getitem_strict,
    lookup_lenient,
    lookup_strict,
    make_call,
    make_escaper,
    make_yield,
    str_safe,
)
from flux.utils.html import Markup

if TYPE_CHECKING:
    from flux.compiler import CompiledTemplate
    from flux.environment import Environment
    from flux.render_context import RenderContext

logger = logging.getLogger(__name__)

COMPONENT_NOT_FOUND = "<!-- Component not found: {name} -->"


class Template:
    """Compiled template ready for rendering.

    Thread-Safety:
        - Template object is immutable after construction
        - Each ``render()`` call creates local state only (buf list)
        - Multiple threads can render the same template simultaneously

    Attributes:
        name: Template identifier (for error messages)
        filename: Source file path (for error messages)
        layout: Layout declared with ``@extends``, or None
        sections: Section names in source order

    Error Enhancement:
        Python errors raised by template code are wrapped in
        TemplateRuntimeError with template context:
            ```
            Runtime Error: division by zero
              Location: pages.stats:7
               |
              >  7 | Average: {{ total / count }}
               |
            ```

    Example:
            >>> from flux import Environment
            >>> env = Environment()
            >>> t = env.from_string("Hello, {{ name }}!")
            >>> t.render(name="World")
            'Hello, World!'

            >>> t.render({"name": "<World>"})
            'Hello, &lt;World&gt;!'

    """

    __slots__ = (
        "_compiled",
        "_env_ref",
        "_filename",
        "_name",
        "_render_func",
        "_source",
    )

    def __init__(
        self,
        env: Environment,
        compiled: CompiledTemplate,
        name: str | None,
        filename: str | None,
        source: str | None = None,
    ):
        """Initialize template with compiled code.

        Args:
            env: Parent Environment (stored as weak reference)
            compiled: Compiled code and metadata
            name: Template name (for error messages)
            filename: Source filename (for error messages)
            source: Template source for runtime error snippets
        """
        self._env_ref: weakref.ref[Environment] = weakref.ref(env)
        self._compiled = compiled
        self._name = name
        self._filename = filename
        self._source = source

        env_ref = self._env_ref

        def _deref(action: str) -> Environment:
            _env = env_ref()
            if _env is None:
                raise RuntimeError(f"Environment has been garbage collected while {action}")
            return _env

        # @include("name"[, data])
        def _include(template_name: str, scope: dict[str, Any], data: Any = None) -> str:
            _env = _deref(f"including '{template_name}'")
            context = dict(scope)
            if data is not None and not isinstance(data, Undefined):
                if not isinstance(data, Mapping):
                    render_ctx = get_render_context_required()
                    raise ExpressionEvaluationError(
                        template_name,
                        f"@include('{template_name}') data must be a mapping, "
                        f"got {type(data).__name__}",
                        template_name=render_ctx.template_name,
                        lineno=render_ctx.line,
                    )
                context.update(data)
            included = _env.get_template(template_name)
            return included._render_nested(context)

        # <x-name attr="v">slot</x-name>
        def _component(
            name: str,
            attributes: dict[str, str],
            slot: Markup,
            scope: dict[str, Any],
        ) -> str:
            _env = _deref(f"rendering component '{name}'")
            callback = _env.components.get(name)
            if callback is not None:
                return str_safe(callback(dict(attributes), slot))

            template_name = f"{_env.component_prefix}.{name}" if _env.component_prefix else name
            try:
                component = _env.get_template(template_name)
            except TemplateNotFoundError:
                if _env.strict:
                    raise
                render_ctx = get_render_context()
                logger.warning(
                    "Component not found: %s (looked up '%s' from %s:%s)",
                    name,
                    template_name,
                    render_ctx.template_name if render_ctx else None,
                    render_ctx.line if render_ctx else None,
                )
                return Markup(COMPONENT_NOT_FOUND.format(name=name))
            return component._render_nested({**scope, **attributes, "slot": slot})

        def _auth_check() -> bool:
            return bool(_deref("checking authentication").auth_check())

        def _csrf() -> Markup:
            provider = _deref("rendering @csrf").csrf_token
            if provider is None:
                render_ctx = get_render_context_required()
                raise TemplateRuntimeError(
                    "'@csrf' used but no csrf_token provider is configured",
                    template_name=render_ctx.template_name,
                    lineno=render_ctx.line,
                    suggestion="Pass csrf_token=callable to Environment()",
                )
            return Markup(f'<input type="hidden" name="_token" value="{escape(provider())}">')

        escape = make_escaper(env.escape)
        strict = env.strict

        namespace: dict[str, Any] = STATIC_NAMESPACE.copy()
        namespace.update(
            {
                "_escape": escape,
                "_yield": make_yield(escape),
                "_lookup": lookup_strict if strict else lookup_lenient,
                "_getattr": getattr_strict if strict else getattr_lenient,
                "_getitem": getitem_strict if strict else getitem_lenient,
                "_call": make_call(lambda: _deref("calling a function")._functions),
                "_include": _include,
                "_component": _component,
                "_auth_check": _auth_check,
                "_csrf": _csrf,
                "_max_loop": env.max_loop_iterations,
            }
        )
        exec(compiled.code, namespace)
        self._render_func = namespace["render"]

    @property
    def _env(self) -> Environment:
        """Get the Environment (dereferences weak reference)."""
        env = self._env_ref()
        if env is None:
            raise RuntimeError(
                f"Environment has been garbage collected (template: {self._name or 'unknown'})"
            )
        return env

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def filename(self) -> str | None:
        return self._filename

    @property
    def layout(self) -> str | None:
        """Layout name declared with ``@extends``, or None."""
        return self._compiled.layout

    @property
    def sections(self) -> tuple[str, ...]:
        return self._compiled.sections

    @property
    def python_source(self) -> str:
        """Generated Python source (for debugging)."""
        return self._compiled.python_source

    @property
    def compiled(self) -> CompiledTemplate:
        return self._compiled

    def render(self, *args: Any, **kwargs: Any) -> str:
        """Render template with given context.

        Args:
            *args: Single mapping of context variables
            **kwargs: Context variables as keyword arguments

        Returns:
            Rendered template as string

        Example:
            >>> t.render(name="World")
            'Hello, World!'
            >>> t.render({"name": "World"})
            'Hello, World!'
        """
        ctx = self._build_context(args, kwargs)
        with self._render_scope() as render_ctx:
            return self._render_with_layout(ctx, render_ctx)

    def render_sections(self, *args: Any, **kwargs: Any) -> dict[str, str]:
        """Render the template body and return its section table.

        No layout hop is performed. Useful for testing child templates and
        for partial (fragment) responses.
        """
        ctx = self._build_context(args, kwargs)
        sections: dict[str, str] = {}
        with self._render_scope() as render_ctx:
            self._execute(ctx, sections, render_ctx)
        return sections

    def _build_context(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
        ctx: dict[str, Any] = {}
        ctx.update(self._env.globals)
        if args:
            if len(args) == 1 and isinstance(args[0], Mapping):
                ctx.update(args[0])
            else:
                raise TypeError(
                    f"render() takes at most 1 positional argument (a mapping), got {len(args)}"
                )
        ctx.update(kwargs)
        return ctx

    @contextmanager
    def _render_scope(self) -> Iterator[RenderContext]:
        """Enter a RenderContext for this template.

        Top-level renders get a fresh context. A render started while
        another is in progress (include, component, layout, or a callback
        calling ``env.render``) gets a child context one level deeper.
        """
        parent = get_render_context()
        if parent is None:
            with render_context(
                template_name=self._name,
                filename=self._filename,
                source=self._source,
                max_depth=self._env.max_depth,
            ) as render_ctx:
                yield render_ctx
            return

        parent.check_depth(self._name or "<string>")
        child = parent.child_context(self._name, self._filename, self._source)
        token = set_render_context(child)
        try:
            yield child
        finally:
            reset_render_context(token)

    def _render_nested(self, ctx: dict[str, Any]) -> str:
        """Render as an include or component from inside another render."""
        with self._render_scope() as render_ctx:
            return self._render_with_layout(ctx, render_ctx)

    def _render_with_layout(self, ctx: dict[str, Any], render_ctx: RenderContext) -> str:
        layout_name = self._compiled.layout
        if layout_name is None:
            return self._execute(ctx, {}, render_ctx)

        # Child output outside sections is discarded; only the table survives.
        original = dict(ctx)
        sections: dict[str, str] = {}
        self._execute(ctx, sections, render_ctx)

        layout = self._env.get_template(layout_name)
        if layout.layout is not None:
            raise NestedLayoutError(layout_name, layout.layout, self._name)

        render_ctx.check_depth(layout_name)
        child = render_ctx.child_context(layout_name, layout.filename, layout._source)
        token = set_render_context(child)
        try:
            return layout._execute(original, sections, child)
        finally:
            reset_render_context(token)

    def _execute(
        self,
        ctx: dict[str, Any],
        sections: dict[str, str],
        render_ctx: RenderContext,
    ) -> str:
        """Run the compiled render function with error enhancement."""
        try:
            return self._render_func(ctx, sections)
        except TemplateError:
            raise
        except Exception as e:
            raise self._enhance_error(e, render_ctx) from e

    def _enhance_error(self, error: Exception, render_ctx: RenderContext) -> TemplateRuntimeError:
        """Convert a Python exception into TemplateRuntimeError with template context."""
        lineno = render_ctx.line or None
        error_str = str(error).strip() or f"{type(error).__name__} (no details available)"
        snippet = None
        if self._source and lineno:
            snippet = build_source_snippet(self._source, lineno)
        return TemplateRuntimeError(
            f"{type(error).__name__}: {error_str}",
            template_name=self._name,
            lineno=lineno,
            source_snippet=snippet,
            template_stack=render_ctx.template_stack,
        )

    def __repr__(self) -> str:
        return f"<Template {self._name or '(inline)'}>"
