"""Flux Environment: configuration, caches and registries.

The Environment is the public entry point. It owns:

- the loader (file resolution service)
- the compiled-template cache, keyed by source content hash
- the component registry and the function registry (copy-on-write)
- the auth predicate, CSRF token provider and escape function
- lenient/strict mode and the recursion and loop bounds

Example:
    >>> from flux import DictLoader, Environment
    >>> env = Environment(loader=DictLoader({
    ...     "layouts.app": "<title>@yield('title', 'Flux')</title>",
    ...     "pages.home": "@extends('layouts.app')@section('title')Home@endsection",
    ... }))
    >>> env.render("pages.home")
    '<title>Home</title>'

"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from flux.compiler import CompiledTemplate, compile_template, source_key
from flux.environment.cache import TemplateCache
from flux.environment.exceptions import TemplateNotFoundError, TemplateSyntaxError
from flux.environment.functions import DEFAULT_FUNCTIONS
from flux.environment.registry import Registry
from flux.template import Template
from flux.utils.html import html_escape

if TYPE_CHECKING:
    from flux.environment.loaders import Loader

logger = logging.getLogger(__name__)

ComponentCallback = Callable[[dict[str, str], str], str]


def _never_authenticated() -> bool:
    return False


@dataclass
class Environment:
    """Central configuration and template management for Flux.

    Configuration is passed as keyword arguments:

    Attributes:
        loader: Template source loader (None = only ``from_string`` works)
        strict: Raise on undefined values and missing components instead of
            rendering them empty / as an inline marker
        max_depth: Maximum nesting of includes, components and layout hops
        max_loop_iterations: Iteration cap for ``@while`` and ``@for``
        escape: Escape function for ``{{ }}`` output
        auth_check: Predicate for ``@auth`` / ``@guest``
        csrf_token: Token provider for ``@csrf``
        globals: Variables available in every template
        component_prefix: Template namespace searched for ``<x-name>``
        cache_size: Maximum compiled templates kept (None = unbounded)
        auto_reload: Re-read template source from the loader on every
            ``get_template`` call (False = load each name once)

    Thread-Safety:
        Registries use copy-on-write; the caches publish entries atomically.
        Configuration should be set before rendering starts.

    Example:
            >>> env = Environment(auth_check=lambda: True)
            >>> env.render_string("@auth Welcome back @else Sign in @endauth")
            'Welcome back '

    """

    loader: Loader | None = None
    strict: bool = False
    max_depth: int = 50
    max_loop_iterations: int = 10_000
    escape: Callable[[Any], str] = html_escape
    auth_check: Callable[[], bool] = _never_authenticated
    csrf_token: Callable[[], str] | None = None
    globals: dict[str, Any] = field(default_factory=dict)
    component_prefix: str = "components"
    cache_size: int | None = None
    auto_reload: bool = True

    _cache: TemplateCache = field(init=False, repr=False)
    _components: dict[str, ComponentCallback] = field(init=False, repr=False)
    _functions: dict[str, Callable[..., Any]] = field(init=False, repr=False)
    _templates: dict[str, Template] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        if self.max_loop_iterations < 1:
            raise ValueError(
                f"max_loop_iterations must be at least 1, got {self.max_loop_iterations}"
            )
        self.globals = dict(self.globals)
        self._cache = TemplateCache(self.cache_size)
        self._components = {}
        self._functions = dict(DEFAULT_FUNCTIONS)
        self._templates = {}

    # ------------------------------------------------------------------
    # Registries
    # ------------------------------------------------------------------

    @property
    def components(self) -> Registry:
        """Registered component callbacks, ``callback(attributes, slot) -> str``."""
        return Registry(self, "_components")

    @property
    def functions(self) -> Registry:
        """Functions callable from template expressions."""
        return Registry(self, "_functions")

    def component(self, name: str, callback: ComponentCallback | None = None):
        """Register a component callback, directly or as a decorator.

        Example:
            >>> @env.component("alert")
            ... def alert(attributes, slot):
            ...     return f'<div class="alert alert-{attributes.get("type", "info")}">{slot}</div>'
        """
        if callback is not None:
            self.components[name] = callback
            return callback

        def decorator(func: ComponentCallback) -> ComponentCallback:
            self.components[name] = func
            return func

        return decorator

    # ------------------------------------------------------------------
    # Compilation and loading
    # ------------------------------------------------------------------

    @property
    def cache(self) -> TemplateCache:
        return self._cache

    def compile(self, source: str, name: str | None = None) -> CompiledTemplate:
        """Compile source, reusing the cached result for identical text.

        Raises:
            TemplateSyntaxError: If the source is malformed.
        """
        return self._cache.get_or_compile(source, lambda s: compile_template(s, name))

    def from_string(self, source: str, name: str | None = None) -> Template:
        """Create a Template from source text (no loader involved)."""
        return Template(self, self.compile(source, name), name, None, source)

    def get_template(self, name: str) -> Template:
        """Load, compile and return the named template.

        Raises:
            TemplateNotFoundError: If the loader cannot resolve ``name``.
            TemplateSyntaxError: If the template source is malformed.
        """
        cached = self._templates.get(name)
        if cached is not None and not self.auto_reload:
            return cached

        if self.loader is None:
            raise TemplateNotFoundError(f"Template '{name}' not found: no loader configured")
        source, filename = self.loader.get_source(name)

        if cached is not None:
            if cached.compiled.key == source_key(source):
                return cached
            logger.debug("Template %r changed, recompiling", name)

        try:
            compiled = self.compile(source, name)
        except TemplateSyntaxError as e:
            if filename is None:
                raise
            raise e.with_filename(filename) from None

        template = Template(self, compiled, name, filename, source)
        self._templates[name] = template
        return template

    def clear_cache(self) -> None:
        """Drop all compiled and loaded templates."""
        self._cache.clear()
        self._templates = {}

    # ------------------------------------------------------------------
    # Rendering shortcuts
    # ------------------------------------------------------------------

    def render(self, name: str, /, *args: Any, **kwargs: Any) -> str:
        """Render the named template.

        Example:
            >>> env.render("pages.profile", user=user)
        """
        return self.get_template(name).render(*args, **kwargs)

    def render_string(self, source: str, /, *args: Any, **kwargs: Any) -> str:
        """Render template source text directly."""
        return self.from_string(source).render(*args, **kwargs)
