"""Template loaders for the Flux environment.

Loaders provide template source to the Environment. They implement
``get_source(name)`` returning ``(source, filename)`` and raise
TemplateNotFoundError when the name cannot be resolved.

Built-in Loaders:
- ``FileSystemLoader``: dotted names resolved under one or more directories
- ``DictLoader``: in-memory mapping (testing/embedded)
- ``ChoiceLoader``: try multiple loaders in order (theme fallback)
- ``FunctionLoader``: wrap a callable as a loader

Template Names:
Names are dotted, like ``layouts.app`` or ``components.card``.
FileSystemLoader turns dots into directory separators and tries each
extension in order, so ``layouts.app`` finds ``layouts/app.flux`` first and
``layouts/app.html`` second. A name that already ends in a known extension
(``pages/home.flux``) is used as a path directly.

Custom Loaders:
Implement the Loader protocol:
    ```python
    class DatabaseLoader:
        def get_source(self, name: str) -> tuple[str, str | None]:
            row = db.query("SELECT source FROM views WHERE name = ?", name)
            if not row:
                raise TemplateNotFoundError(f"Template '{name}' not found")
            return row.source, f"db://{name}"
    ```

Thread-Safety:
All built-in loaders are safe for concurrent ``get_source()`` calls.

"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Protocol

from flux.environment.exceptions import TemplateNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".flux", ".html")


class Loader(Protocol):
    """Anything with ``get_source(name) -> (source, filename)``."""

    def get_source(self, name: str) -> tuple[str, str | None]: ...


class FileSystemLoader:
    """Load templates from filesystem directories.

    Attributes:
        _paths: List of Path objects to search, in order
        _extensions: File extensions tried for each candidate path
        _encoding: File encoding (default: utf-8)

    Search Order:
        Directories are searched in order and, within each directory,
        extensions in order. First match wins:
            ```python
            loader = FileSystemLoader(["themes/custom/", "views/"])
            loader.get_source("layouts.app")
            # themes/custom/layouts/app.flux, themes/custom/layouts/app.html,
            # views/layouts/app.flux, views/layouts/app.html
            ```

    Raises:
        TemplateNotFoundError: If template not found in any search path

    """

    __slots__ = ("_encoding", "_extensions", "_paths")

    def __init__(
        self,
        paths: str | Path | Sequence[str | Path],
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        encoding: str = "utf-8",
    ):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self._paths = [Path(p) for p in paths]
        self._extensions = tuple(extensions)
        self._encoding = encoding

    def candidates(self, name: str) -> list[str]:
        """Relative paths tried for ``name``, in order.

        Example:
            >>> FileSystemLoader("views").candidates("layouts.app")
            ['layouts/app.flux', 'layouts/app.html']
        """
        if ".." in name or name.startswith(("/", "\\")):
            return []
        for ext in self._extensions:
            if name.endswith(ext):
                return [name]
        stem = name.replace(".", "/")
        return [f"{stem}{ext}" for ext in self._extensions]

    def get_source(self, name: str) -> tuple[str, str]:
        """Load template source from the first matching file."""
        relatives = self.candidates(name)
        for base in self._paths:
            for relative in relatives:
                path = base / relative
                if path.is_file():
                    logger.debug("Loaded template %r from %s", name, path)
                    return path.read_text(self._encoding), str(path)

        raise TemplateNotFoundError(
            f"Template '{name}' not found in: {', '.join(str(p) for p in self._paths)}"
            + (f" (tried {', '.join(relatives)})" if relatives else "")
        )

    def list_templates(self) -> list[str]:
        """List dotted names of all templates in the search paths."""
        templates: set[str] = set()
        for base in self._paths:
            if not base.is_dir():
                continue
            for ext in self._extensions:
                for path in base.rglob(f"*{ext}"):
                    relative = path.relative_to(base).with_suffix("")
                    templates.add(".".join(relative.parts))
        return sorted(templates)


class DictLoader:
    """Load templates from an in-memory dictionary.

    Maps template names to source strings. Names are matched exactly.

    Example:
            >>> loader = DictLoader({
            ...     "layouts.app": "<main>@yield('content')</main>",
            ...     "pages.home": "@extends('layouts.app')@section('content')Hi@endsection",
            ... })
            >>> env = Environment(loader=loader)
            >>> env.render("pages.home")
            '<main>Hi</main>'

    Raises:
        TemplateNotFoundError: If template name not in mapping

    """

    __slots__ = ("_mapping",)

    def __init__(self, mapping: Mapping[str, str]):
        self._mapping = mapping

    def get_source(self, name: str) -> tuple[str, None]:
        if name not in self._mapping:
            from difflib import get_close_matches

            available = sorted(self._mapping.keys())
            msg = f"Template '{name}' not found"
            matches = get_close_matches(name, available, n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"
            elif available:
                msg += f". Available: {', '.join(available[:10])}"
                if len(available) > 10:
                    msg += f" ... ({len(available)} total)"
            raise TemplateNotFoundError(msg)
        return self._mapping[name], None

    def list_templates(self) -> list[str]:
        return sorted(self._mapping.keys())


class ChoiceLoader:
    """Try multiple loaders in order, returning the first match.

    Example:
            >>> custom = DictLoader({"partials.nav": "<nav>Custom</nav>"})
            >>> default = DictLoader({
            ...     "partials.nav": "<nav>Default</nav>",
            ...     "partials.footer": "<footer>Default</footer>",
            ... })
            >>> env = Environment(loader=ChoiceLoader([custom, default]))
            >>> env.render("partials.nav")
            '<nav>Custom</nav>'

    Raises:
        TemplateNotFoundError: If no loader can find the template
    """

    __slots__ = ("_loaders",)

    def __init__(self, loaders: Sequence[Loader]):
        self._loaders = list(loaders)

    def get_source(self, name: str) -> tuple[str, str | None]:
        """Try each loader in order, return first match."""
        for loader in self._loaders:
            try:
                return loader.get_source(name)
            except TemplateNotFoundError:
                continue
        raise TemplateNotFoundError(
            f"Template '{name}' not found in any of {len(self._loaders)} loaders"
        )

    def list_templates(self) -> list[str]:
        """Merge template lists from all loaders (deduplicated, sorted)."""
        templates: set[str] = set()
        for loader in self._loaders:
            if hasattr(loader, "list_templates"):
                templates.update(loader.list_templates())
        return sorted(templates)


class FunctionLoader:
    """Wrap a callable as a template loader.

    The function can return either:
        - ``str``: Template source (filename will be ``"<function>"``).
        - ``tuple[str, str | None]``: ``(source, filename)``.
        - ``None``: Template not found (raises ``TemplateNotFoundError``).

    Example:
            >>> def load(name):
            ...     if name == "greeting":
            ...         return "Hello, {{ name }}!"
            ...     return None
            >>> env = Environment(loader=FunctionLoader(load))
            >>> env.render("greeting", name="World")
            'Hello, World!'
    """

    __slots__ = ("_load_func",)

    def __init__(
        self,
        load_func: Callable[[str], str | tuple[str, str | None] | None],
    ):
        self._load_func = load_func

    def get_source(self, name: str) -> tuple[str, str | None]:
        """Call the load function and normalize the result."""
        result = self._load_func(name)

        if result is None:
            raise TemplateNotFoundError(f"Template '{name}' not found")

        if isinstance(result, str):
            return result, "<function>"

        return result
