"""Exceptions for the Flux template engine.

Exception Hierarchy:
TemplateError (base)
├── TemplateNotFoundError          # Loader could not resolve a name
├── TemplateSyntaxError            # Malformed or unbalanced directive
├── NestedLayoutError              # A layout declared its own @extends
├── RecursionLimitExceededError    # Include/component/layout depth exceeded
└── TemplateRuntimeError           # Render-time error with context
    └── ExpressionEvaluationError  # Unresolved value in strict mode

Every kind is distinct so an application can catch exactly what it wants to
turn into a fallback page:

    >>> try:
    ...     html = env.render("pages.home", user=user)
    ... except TemplateNotFoundError:
    ...     html = env.render("errors.404")

Error Messages:
Syntax and runtime errors carry the template name, line number and, when
the source is known, a snippet of the offending line:

    ```
    Syntax Error: Unclosed '@foreach' (opened at line 3)
      --> pages/list.flux:3:4
       |
      3 |     @foreach(items as item)
       |     ^
    ```

"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Searchable error codes for Flux template errors.

    Format: F-{CATEGORY}-{NUMBER}
    Categories: PAR (parser), RUN (runtime), TPL (template loading)
    """

    # Parser errors (F-PAR-xxx)
    UNEXPECTED_DIRECTIVE = "F-PAR-001"
    UNCLOSED_BLOCK = "F-PAR-002"
    INVALID_EXPRESSION = "F-PAR-003"
    INVALID_LAYOUT = "F-PAR-004"
    NESTED_SECTION = "F-PAR-005"

    # Runtime errors (F-RUN-xxx)
    UNDEFINED_VALUE = "F-RUN-001"
    RECURSION_LIMIT = "F-RUN-002"
    NESTED_LAYOUT = "F-RUN-003"
    RUNTIME_ERROR = "F-RUN-004"

    # Template loading errors (F-TPL-xxx)
    TEMPLATE_NOT_FOUND = "F-TPL-001"
    SYNTAX_ERROR = "F-TPL-002"

    @property
    def category(self) -> str:
        """Error category ('parser', 'runtime' or 'template')."""
        prefix = self.value.split("-")[1]
        return {
            "PAR": "parser",
            "RUN": "runtime",
            "TPL": "template",
        }.get(prefix, "unknown")


# ---------------------------------------------------------------------------
# Source snippets
# ---------------------------------------------------------------------------


def format_template_stack(stack: list[tuple[str, int]] | None) -> str:
    """Format the include/component chain for error messages.

    Example:
        >>> print(format_template_stack([("layouts.app", 12), ("partials.nav", 3)]))
        Template stack:
          • layouts.app:12
          • partials.nav:3
    """
    if not stack:
        return ""
    lines = ["Template stack:"]
    for template_name, line_num in stack:
        lines.append(f"  • {template_name}:{line_num}")
    return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Template source lines around an error line.

    Attributes:
        lines: Tuple of (line_number, line_content) pairs around the error.
        error_line: The 1-based line number where the error occurred.
        column: Optional column offset for a caret pointer.
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int
    column: int | None = None

    def format(self) -> str:
        parts: list[str] = ["   |"]
        for lineno, content in self.lines:
            marker = ">" if lineno == self.error_line else " "
            parts.append(f"{marker}{lineno:>3} | {content}")
            if lineno == self.error_line and self.column is not None:
                parts.append(f"    | {' ' * self.column}^")
        parts.append("   |")
        return "\n".join(parts)


def build_source_snippet(
    source: str,
    error_line: int,
    *,
    context_lines: int = 2,
    column: int | None = None,
) -> SourceSnippet:
    """Build a SourceSnippet from template source.

    Args:
        source: Full template source text.
        error_line: 1-based line number of the error.
        context_lines: Number of lines to show before/after the error line.
        column: Optional column offset for caret pointer.
    """
    all_lines = source.splitlines()
    start = max(0, error_line - 1 - context_lines)
    end = min(len(all_lines), error_line + context_lines)
    lines = tuple((i + 1, all_lines[i]) for i in range(start, end))
    return SourceSnippet(lines=lines, error_line=error_line, column=column)


class TemplateError(Exception):
    """Base exception for all Flux template errors.

    Attributes:
        code: Optional ErrorCode for searchable error identification.
    """

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """Format error as a short diagnostic prefixed with its code."""
        header = str(self)
        if self.code and self.code.value not in header:
            header = f"{self.code.value}: {header}"
        return header


class TemplateNotFoundError(TemplateError):
    """Template not found by the configured loader.

    Raised for missing ``@include`` and ``@extends`` targets, for
    ``Environment.get_template()`` and, in strict mode, for components that
    are neither registered nor resolvable.
    """

    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND


class TemplateSyntaxError(TemplateError):
    """Malformed or unbalanced directive in template source.

    Always raised at compile time, before any output is produced.

    Attributes:
        message: Error description
        directive: The offending directive (e.g. ``'@endif'``), if any
        lineno: 1-based line number
        col_offset: 0-based column
        name: Template name
        source: Template source, used for the snippet
    """

    code: ErrorCode | None = ErrorCode.SYNTAX_ERROR

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
        col_offset: int | None = None,
        directive: str | None = None,
        code: ErrorCode | None = None,
    ):
        if code is not None:
            self.code = code
        self.message = message
        self.lineno = lineno
        self.name = name
        self.filename = filename
        self.source = source
        self.col_offset = col_offset
        self.directive = directive
        super().__init__(self._format_message())

    def _location(self) -> str:
        location = self.filename or self.name or "<template>"
        if self.lineno:
            location += f":{self.lineno}"
            if self.col_offset is not None:
                location += f":{self.col_offset}"
        return location

    def _format_message(self) -> str:
        header = f"Syntax Error: {self.message}\n  --> {self._location()}"

        if self.source and self.lineno:
            lines = self.source.splitlines()
            if 0 < self.lineno <= len(lines):
                error_line = lines[self.lineno - 1]
                snippet = f"\n   |\n{self.lineno:>3} | {error_line}"
                if self.col_offset is not None:
                    snippet += f"\n   | {' ' * self.col_offset}^"
                return header + snippet

        return header

    def with_filename(self, filename: str | None) -> TemplateSyntaxError:
        """Return a copy located at ``filename`` (as resolved by the loader)."""
        return TemplateSyntaxError(
            self.message,
            lineno=self.lineno,
            name=self.name,
            filename=filename,
            source=self.source,
            col_offset=self.col_offset,
            directive=self.directive,
            code=self.code,
        )


class NestedLayoutError(TemplateError):
    """A layout template itself declares ``@extends``.

    Only one layout hop is supported per render call.
    """

    code: ErrorCode | None = ErrorCode.NESTED_LAYOUT

    def __init__(self, layout: str, parent: str, child: str | None = None):
        self.layout = layout
        self.parent = parent
        self.child = child
        via = f" (extended by '{child}')" if child else ""
        super().__init__(
            f"Layout '{layout}'{via} declares @extends('{parent}'); "
            f"multi-level layouts are not supported"
        )


class RecursionLimitExceededError(TemplateError):
    """Include/component/layout nesting exceeded ``max_depth``.

    Usually a template including itself, directly or through a cycle.
    """

    code: ErrorCode | None = ErrorCode.RECURSION_LIMIT

    def __init__(
        self,
        template_name: str,
        max_depth: int,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.template_name = template_name
        self.max_depth = max_depth
        self.template_stack = template_stack or []
        msg = (
            f"Maximum render depth exceeded ({max_depth}) when rendering "
            f"'{template_name}'. Check for circular includes: A → B → A"
        )
        if self.template_stack:
            msg += "\n" + format_template_stack(self.template_stack[-5:])
        super().__init__(msg)


class TemplateRuntimeError(TemplateError):
    """Render-time error with debugging context.

    Output Format:
            ```
            Runtime Error: division by zero
              Location: pages.stats:7
               |
              > 7 | {{ total / count }}
               |
            ```

    Attributes:
        message: Error description
        expression: Template expression that failed
        template_name: Name of the template
        lineno: Line number in template source
        suggestion: Actionable fix suggestion
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        values: dict[str, Any] | None = None,
        template_name: str | None = None,
        lineno: int | None = None,
        suggestion: str | None = None,
        source_snippet: SourceSnippet | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.message = message
        self.expression = expression
        self.values = values or {}
        self.template_name = template_name
        self.lineno = lineno
        self.suggestion = suggestion
        self.source_snippet = source_snippet
        self.template_stack = template_stack or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}"]

        if self.template_name or self.lineno:
            loc = self.template_name or "<template>"
            if self.lineno:
                loc += f":{self.lineno}"
            parts.append(f"  Location: {loc}")

        if self.source_snippet:
            parts.append(self.source_snippet.format())

        if self.template_stack:
            parts.append("")
            parts.append(format_template_stack(self.template_stack))

        if self.expression:
            parts.append(f"  Expression: {self.expression}")

        if self.values:
            parts.append("  Values:")
            for name, value in self.values.items():
                value_repr = repr(value)
                if len(value_repr) > 80:
                    value_repr = value_repr[:77] + "..."
                parts.append(f"    {name} = {value_repr} ({type(value).__name__})")

        if self.suggestion:
            parts.append(f"\n  Suggestion: {self.suggestion}")

        return "\n".join(parts)


class ExpressionEvaluationError(TemplateRuntimeError):
    """An expression could not resolve a value it needs.

    Raised in strict mode for undefined names, missing keys and missing
    attributes. Raised in both modes for calls to unknown functions and for
    callable arguments passed to a function.

    If ``available_names`` is given, a "Did you mean?" suggestion is added
    when a close match exists.
    """

    code: ErrorCode | None = ErrorCode.UNDEFINED_VALUE

    def __init__(
        self,
        name: str,
        message: str | None = None,
        *,
        available_names: frozenset[str] | None = None,
        **kwargs: Any,
    ):
        self.name = name
        msg = message or f"Undefined value '{name}'"
        suggestion = kwargs.pop("suggestion", None)
        if suggestion is None and available_names:
            from difflib import get_close_matches

            matches = get_close_matches(name, sorted(available_names), n=1, cutoff=0.6)
            if matches:
                suggestion = f"Did you mean '{matches[0]}'?"
        super().__init__(msg, suggestion=suggestion, **kwargs)
