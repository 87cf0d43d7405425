"""Template structure block parsing for the Flux parser.

Provides mixin for parsing layout and composition directives (@extends,
@section, @yield, @include) and the form helpers (@json, @method, @csrf).
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from flux.environment.exceptions import ErrorCode
from flux.nodes import Csrf, Include, Json, Method, Section, Yield
from flux.parser.blocks.core import BlockStackMixin

if TYPE_CHECKING:
    from flux._types import Token
    from flux.nodes import Expr, Node

_HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


class TemplateStructureParsingMixin(BlockStackMixin):
    """Mixin for parsing template structure directives.

    Layout rules enforced here:
        - ``@extends`` appears at the top level, at most once, and before
          any ``@endsection``
        - at most one section is open at a time

    Required Host Attributes:
        - All from BlockStackMixin
        - _extends: str | None
        - _open_section: Token | None
        - _section_closed: bool
        - _sections: list[str]
        - _parse_body: method
        - _args: method
        - _finish_block: method
    """

    if TYPE_CHECKING:
        _extends: str | None
        _open_section: Token | None
        _section_closed: bool
        _sections: list[str]

        def _parse_body(self, terminators: frozenset[str]) -> list[Node]: ...

        def _args(self, token: Token, min_args: int, max_args: int) -> list[Expr]: ...

        def _finish_block(self) -> None: ...

    def _string_arg(self, token: Token, expr: Expr, what: str) -> str:
        """Require a string literal argument (names are resolved at compile time)."""
        if not (isinstance(expr.tree, ast.Constant) and isinstance(expr.tree.value, str)):
            raise self._error(
                f"'{token.label}' expects a quoted {what}, got {expr.source!r}",
                token,
            )
        if not expr.tree.value:
            raise self._error(f"'{token.label}' {what} cannot be empty", token)
        return expr.tree.value

    def _parse_extends(self, start: Token) -> None:
        """Record @extends("layout"); produces no body node."""
        if self._block_stack:
            raise self._error(
                "'@extends' must appear at the top level of a template",
                start,
                code=ErrorCode.INVALID_LAYOUT,
            )
        if self._extends is not None:
            raise self._error(
                f"Template already extends '{self._extends}'; '@extends' may appear only once",
                start,
                code=ErrorCode.INVALID_LAYOUT,
            )
        if self._section_closed:
            raise self._error(
                "'@extends' must appear before any '@endsection'",
                start,
                code=ErrorCode.INVALID_LAYOUT,
            )
        (expr,) = self._args(start, 1, 1)
        self._extends = self._string_arg(start, expr, "layout name")

    def _parse_section(self, start: Token) -> Section:
        """Parse @section("name")...@endsection."""
        (expr,) = self._args(start, 1, 1)
        name = self._string_arg(start, expr, "section name")
        if self._open_section is not None:
            opener = self._open_section
            open_name = self._sections[-1]
            raise self._error(
                f"Cannot open section '{name}' while section '{open_name}' "
                f"(opened at line {opener.lineno}) is still open",
                start,
                code=ErrorCode.NESTED_SECTION,
            )

        self._open_section = start
        self._sections.append(name)
        self._push_block(start)
        body = self._parse_body(frozenset({"endsection"}))
        self._finish_block()
        self._open_section = None
        self._section_closed = True

        return Section(
            lineno=start.lineno,
            col_offset=start.col_offset,
            name=name,
            body=tuple(body),
        )

    def _parse_yield(self, start: Token) -> Yield:
        """Parse @yield("name") or @yield("name", default)."""
        args = self._args(start, 1, 2)
        return Yield(
            lineno=start.lineno,
            col_offset=start.col_offset,
            name=self._string_arg(start, args[0], "section name"),
            default=args[1] if len(args) > 1 else None,
        )

    def _parse_include(self, start: Token) -> Include:
        """Parse @include("name") or @include("name", {"key": value})."""
        args = self._args(start, 1, 2)
        return Include(
            lineno=start.lineno,
            col_offset=start.col_offset,
            template=self._string_arg(start, args[0], "template name"),
            data=args[1] if len(args) > 1 else None,
        )

    def _parse_json(self, start: Token) -> Json:
        (expr,) = self._args(start, 1, 1)
        return Json(lineno=start.lineno, col_offset=start.col_offset, expr=expr)

    def _parse_method(self, start: Token) -> Method:
        """Parse @method("PUT"); the verb is validated and upper-cased."""
        (expr,) = self._args(start, 1, 1)
        verb = self._string_arg(start, expr, "HTTP method").upper()
        if verb not in _HTTP_METHODS:
            raise self._error(f"Unknown HTTP method '{verb}' in '@method'", start)
        return Method(lineno=start.lineno, col_offset=start.col_offset, verb=verb)

    def _parse_csrf(self, start: Token) -> Csrf:
        return Csrf(lineno=start.lineno, col_offset=start.col_offset)
