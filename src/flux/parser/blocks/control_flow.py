"""Control flow block parsing for the Flux parser.

Provides mixin for parsing @if, @foreach, @for, @while, @break, @continue,
@php and the @auth/@guest guards.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from flux._types import TokenType
from flux.nodes import (
    AuthGuard,
    Break,
    Continue,
    For,
    Foreach,
    If,
    Statements,
    While,
)
from flux.parser.blocks.core import BlockStackMixin
from flux.parser.expressions import parse_assignments, split_top_level

if TYPE_CHECKING:
    from flux._types import Token
    from flux.nodes import Expr, Node

_FOREACH_RE = re.compile(
    r"^(?P<iter>.+?)\s+as\s+(?:(?P<key>[A-Za-z_]\w*)\s*=>\s*)?(?P<value>[A-Za-z_]\w*)\s*$",
    re.DOTALL,
)


class ControlFlowParsingMixin(BlockStackMixin):
    """Mixin for parsing control flow directives.

    Required Host Attributes:
        - All from BlockStackMixin
        - _loop_depth: int
        - _current: Token | None
        - _advance: method
        - _parse_body: method
        - _expr: method
        - _finish_block: method
    """

    if TYPE_CHECKING:
        _loop_depth: int

        @property
        def _current(self) -> Token | None: ...

        def _advance(self) -> Token: ...

        def _parse_body(self, terminators: frozenset[str]) -> list[Node]: ...

        def _expr(self, token: Token, text: str | None = None) -> Expr: ...

        def _finish_block(self) -> None: ...

    def _parse_if(self, start: Token) -> If:
        """Parse @if(cond)...[@elseif(cond)...]*[@else...]@endif."""
        test = self._expr(start)
        self._push_block(start)
        body = self._parse_body(frozenset({"elseif", "else", "endif"}))

        elif_: list[tuple[Expr, tuple[Node, ...]]] = []
        else_: list[Node] = []
        while True:
            token = self._advance()
            if token.value == "elseif":
                elif_test = self._expr(token)
                elif_body = self._parse_body(frozenset({"elseif", "else", "endif"}))
                elif_.append((elif_test, tuple(elif_body)))
            elif token.value == "else":
                else_ = self._parse_body(frozenset({"endif"}))
            else:
                break
        self._pop_block()

        return If(
            lineno=start.lineno,
            col_offset=start.col_offset,
            test=test,
            body=tuple(body),
            elif_=tuple(elif_),
            else_=tuple(else_),
        )

    def _parse_foreach(self, start: Token) -> Foreach:
        """Parse @foreach(items as item) or @foreach(map as key => value)."""
        match = _FOREACH_RE.match(start.args or "")
        if match is None:
            raise self._error(
                "Expected '@foreach(items as item)' or '@foreach(items as key => value)'",
                start,
            )
        iterable = self._expr(start, match.group("iter"))
        key, value = match.group("key"), match.group("value")
        if key == value:
            raise self._error(f"Key and value in '@foreach' must differ, got '{key}' twice", start)

        self._push_block(start)
        self._loop_depth += 1
        body = self._parse_body(frozenset({"endforeach"}))
        self._loop_depth -= 1
        self._finish_block()

        return Foreach(
            lineno=start.lineno,
            col_offset=start.col_offset,
            iter=iterable,
            target=value,
            body=tuple(body),
            key_target=key,
        )

    def _parse_for(self, start: Token) -> For:
        """Parse @for(i = 0; i < n; i++)...@endfor."""
        parts = split_top_level(start.args or "", ";")
        if len(parts) != 3:
            raise self._error("Expected '@for(init; condition; step)'", start)
        init_src, test_src, step_src = parts
        if not test_src.strip():
            raise self._error("'@for' requires a loop condition", start)

        init = self._assignments(start, init_src)
        test = self._expr(start, test_src)
        step = self._assignments(start, step_src)

        self._push_block(start)
        self._loop_depth += 1
        body = self._parse_body(frozenset({"endfor"}))
        self._loop_depth -= 1
        self._finish_block()

        return For(
            lineno=start.lineno,
            col_offset=start.col_offset,
            init=tuple(init),
            test=test,
            step=tuple(step),
            body=tuple(body),
        )

    def _parse_while(self, start: Token) -> While:
        """Parse @while(cond)...@endwhile."""
        test = self._expr(start)
        self._push_block(start)
        self._loop_depth += 1
        body = self._parse_body(frozenset({"endwhile"}))
        self._loop_depth -= 1
        self._finish_block()
        return While(
            lineno=start.lineno,
            col_offset=start.col_offset,
            test=test,
            body=tuple(body),
        )

    def _parse_break(self, start: Token) -> Break:
        if not self._loop_depth:
            raise self._error("'@break' used outside of a loop", start)
        return Break(lineno=start.lineno, col_offset=start.col_offset)

    def _parse_continue(self, start: Token) -> Continue:
        if not self._loop_depth:
            raise self._error("'@continue' used outside of a loop", start)
        return Continue(lineno=start.lineno, col_offset=start.col_offset)

    def _parse_php(self, start: Token) -> Statements:
        """Parse @php(a = 1) or @php a = 1; b = 2 @endphp."""
        text = start.args if start.type is TokenType.DIRECTIVE else start.value
        body = parse_assignments(
            text,
            start.lineno,
            start.col_offset,
            name=self._name,
            source=self._source,
        )
        return Statements(
            lineno=start.lineno,
            col_offset=start.col_offset,
            body=tuple(body),
        )

    def _parse_auth_guard(self, start: Token) -> AuthGuard:
        """Parse @auth...[@else...]@endauth or @guest...[@else...]@endguest."""
        guest = start.value == "guest"
        closer = "endguest" if guest else "endauth"
        self._push_block(start)
        body = self._parse_body(frozenset({"else", closer}))
        else_: list[Node] = []
        if self._advance().value == "else":
            else_ = self._parse_body(frozenset({closer}))
            self._advance()
        self._pop_block()
        return AuthGuard(
            lineno=start.lineno,
            col_offset=start.col_offset,
            guest=guest,
            body=tuple(body),
            else_=tuple(else_),
        )

    def _assignments(self, start: Token, text: str):
        return parse_assignments(
            text,
            start.lineno,
            start.col_offset,
            directive=start.label,
            name=self._name,
            source=self._source,
            separators=",",
        )
