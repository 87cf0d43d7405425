"""Flux lexer: template source to token stream.

Recognizes five kinds of markup inside otherwise literal text:

    {{ expr }}          escaped echo
    {!! expr !!}        raw echo
    {{-- comment --}}   dropped
    @name / @name(...)  directive (only names in DIRECTIVES)
    <x-name ...> </x-name> <x-name ... />   component tags

Anything else, including ``@media`` or ``user@example.com``, is literal text.
``@@name`` produces a literal ``@name``.

``@else``, ``@auth`` and ``@guest`` consume one following space or tab, which
lets ``@else B`` separate the directive from its text. Closing directives
consume nothing, so ``@endif member`` keeps its space.

Directive arguments are found by matching parentheses while skipping quoted
strings, so ``@if(name == ")")`` works. Unbalanced delimiters raise
TemplateSyntaxError with the line and column of the opening marker.

Example:
    >>> [t.type.name for t in tokenize("Hi {{ name }}@if(x)!@endif")]
    ['DATA', 'ECHO', 'DIRECTIVE', 'DATA', 'DIRECTIVE']

"""

from __future__ import annotations

import re
from bisect import bisect_right

from flux._types import Token, TokenType
from flux.environment.exceptions import TemplateSyntaxError

# Directives that require a parenthesized argument list.
DIRECTIVES_WITH_ARGS: frozenset[str] = frozenset(
    {
        "if",
        "elseif",
        "foreach",
        "for",
        "while",
        "extends",
        "section",
        "yield",
        "include",
        "json",
        "method",
    }
)

# Directives that never take arguments.
BARE_DIRECTIVES: frozenset[str] = frozenset(
    {
        "else",
        "endif",
        "endforeach",
        "endfor",
        "endwhile",
        "endsection",
        "auth",
        "endauth",
        "guest",
        "endguest",
        "csrf",
        "break",
        "continue",
        "endphp",
    }
)

DIRECTIVES: frozenset[str] = DIRECTIVES_WITH_ARGS | BARE_DIRECTIVES | {"php"}

_START_RE = re.compile(r"@@|@|\{\{--|\{\{|\{!!|</x-|<x-")
_DIRECTIVE_RE = re.compile(r"@([A-Za-z_]\w*)")
_COMPONENT_OPEN_RE = re.compile(
    r"<x-(?P<name>[A-Za-z0-9][\w\-.:]*)"
    r"(?P<attrs>(?:\s+[\w\-:.@]+(?:\s*=\s*(?:\"[^\"]*\"|'[^']*'))?)*)"
    r"\s*(?P<close>/?)>"
)
_COMPONENT_CLOSE_RE = re.compile(r"</x-(?P<name>[A-Za-z0-9][\w\-.:]*)\s*>")
_ATTRIBUTE_RE = re.compile(r"([\w\-:.@]+)(?:\s*=\s*(?:\"([^\"]*)\"|'([^']*)'))?")

_HSPACE = " \t"

# Bare directives that swallow one following space or tab.
SPACE_EATING_DIRECTIVES: frozenset[str] = frozenset({"else", "auth", "guest"})


class Lexer:
    """Tokenize Flux template source.

    Adjacent literal text (including text around dropped comments and
    literal ``@``) is merged into a single DATA token.

    Thread-Safety:
        Instances hold per-call state; create one per source string.
    """

    __slots__ = (
        "_line_starts",
        "_name",
        "_pending",
        "_pending_pos",
        "_pos",
        "_source",
        "_tokens",
    )

    def __init__(self, source: str, name: str | None = None):
        self._source = source
        self._name = name
        self._pos = 0
        self._tokens: list[Token] = []
        self._pending: list[str] = []
        self._pending_pos = 0
        self._line_starts = [0]
        self._line_starts.extend(i + 1 for i, ch in enumerate(source) if ch == "\n")

    def tokenize(self) -> list[Token]:
        source = self._source
        n = len(source)
        while self._pos < n:
            match = _START_RE.search(source, self._pos)
            if match is None:
                self._text(source[self._pos :], self._pos)
                break
            start = match.start()
            if start > self._pos:
                self._text(source[self._pos : start], self._pos)

            marker = match.group()
            if marker == "@@":
                self._text("@", start)
                self._pos = start + 2
            elif marker == "@":
                self._pos = self._lex_directive(start)
            elif marker == "{{--":
                end = source.find("--}}", start + 4)
                if end == -1:
                    raise self._error("Unclosed comment '{{--'", start)
                self._pos = end + 4
            elif marker == "{{":
                end = self._find_echo_end(start + 2)
                self._pos = self._emit_echo(TokenType.ECHO, start, start + 2, end) + 2
            elif marker == "{!!":
                end = source.find("!!}", start + 3)
                if end == -1:
                    raise self._error("Unclosed raw echo '{!!'", start)
                self._pos = self._emit_echo(TokenType.RAW_ECHO, start, start + 3, end) + 3
            elif marker == "<x-":
                self._pos = self._lex_component_open(start)
            else:
                self._pos = self._lex_component_close(start)

        self._flush()
        return self._tokens

    # ------------------------------------------------------------------
    # Token producers
    # ------------------------------------------------------------------

    def _lex_directive(self, start: int) -> int:
        source = self._source
        match = _DIRECTIVE_RE.match(source, start)
        if match is None or match.group(1) not in DIRECTIVES:
            self._text("@", start)
            return start + 1

        name = match.group(1)
        end = match.end()
        if name == "php":
            return self._lex_php(start, end)

        if name in DIRECTIVES_WITH_ARGS:
            paren = self._skip_hspace(end)
            if paren >= len(source) or source[paren] != "(":
                raise self._error(
                    f"Directive '@{name}' requires arguments, e.g. @{name}(...)",
                    start,
                    directive=f"@{name}",
                )
            close = self._find_closing_paren(paren, name)
            self._emit(TokenType.DIRECTIVE, name, start, args=source[paren + 1 : close])
            return close + 1

        self._emit(TokenType.DIRECTIVE, name, start)
        if name in SPACE_EATING_DIRECTIVES and end < len(source) and source[end] in _HSPACE:
            end += 1
        return end

    def _lex_php(self, start: int, end: int) -> int:
        source = self._source
        paren = self._skip_hspace(end)
        if paren < len(source) and source[paren] == "(":
            close = self._find_closing_paren(paren, "php")
            self._emit(TokenType.DIRECTIVE, "php", start, args=source[paren + 1 : close])
            return close + 1

        block_end = source.find("@endphp", end)
        if block_end == -1:
            raise self._error("Unclosed '@php' block (missing '@endphp')", start, directive="@php")
        self._emit(TokenType.PHP_BLOCK, source[end:block_end], start)
        return block_end + len("@endphp")

    def _emit_echo(self, kind: TokenType, start: int, body_start: int, body_end: int) -> int:
        expr = self._source[body_start:body_end].strip()
        if not expr:
            opener = "{{" if kind is TokenType.ECHO else "{!!"
            raise self._error(f"Empty expression in '{opener}'", start)
        self._emit(kind, expr, start)
        return body_end

    def _lex_component_open(self, start: int) -> int:
        match = _COMPONENT_OPEN_RE.match(self._source, start)
        if match is None:
            self._text("<", start)
            return start + 1
        attributes = tuple(
            (m.group(1), m.group(2) if m.group(2) is not None else (m.group(3) or ""))
            for m in _ATTRIBUTE_RE.finditer(match.group("attrs"))
        )
        self._emit(
            TokenType.COMPONENT_OPEN,
            match.group("name"),
            start,
            attributes=attributes,
            self_closing=bool(match.group("close")),
        )
        return match.end()

    def _lex_component_close(self, start: int) -> int:
        match = _COMPONENT_CLOSE_RE.match(self._source, start)
        if match is None:
            self._text("<", start)
            return start + 1
        self._emit(TokenType.COMPONENT_CLOSE, match.group("name"), start)
        return match.end()

    # ------------------------------------------------------------------
    # Scanning helpers
    # ------------------------------------------------------------------

    def _skip_hspace(self, pos: int) -> int:
        source = self._source
        while pos < len(source) and source[pos] in _HSPACE:
            pos += 1
        return pos

    def _find_closing_paren(self, open_pos: int, name: str) -> int:
        """Return the index of the ')' matching the '(' at open_pos."""
        source = self._source
        depth = 0
        quote: str | None = None
        i = open_pos
        while i < len(source):
            ch = source[i]
            if quote:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif ch in "\"'":
                quote = ch
            elif ch in "([{":
                depth += 1
            elif ch in ")]}":
                depth -= 1
                if depth == 0:
                    return i
            i += 1
        raise self._error(f"Unclosed '(' in '@{name}'", open_pos, directive=f"@{name}")

    def _find_echo_end(self, pos: int) -> int:
        """Return the index of the '}}' closing an echo, skipping nested braces."""
        source = self._source
        depth = 0
        quote: str | None = None
        i = pos
        while i < len(source):
            ch = source[i]
            if quote:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif ch in "\"'":
                quote = ch
            elif ch == "{":
                depth += 1
            elif ch == "}":
                if depth == 0 and source.startswith("}}", i):
                    return i
                if depth > 0:
                    depth -= 1
            i += 1
        raise self._error("Unclosed echo '{{' (missing '}}')", pos - 2)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _position(self, pos: int) -> tuple[int, int]:
        lineno = bisect_right(self._line_starts, pos)
        return lineno, pos - self._line_starts[lineno - 1]

    def _text(self, value: str, pos: int) -> None:
        if not self._pending:
            self._pending_pos = pos
        self._pending.append(value)

    def _flush(self) -> None:
        if self._pending:
            lineno, col = self._position(self._pending_pos)
            self._tokens.append(Token(TokenType.DATA, "".join(self._pending), lineno, col))
            self._pending = []

    def _emit(
        self,
        kind: TokenType,
        value: str,
        pos: int,
        *,
        args: str | None = None,
        attributes: tuple[tuple[str, str], ...] = (),
        self_closing: bool = False,
    ) -> None:
        self._flush()
        lineno, col = self._position(pos)
        self._tokens.append(
            Token(
                kind,
                value,
                lineno,
                col,
                args=args,
                attributes=attributes,
                self_closing=self_closing,
            )
        )

    def _error(self, message: str, pos: int, directive: str | None = None) -> TemplateSyntaxError:
        lineno, col = self._position(pos)
        return TemplateSyntaxError(
            message,
            lineno=lineno,
            name=self._name,
            source=self._source,
            col_offset=col,
            directive=directive,
        )


def tokenize(source: str, name: str | None = None) -> list[Token]:
    """Tokenize template source.

    Raises:
        TemplateSyntaxError: On unclosed echoes, comments, ``@php`` blocks
            or directive argument lists.
    """
    return Lexer(source, name).tokenize()
