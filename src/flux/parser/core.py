"""Flux Parser: token stream to immutable node tree.

A recursive-descent parser over the lexer's flat token list. Block
directives are matched with an explicit stack (see ``blocks.core``), so every
unbalanced template fails at compile time instead of producing broken output.

Closers (``@endif``, ``@else``, ``</x-card>``, ...) are never parsed as nodes
on their own: ``_parse_body`` stops when it meets one of the closers the
enclosing block expects, and raises for any other.

Example:
    >>> from flux.lexer import tokenize
    >>> tree = Parser(tokenize("@if(x)yes@endif"), name="t").parse()
    >>> type(tree.body[0]).__name__
    'If'

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flux._types import Token, TokenType
from flux.environment.exceptions import ErrorCode
from flux.nodes import Data, Output, Template
from flux.parser.blocks import (
    ComponentParsingMixin,
    ControlFlowParsingMixin,
    TemplateStructureParsingMixin,
)
from flux.parser.expressions import parse_arguments, parse_expression

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flux.nodes import Expr, Node

# Directives that end or split an open block.
CLOSERS: frozenset[str] = frozenset(
    {
        "elseif",
        "else",
        "endif",
        "endforeach",
        "endfor",
        "endwhile",
        "endsection",
        "endauth",
        "endguest",
    }
)


class Parser(
    ControlFlowParsingMixin,
    TemplateStructureParsingMixin,
    ComponentParsingMixin,
):
    """Parse a Flux token list into a ``Template`` node.

    Attributes:
        _tokens: Token list from the lexer
        _name: Template name for error messages
        _source: Template source for error snippets
        _block_stack: Open block tokens, innermost last
        _loop_depth: Number of enclosing loops (for @break/@continue)
        _extends: Layout declared by @extends
        _open_section: Token of the currently open @section
        _section_closed: True once any @endsection has been seen
        _sections: Section names in source order
    """

    __slots__ = (
        "_block_stack",
        "_dispatch",
        "_extends",
        "_loop_depth",
        "_name",
        "_open_section",
        "_pos",
        "_section_closed",
        "_sections",
        "_source",
        "_tokens",
    )

    def __init__(
        self,
        tokens: Sequence[Token],
        name: str | None = None,
        source: str | None = None,
    ):
        self._tokens = list(tokens)
        self._pos = 0
        self._name = name
        self._source = source
        self._block_stack: list[Token] = []
        self._loop_depth = 0
        self._extends: str | None = None
        self._open_section: Token | None = None
        self._section_closed = False
        self._sections: list[str] = []
        self._dispatch = {
            "if": self._parse_if,
            "foreach": self._parse_foreach,
            "for": self._parse_for,
            "while": self._parse_while,
            "break": self._parse_break,
            "continue": self._parse_continue,
            "php": self._parse_php,
            "auth": self._parse_auth_guard,
            "guest": self._parse_auth_guard,
            "extends": self._parse_extends,
            "section": self._parse_section,
            "yield": self._parse_yield,
            "include": self._parse_include,
            "json": self._parse_json,
            "method": self._parse_method,
            "csrf": self._parse_csrf,
        }

    def parse(self) -> Template:
        """Parse the whole token list.

        Raises:
            TemplateSyntaxError: On unbalanced or misplaced directives and
                invalid expressions.
        """
        body = self._parse_body(frozenset())
        return Template(
            lineno=1,
            col_offset=0,
            body=tuple(body),
            extends=self._extends,
            sections=tuple(dict.fromkeys(self._sections)),
        )

    # ------------------------------------------------------------------
    # Token navigation
    # ------------------------------------------------------------------

    @property
    def _current(self) -> Token | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _finish_block(self) -> None:
        """Consume the closer found by ``_parse_body`` and pop its opener."""
        self._advance()
        self._pop_block()

    # ------------------------------------------------------------------
    # Body parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _closer_key(token: Token) -> str | None:
        if token.type is TokenType.DIRECTIVE and token.value in CLOSERS:
            return token.value
        if token.type is TokenType.COMPONENT_CLOSE:
            return f"</x-{token.value}>"
        return None

    def _parse_body(self, terminators: frozenset[str]) -> list[Node]:
        """Parse nodes until one of ``terminators`` (left unconsumed).

        With no terminators the body runs to the end of the token list.
        """
        body: list[Node] = []
        while (token := self._current) is not None:
            key = self._closer_key(token)
            if key is not None:
                if key in terminators:
                    return body
                raise self._stray_closer_error(token)
            node = self._parse_node(self._advance())
            if node is not None:
                body.append(node)

        if terminators:
            raise self._unclosed_error()
        return body

    def _parse_node(self, token: Token) -> Node | None:
        if token.type is TokenType.DATA:
            return Data(lineno=token.lineno, col_offset=token.col_offset, value=token.value)
        if token.type is TokenType.ECHO or token.type is TokenType.RAW_ECHO:
            return Output(
                lineno=token.lineno,
                col_offset=token.col_offset,
                expr=self._expr(token, token.value),
                escape=token.type is TokenType.ECHO,
            )
        if token.type is TokenType.PHP_BLOCK:
            return self._parse_php(token)
        if token.type is TokenType.COMPONENT_OPEN:
            return self._parse_component(token)

        handler = self._dispatch.get(token.value)
        if handler is None:
            raise self._error(
                f"Unexpected '{token.label}'", token, code=ErrorCode.UNEXPECTED_DIRECTIVE
            )
        return handler(token)

    # ------------------------------------------------------------------
    # Expression helpers
    # ------------------------------------------------------------------

    def _expr(self, token: Token, text: str | None = None) -> Expr:
        """Parse a sandboxed expression from ``text`` (default: the directive args)."""
        return parse_expression(
            token.args if text is None else text,
            token.lineno,
            token.col_offset,
            directive=token.label,
            name=self._name,
            source=self._source,
        )

    def _args(self, token: Token, min_args: int, max_args: int) -> list[Expr]:
        args = parse_arguments(
            token.args or "",
            token.lineno,
            token.col_offset,
            directive=token.label,
            name=self._name,
            source=self._source,
        )
        if not min_args <= len(args) <= max_args:
            expected = str(min_args) if min_args == max_args else f"{min_args} to {max_args}"
            raise self._error(
                f"'{token.label}' expects {expected} argument(s), got {len(args)}",
                token,
            )
        return args


def parse(tokens: Sequence[Token], name: str | None = None, source: str | None = None) -> Template:
    """Parse a token list into a Template node."""
    return Parser(tokens, name, source).parse()
