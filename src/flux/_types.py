"""Token types shared by the Flux lexer and parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenType(Enum):
    """Kinds of tokens produced by the lexer."""

    DATA = "data"
    ECHO = "echo"  # {{ expr }}
    RAW_ECHO = "raw_echo"  # {!! expr !!}
    DIRECTIVE = "directive"  # @name or @name(args)
    PHP_BLOCK = "php_block"  # @php ... @endphp
    COMPONENT_OPEN = "component_open"  # <x-name ...> or <x-name ... />
    COMPONENT_CLOSE = "component_close"  # </x-name>


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical token with its source position.

    Attributes:
        type: Token kind
        value: Literal text (DATA), expression source (ECHO/RAW_ECHO),
            directive name (DIRECTIVE), statement source (PHP_BLOCK) or
            component name (COMPONENT_*)
        lineno: 1-based line of the token start
        col_offset: 0-based column of the token start
        args: Raw text between the directive's parentheses, if any
        attributes: Component attributes as (name, value) pairs
        self_closing: True for ``<x-name />``
    """

    type: TokenType
    value: str
    lineno: int
    col_offset: int
    args: str | None = None
    attributes: tuple[tuple[str, str], ...] = ()
    self_closing: bool = False

    @property
    def label(self) -> str:
        """Human-readable form used in error messages."""
        if self.type is TokenType.DIRECTIVE:
            return f"@{self.value}"
        if self.type is TokenType.PHP_BLOCK:
            return "@php"
        if self.type is TokenType.COMPONENT_OPEN:
            return f"<x-{self.value}>"
        if self.type is TokenType.COMPONENT_CLOSE:
            return f"</x-{self.value}>"
        return self.type.value
