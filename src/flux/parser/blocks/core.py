"""Block stack management for the Flux parser.

Every opening directive or component tag is pushed on an explicit stack
and popped by its closer. Anything that closes the wrong opener, or a
closer with nothing open, fails with a TemplateSyntaxError naming both
directives and the line of the opener.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flux.environment.exceptions import ErrorCode, TemplateSyntaxError

if TYPE_CHECKING:
    from flux._types import Token


class BlockStackMixin:
    """Mixin tracking open blocks and producing located syntax errors.

    Required Host Attributes:
        - _block_stack: list[Token]
        - _name: str | None
        - _source: str | None
    """

    if TYPE_CHECKING:
        _block_stack: list[Token]
        _name: str | None
        _source: str | None

    def _push_block(self, token: Token) -> None:
        self._block_stack.append(token)

    def _pop_block(self) -> Token:
        return self._block_stack.pop()

    def _error(
        self,
        message: str,
        token: Token | None = None,
        *,
        lineno: int | None = None,
        col_offset: int | None = None,
        code: ErrorCode | None = None,
    ) -> TemplateSyntaxError:
        """Build a TemplateSyntaxError located at token (or explicit position)."""
        if token is not None:
            lineno = token.lineno if lineno is None else lineno
            col_offset = token.col_offset if col_offset is None else col_offset
        return TemplateSyntaxError(
            message,
            lineno=lineno,
            name=self._name,
            source=self._source,
            col_offset=col_offset,
            directive=token.label if token is not None else None,
            code=code,
        )

    def _unclosed_error(self) -> TemplateSyntaxError:
        opener = self._block_stack[-1]
        return self._error(
            f"Unclosed '{opener.label}' (opened at line {opener.lineno})",
            opener,
            code=ErrorCode.UNCLOSED_BLOCK,
        )

    def _stray_closer_error(self, token: Token) -> TemplateSyntaxError:
        if self._block_stack:
            opener = self._block_stack[-1]
            return self._error(
                f"'{token.label}' does not close '{opener.label}' opened at line {opener.lineno}",
                token,
                code=ErrorCode.UNEXPECTED_DIRECTIVE,
            )
        return self._error(
            f"Unexpected '{token.label}' with no open block",
            token,
            code=ErrorCode.UNEXPECTED_DIRECTIVE,
        )
