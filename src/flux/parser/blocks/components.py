"""Component tag parsing for the Flux parser."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flux.nodes import Component
from flux.parser.blocks.core import BlockStackMixin

if TYPE_CHECKING:
    from flux._types import Token
    from flux.nodes import Node


class ComponentParsingMixin(BlockStackMixin):
    """Mixin for parsing ``<x-name>`` component tags.

    Required Host Attributes:
        - All from BlockStackMixin
        - _parse_body: method
        - _finish_block: method
    """

    if TYPE_CHECKING:

        def _parse_body(self, terminators: frozenset[str]) -> list[Node]: ...

        def _finish_block(self) -> None: ...

    def _parse_component(self, start: Token) -> Component:
        """Parse <x-name a="v" /> or <x-name a="v">slot</x-name>.

        Attribute values are plain strings; a bare attribute maps to "".
        Duplicate attributes keep the last value.
        """
        attributes = tuple(dict(start.attributes).items())
        if start.self_closing:
            return Component(
                lineno=start.lineno,
                col_offset=start.col_offset,
                name=start.value,
                attributes=attributes,
                self_closing=True,
            )

        self._push_block(start)
        body = self._parse_body(frozenset({f"</x-{start.value}>"}))
        self._finish_block()
        return Component(
            lineno=start.lineno,
            col_offset=start.col_offset,
            name=start.value,
            attributes=attributes,
            body=tuple(body),
        )
