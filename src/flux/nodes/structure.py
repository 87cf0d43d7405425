"""Template structure nodes for Flux AST."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from flux.nodes.base import Node
from flux.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class Section(Node):
    """Captured section: @section("name")...@endsection"""

    name: str
    body: Sequence[Node]


@dataclass(frozen=True, slots=True)
class Yield(Node):
    """Section placeholder in a layout: @yield("name"[, default])"""

    name: str
    default: Expr | None = None


@dataclass(frozen=True, slots=True)
class Include(Node):
    """Include another template: @include("name"[, {"key": value}])"""

    template: str
    data: Expr | None = None


@dataclass(frozen=True, slots=True)
class Component(Node):
    """Component tag: <x-name attr="v">slot</x-name> or <x-name attr="v" />"""

    name: str
    attributes: Sequence[tuple[str, str]]
    body: Sequence[Node] = ()
    self_closing: bool = False


@dataclass(frozen=True, slots=True)
class Template(Node):
    """Root node representing a complete template.

    Attributes:
        body: Top-level nodes (``@extends`` is recorded here, not in body)
        extends: Layout name from ``@extends``, if declared
        sections: Names of all sections, in source order
    """

    body: Sequence[Node]
    extends: str | None = None
    sections: Sequence[str] = ()
