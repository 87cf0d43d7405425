"""Output nodes for Flux AST."""

from __future__ import annotations

from dataclasses import dataclass

from flux.nodes.base import Node
from flux.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class Data(Node):
    """Literal text between template constructs."""

    value: str


@dataclass(frozen=True, slots=True)
class Output(Node):
    """Echo: {{ expr }} (escape=True) or {!! expr !!} (escape=False)"""

    expr: Expr
    escape: bool = True


@dataclass(frozen=True, slots=True)
class Json(Node):
    """JSON echo: @json(expr)"""

    expr: Expr


@dataclass(frozen=True, slots=True)
class Csrf(Node):
    """Hidden CSRF token input: @csrf"""


@dataclass(frozen=True, slots=True)
class Method(Node):
    """Hidden HTTP method override input: @method("PUT")"""

    verb: str
