"""Control flow nodes for Flux AST."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from flux.nodes.base import Node
from flux.nodes.expressions import Assign, Expr


@dataclass(frozen=True, slots=True)
class If(Node):
    """Conditional: @if(cond)...@elseif(cond)...@else...@endif"""

    test: Expr
    body: Sequence[Node]
    elif_: Sequence[tuple[Expr, Sequence[Node]]] = ()
    else_: Sequence[Node] = ()


@dataclass(frozen=True, slots=True)
class Foreach(Node):
    """Iteration: @foreach(items as item) or @foreach(map as key => value)"""

    iter: Expr
    target: str
    body: Sequence[Node]
    key_target: str | None = None


@dataclass(frozen=True, slots=True)
class For(Node):
    """Counter loop: @for(i = 0; i < 3; i++)...@endfor"""

    init: Sequence[Assign]
    test: Expr
    step: Sequence[Assign]
    body: Sequence[Node]


@dataclass(frozen=True, slots=True)
class While(Node):
    """While loop: @while(cond)...@endwhile"""

    test: Expr
    body: Sequence[Node]


@dataclass(frozen=True, slots=True)
class Break(Node):
    """Break out of the innermost loop: @break"""


@dataclass(frozen=True, slots=True)
class Continue(Node):
    """Skip to the next iteration: @continue"""


@dataclass(frozen=True, slots=True)
class AuthGuard(Node):
    """Auth-state guard: @auth...@endauth, or @guest...@endguest (guest=True)"""

    guest: bool
    body: Sequence[Node]
    else_: Sequence[Node] = ()


@dataclass(frozen=True, slots=True)
class Statements(Node):
    """Sandboxed assignments from @php(...) or @php ... @endphp"""

    body: Sequence[Assign]
