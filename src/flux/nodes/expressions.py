"""Expression nodes for Flux AST.

Template expressions use Python expression syntax restricted to a sandboxed
subset (see ``flux.parser.expressions``). The parser keeps the validated
Python ``ast.expr`` tree alongside the original text; the compiler rewrites
the tree so names, attributes and calls go through runtime helpers.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass

from flux.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Expr(Node):
    """A validated template expression.

    Attributes:
        source: Expression text as written in the template
        tree: Parsed and sandbox-validated Python expression
    """

    source: str
    tree: ast.expr


@dataclass(frozen=True, slots=True)
class Assign(Node):
    """Sandboxed assignment from ``@php``: ``total = total + item.price``

    Augmented forms (``+=``) are stored with ``op`` set to the binary
    operator; plain assignment has ``op=None``.
    """

    target: str
    value: Expr
    op: ast.operator | None = None
