"""Expression compilation for the Flux compiler.

Template expressions arrive as sandbox-validated Python ``ast.expr`` trees.
Compilation rewrites them so every data access goes through a runtime
helper:

    name            -> _lookup(ctx, 'name')   (or the loop local)
    true/false/null -> True/False/None
    a.b             -> _getattr(a, 'b')
    a[b]            -> _getitem(a, b)
    a[1:2]          -> _getitem(a, _slice(1, 2, None))
    f(x)            -> _call('f', x)

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
import copy
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flux.nodes import Expr

_CONSTANTS = {"true": True, "false": False, "null": None}


def _helper_call(helper: str, *args: ast.expr) -> ast.Call:
    return ast.Call(
        func=ast.Name(id=helper, ctx=ast.Load()),
        args=list(args),
        keywords=[],
    )


class _ExpressionRewriter(ast.NodeTransformer):
    """Rewrite a validated expression tree into runtime helper calls."""

    def __init__(self, locals_: dict[str, str]):
        self._locals = locals_

    def visit_Name(self, node: ast.Name) -> ast.expr:
        if node.id in self._locals:
            return ast.Name(id=self._locals[node.id], ctx=ast.Load())
        if node.id in _CONSTANTS:
            return ast.Constant(value=_CONSTANTS[node.id])
        return _helper_call(
            "_lookup",
            ast.Name(id="ctx", ctx=ast.Load()),
            ast.Constant(value=node.id),
        )

    def visit_Attribute(self, node: ast.Attribute) -> ast.expr:
        return _helper_call("_getattr", self.visit(node.value), ast.Constant(value=node.attr))

    def visit_Subscript(self, node: ast.Subscript) -> ast.expr:
        return _helper_call("_getitem", self.visit(node.value), self.visit(node.slice))

    def visit_Slice(self, node: ast.Slice) -> ast.expr:
        parts = [
            self.visit(part) if part is not None else ast.Constant(value=None)
            for part in (node.lower, node.upper, node.step)
        ]
        return _helper_call("_slice", *parts)

    def visit_Call(self, node: ast.Call) -> ast.expr:
        # The sandbox guarantees node.func is a bare Name.
        func_name = node.func.id  # type: ignore[attr-defined]
        return ast.Call(
            func=ast.Name(id="_call", ctx=ast.Load()),
            args=[ast.Constant(value=func_name), *(self.visit(arg) for arg in node.args)],
            keywords=[
                ast.keyword(arg=kw.arg, value=self.visit(kw.value)) for kw in node.keywords
            ],
        )


class ExpressionCompilationMixin:
    """Mixin for compiling template expressions to Python expressions.

    Host attributes are declared via inline TYPE_CHECKING blocks.
    """

    if TYPE_CHECKING:
        # Host attributes (from Compiler.__init__)
        _locals: dict[str, str]

    def _compile_expr(self, node: Expr) -> ast.expr:
        """Compile an Expr node into a Python expression over ``ctx``."""
        tree = copy.deepcopy(node.tree)
        return _ExpressionRewriter(self._locals).visit(tree)
