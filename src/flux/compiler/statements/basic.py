"""Basic statement compilation for the Flux compiler.

Provides mixin for compiling output (data, echoes, @json, @csrf, @method)
and the sandboxed @php assignments.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
import copy
from typing import TYPE_CHECKING

from flux.utils.html import html_escape

if TYPE_CHECKING:
    from flux.nodes import Assign, Csrf, Data, Expr, Json, Method, Output, Statements


class BasicStatementMixin:
    """Mixin for compiling basic output and assignment statements.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.

    """

    # ─────────────────────────────────────────────────────────────────────────
    # Cross-mixin dependencies (type-check only)
    # ─────────────────────────────────────────────────────────────────────────
    if TYPE_CHECKING:
        _locals: dict[str, str]

        # From ExpressionCompilationMixin
        def _compile_expr(self, node: Expr) -> ast.expr: ...

        # From Compiler core
        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

    def _compile_data(self, node: Data) -> list[ast.stmt]:
        """Compile literal text: _append("literal text")"""
        if not node.value:
            return []
        return [self._emit_output(ast.Constant(value=node.value))]

    def _compile_output(self, node: Output) -> list[ast.stmt]:
        """Compile {{ expr }} to _append(_escape(expr)), {!! expr !!} to _append(_str(expr))."""
        helper = "_escape" if node.escape else "_str"
        return [
            self._emit_output(
                ast.Call(
                    func=ast.Name(id=helper, ctx=ast.Load()),
                    args=[self._compile_expr(node.expr)],
                    keywords=[],
                )
            )
        ]

    def _compile_json(self, node: Json) -> list[ast.stmt]:
        return [
            self._emit_output(
                ast.Call(
                    func=ast.Name(id="_json", ctx=ast.Load()),
                    args=[self._compile_expr(node.expr)],
                    keywords=[],
                )
            )
        ]

    def _compile_csrf(self, node: Csrf) -> list[ast.stmt]:
        return [
            self._emit_output(
                ast.Call(func=ast.Name(id="_csrf", ctx=ast.Load()), args=[], keywords=[])
            )
        ]

    def _compile_method(self, node: Method) -> list[ast.stmt]:
        """The verb is known at compile time, so the input is a constant."""
        html = f'<input type="hidden" name="_method" value="{html_escape(node.verb)}">'
        return [self._emit_output(ast.Constant(value=html))]

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def _compile_statements(self, node: Statements) -> list[ast.stmt]:
        stmts: list[ast.stmt] = []
        for assign in node.body:
            stmts.append(
                ast.Assign(
                    targets=[self._assign_target(assign.target)],
                    value=self._assign_value(assign),
                )
            )
        return stmts

    def _assign_value(self, assign: Assign) -> ast.expr:
        """Right-hand side; augmented forms read the current value first."""
        value = self._compile_expr(assign.value)
        if assign.op is None:
            return value
        local = self._locals.get(assign.target)
        if local is not None:
            current: ast.expr = ast.Name(id=local, ctx=ast.Load())
        else:
            current = ast.Call(
                func=ast.Name(id="_lookup", ctx=ast.Load()),
                args=[ast.Name(id="ctx", ctx=ast.Load()), ast.Constant(value=assign.target)],
                keywords=[],
            )
        return ast.BinOp(left=current, op=copy.deepcopy(assign.op), right=value)

    def _assign_target(self, name: str) -> ast.expr:
        """Loop-scoped names assign to their local; anything else to ctx[name]."""
        local = self._locals.get(name)
        if local is not None:
            return ast.Name(id=local, ctx=ast.Store())
        return ast.Subscript(
            value=ast.Name(id="ctx", ctx=ast.Load()),
            slice=ast.Constant(value=name),
            ctx=ast.Store(),
        )
