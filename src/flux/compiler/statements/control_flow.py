"""Control flow statement compilation for the Flux compiler.

Provides mixin for compiling @if, @foreach, @for, @while, @break, @continue
and the @auth/@guest guards.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flux.nodes import (
        Assign,
        AuthGuard,
        Break,
        Continue,
        Expr,
        For,
        Foreach,
        If,
        Node,
        While,
    )


class ControlFlowMixin:
    """Mixin for compiling control flow statements.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.

    """

    # ─────────────────────────────────────────────────────────────────────────
    # Host attributes and cross-mixin dependencies (type-check only)
    # ─────────────────────────────────────────────────────────────────────────
    if TYPE_CHECKING:
        _locals: dict[str, str]

        # From ExpressionCompilationMixin
        def _compile_expr(self, node: Expr) -> ast.expr: ...

        # From BasicStatementMixin
        def _assign_value(self, assign: Assign) -> ast.expr: ...

        def _assign_target(self, name: str) -> ast.expr: ...

        # From Compiler core
        def _compile_body(self, nodes: Sequence[Node]) -> list[ast.stmt]: ...

        def _next_id(self) -> int: ...

        def _bind_locals(self, names: Sequence[str], n: int) -> dict[str, str]: ...

        def _restore_locals(self, saved: dict[str, str]) -> None: ...

        def _uses_loop_variable(self, nodes: Sequence[Node]) -> bool: ...

    def _compile_if(self, node: If) -> list[ast.stmt]:
        """Compile @if/@elseif/@else into a nested ast.If chain."""
        orelse: list[ast.stmt] = self._compile_body(node.else_)
        for elif_test, elif_body in reversed(node.elif_):
            orelse = [
                ast.If(
                    test=self._compile_expr(elif_test),
                    body=self._compile_body(elif_body) or [ast.Pass()],
                    orelse=orelse,
                )
            ]
        return [
            ast.If(
                test=self._compile_expr(node.test),
                body=self._compile_body(node.body) or [ast.Pass()],
                orelse=orelse,
            )
        ]

    def _compile_auth_guard(self, node: AuthGuard) -> list[ast.stmt]:
        """Compile @auth (``if _auth_check():``) and @guest (``if not ...``)."""
        test: ast.expr = ast.Call(
            func=ast.Name(id="_auth_check", ctx=ast.Load()),
            args=[],
            keywords=[],
        )
        if node.guest:
            test = ast.UnaryOp(op=ast.Not(), operand=test)
        return [
            ast.If(
                test=test,
                body=self._compile_body(node.body) or [ast.Pass()],
                orelse=self._compile_body(node.else_),
            )
        ]

    def _compile_foreach(self, node: Foreach) -> list[ast.stmt]:
        """Compile @foreach(items as [key =>] value).

        Generates (``loop`` referenced in the body):
            _loop_1 = _LoopContext(_iterate(items, False), None)
            for l_1_item in _loop_1:
                ... body ...

        Without ``loop`` the LoopContext is skipped and the loop runs
        directly over ``_iterate(...)``.
        """
        n = self._next_id()
        items = ast.Call(
            func=ast.Name(id="_iterate", ctx=ast.Load()),
            args=[
                self._compile_expr(node.iter),
                ast.Constant(value=node.key_target is not None),
            ],
            keywords=[],
        )

        stmts: list[ast.stmt] = []
        parent_loop = self._locals.get("loop")
        names = [node.target] if node.key_target is None else [node.key_target, node.target]
        saved = self._bind_locals(names, n)

        if self._uses_loop_variable(node.body):
            loop_name = f"_loop_{n}"
            self._locals["loop"] = loop_name
            parent: ast.expr = (
                ast.Name(id=parent_loop, ctx=ast.Load())
                if parent_loop is not None
                else ast.Constant(value=None)
            )
            stmts.append(
                ast.Assign(
                    targets=[ast.Name(id=loop_name, ctx=ast.Store())],
                    value=ast.Call(
                        func=ast.Name(id="_LoopContext", ctx=ast.Load()),
                        args=[items, parent],
                        keywords=[],
                    ),
                )
            )
            iter_expr: ast.expr = ast.Name(id=loop_name, ctx=ast.Load())
        else:
            iter_expr = items

        target: ast.expr
        if node.key_target is None:
            target = ast.Name(id=self._locals[node.target], ctx=ast.Store())
        else:
            target = ast.Tuple(
                elts=[
                    ast.Name(id=self._locals[node.key_target], ctx=ast.Store()),
                    ast.Name(id=self._locals[node.target], ctx=ast.Store()),
                ],
                ctx=ast.Store(),
            )

        body = self._compile_body(node.body) or [ast.Pass()]
        self._restore_locals(saved)

        stmts.append(ast.For(target=target, iter=iter_expr, body=body, orelse=[]))
        return stmts

    def _compile_for(self, node: For) -> list[ast.stmt]:
        """Compile @for(init; cond; step) with loop-scoped counters.

        Generates:
            l_1_i = 0
            _first_1 = True
            _guard_1 = 0
            while True:
                if _first_1:
                    _first_1 = False
                else:
                    l_1_i = l_1_i + 1
                if not (l_1_i < 3):
                    break
                _guard_1 += 1
                if _guard_1 > _max_loop:
                    _loop_limit('@for', _max_loop)
                ... body ...

        The step runs at the top of every iteration after the first, so
        ``@continue`` still advances the counter.
        """
        n = self._next_id()
        first, guard = f"_first_{n}", f"_guard_{n}"

        # Initial values see the enclosing scope, targets are new locals.
        init_values = [self._assign_value(assign) for assign in node.init]
        saved = self._bind_locals(list(dict.fromkeys(a.target for a in node.init)), n)

        stmts: list[ast.stmt] = [
            ast.Assign(targets=[self._assign_target(assign.target)], value=value)
            for assign, value in zip(node.init, init_values, strict=True)
        ]
        stmts.append(
            ast.Assign(
                targets=[ast.Name(id=first, ctx=ast.Store())],
                value=ast.Constant(value=True),
            )
        )
        stmts.append(
            ast.Assign(
                targets=[ast.Name(id=guard, ctx=ast.Store())],
                value=ast.Constant(value=0),
            )
        )

        step: list[ast.stmt] = [
            ast.Assign(
                targets=[self._assign_target(assign.target)],
                value=self._assign_value(assign),
            )
            for assign in node.step
        ]
        loop_body: list[ast.stmt] = [
            ast.If(
                test=ast.Name(id=first, ctx=ast.Load()),
                body=[
                    ast.Assign(
                        targets=[ast.Name(id=first, ctx=ast.Store())],
                        value=ast.Constant(value=False),
                    )
                ],
                orelse=step,
            ),
            ast.If(
                test=ast.UnaryOp(op=ast.Not(), operand=self._compile_expr(node.test)),
                body=[ast.Break()],
                orelse=[],
            ),
            *self._guard_stmts(guard, "@for"),
            *self._compile_body(node.body),
        ]
        self._restore_locals(saved)

        stmts.append(ast.While(test=ast.Constant(value=True), body=loop_body, orelse=[]))
        return stmts

    def _compile_while(self, node: While) -> list[ast.stmt]:
        """Compile @while(cond), bounded by ``_max_loop`` iterations.

        Generates:
            _guard_1 = 0
            while condition:
                _guard_1 += 1
                if _guard_1 > _max_loop:
                    _loop_limit('@while', _max_loop)
                ... body ...
        """
        guard = f"_guard_{self._next_id()}"
        return [
            ast.Assign(
                targets=[ast.Name(id=guard, ctx=ast.Store())],
                value=ast.Constant(value=0),
            ),
            ast.While(
                test=self._compile_expr(node.test),
                body=[*self._guard_stmts(guard, "@while"), *self._compile_body(node.body)],
                orelse=[],
            ),
        ]

    def _guard_stmts(self, guard: str, directive: str) -> list[ast.stmt]:
        return [
            ast.AugAssign(
                target=ast.Name(id=guard, ctx=ast.Store()),
                op=ast.Add(),
                value=ast.Constant(value=1),
            ),
            ast.If(
                test=ast.Compare(
                    left=ast.Name(id=guard, ctx=ast.Load()),
                    ops=[ast.Gt()],
                    comparators=[ast.Name(id="_max_loop", ctx=ast.Load())],
                ),
                body=[
                    ast.Expr(
                        value=ast.Call(
                            func=ast.Name(id="_loop_limit", ctx=ast.Load()),
                            args=[
                                ast.Constant(value=directive),
                                ast.Name(id="_max_loop", ctx=ast.Load()),
                            ],
                            keywords=[],
                        )
                    )
                ],
                orelse=[],
            ),
        ]

    def _compile_break(self, node: Break) -> list[ast.stmt]:
        return [ast.Break()]

    def _compile_continue(self, node: Continue) -> list[ast.stmt]:
        return [ast.Continue()]
