"""Component tag compilation for the Flux compiler."""

from __future__ import annotations

import ast
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flux.nodes import Component, Node


class ComponentMixin:
    """Mixin for compiling ``<x-name>`` component tags.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.

    """

    if TYPE_CHECKING:

        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

        def _capture(self, nodes: Sequence[Node]) -> tuple[list[ast.stmt], ast.expr]: ...

        def _scope_expr(self) -> ast.expr: ...

    def _compile_component(self, node: Component) -> list[ast.stmt]:
        """Compile a component tag.

        The slot body renders in the caller's scope before the component is
        resolved:

            ... capture slot into _buf_1 ...
            _append(_component('card', {'title': 'Hi'}, _Markup(''.join(_buf_1)), scope))
        """
        if node.body:
            stmts, slot = self._capture(node.body)
        else:
            stmts = []
            slot = ast.Call(
                func=ast.Name(id="_Markup", ctx=ast.Load()),
                args=[ast.Constant(value="")],
                keywords=[],
            )

        attributes = ast.Dict(
            keys=[ast.Constant(value=key) for key, _ in node.attributes],
            values=[ast.Constant(value=value) for _, value in node.attributes],
        )
        stmts.append(
            self._emit_output(
                ast.Call(
                    func=ast.Name(id="_component", ctx=ast.Load()),
                    args=[ast.Constant(value=node.name), attributes, slot, self._scope_expr()],
                    keywords=[],
                )
            )
        )
        return stmts
