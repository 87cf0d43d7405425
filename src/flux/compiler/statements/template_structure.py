"""Template structure statement compilation for the Flux compiler.

Provides mixin for compiling @section, @yield and @include.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flux.nodes import Expr, Include, Node, Section, Yield


class TemplateStructureMixin:
    """Mixin for compiling sections, yields and includes.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.

    """

    if TYPE_CHECKING:
        _has_layout: bool

        def _compile_expr(self, node: Expr) -> ast.expr: ...

        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

        def _capture(self, nodes: Sequence[Node]) -> tuple[list[ast.stmt], ast.expr]: ...

        def _scope_expr(self) -> ast.expr: ...

    def _compile_section(self, node: Section) -> list[ast.stmt]:
        """Compile @section("name")...@endsection.

        In a template with a layout the captured content is stored for the
        layout hop (a later section of the same name replaces it):
            _sections['name'] = _Markup(''.join(_buf_1))

        Without a layout the section is emitted in place, unless the
        section table already holds content for it (a child template
        overriding the layout's default):
            _append(_sections.setdefault('name', _Markup(''.join(_buf_1))))
        """
        stmts, captured = self._capture(node.body)
        if self._has_layout:
            stmts.append(
                ast.Assign(
                    targets=[
                        ast.Subscript(
                            value=ast.Name(id="_sections", ctx=ast.Load()),
                            slice=ast.Constant(value=node.name),
                            ctx=ast.Store(),
                        )
                    ],
                    value=captured,
                )
            )
        else:
            stmts.append(
                self._emit_output(
                    ast.Call(
                        func=ast.Attribute(
                            value=ast.Name(id="_sections", ctx=ast.Load()),
                            attr="setdefault",
                            ctx=ast.Load(),
                        ),
                        args=[ast.Constant(value=node.name), captured],
                        keywords=[],
                    )
                )
            )
        return stmts

    def _compile_yield(self, node: Yield) -> list[ast.stmt]:
        """Compile @yield("name"[, default]) to _append(_yield(_sections, 'name', default))."""
        default = (
            self._compile_expr(node.default)
            if node.default is not None
            else ast.Constant(value=None)
        )
        return [
            self._emit_output(
                ast.Call(
                    func=ast.Name(id="_yield", ctx=ast.Load()),
                    args=[
                        ast.Name(id="_sections", ctx=ast.Load()),
                        ast.Constant(value=node.name),
                        default,
                    ],
                    keywords=[],
                )
            )
        ]

    def _compile_include(self, node: Include) -> list[ast.stmt]:
        """Compile @include("name"[, data]) to _append(_include('name', scope, data))."""
        data = self._compile_expr(node.data) if node.data is not None else ast.Constant(value=None)
        return [
            self._emit_output(
                ast.Call(
                    func=ast.Name(id="_include", ctx=ast.Load()),
                    args=[ast.Constant(value=node.template), self._scope_expr(), data],
                    keywords=[],
                )
            )
        ]
