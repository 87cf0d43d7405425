"""Flux Compiler Core: main Compiler class.

The Compiler transforms the Flux node tree into a Python ``ast.Module``,
then compiles it to an executable code object. Uses a mixin-based design
for maintainability.

Design Principles:
1. **AST-to-AST**: Generate ``ast.Module``, not source strings
2. **StringBuilder**: Output via ``_append()``, join at end
3. **Deterministic**: Identical source yields identical Python source, so
   compiled templates are cached by a hash of the template text alone
4. **O(1) dispatch**: Dict-based node type to handler lookup

Generated code:

    ```python
    def render(ctx, _sections):
        _rc = _get_render_ctx()
        buf = []
        _append = buf.append
        _append('Hello, ')
        _rc.line = 1
        _append(_escape(_lookup(ctx, 'name')))
        return ''.join(buf)
    ```

Templates declaring ``@extends`` compile the same way; their sections fill
``_sections`` and the Template performs the layout hop afterwards.

"""

from __future__ import annotations

import ast
import dataclasses
import hashlib
import sys
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from flux.compiler.expressions import ExpressionCompilationMixin
from flux.compiler.statements import StatementCompilationMixin
from flux.lexer import tokenize
from flux.nodes import Expr, Node
from flux.parser import Parser

if TYPE_CHECKING:
    import types

    from flux.nodes import Template as TemplateNode

# Nodes that can fail at runtime get a `_rc.line = N` marker.
_LINE_TRACKED = frozenset(
    {
        "AuthGuard",
        "Component",
        "Csrf",
        "For",
        "Foreach",
        "If",
        "Include",
        "Json",
        "Output",
        "Statements",
        "While",
        "Yield",
    }
)


@dataclass(frozen=True, slots=True)
class CompiledTemplate:
    """Result of compiling one template source.

    Independent of any data context or environment; safe to share between
    Template instances and threads.

    Attributes:
        key: SHA-256 hex digest of the source text (the cache key)
        code: Code object defining ``render(ctx, _sections)``
        python_source: ``ast.unparse`` of the generated module
        layout: Layout name from ``@extends``, if any
        sections: Section names in source order
    """

    key: str
    code: types.CodeType
    python_source: str
    layout: str | None
    sections: tuple[str, ...]


def source_key(source: str) -> str:
    """Content hash used as the compiled-template cache key."""
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def iter_expressions(nodes: Any) -> Iterator[Expr]:
    """Yield every Expr reachable from a node or sequence of nodes."""
    if isinstance(nodes, Expr):
        yield nodes
    elif isinstance(nodes, Node):
        for f in dataclasses.fields(nodes):
            yield from iter_expressions(getattr(nodes, f.name))
    elif isinstance(nodes, (list, tuple)):
        for item in nodes:
            yield from iter_expressions(item)


class Compiler(
    ExpressionCompilationMixin,
    StatementCompilationMixin,
):
    """Compile a Flux Template node to a CompiledTemplate.

    Attributes:
        _locals: Template name to Python local for loop variables and
            ``@for`` counters currently in scope
        _counter: Counter for unique variable names in nested structures
        _has_layout: True when the template declares ``@extends``

    Line Tracking:
        For nodes that can cause runtime errors, generates
        ``_rc.line = N`` before the node's code. ``_rc`` is the
        ContextVar-stored RenderContext, so error messages carry the source
        line without touching the user's data context.

    Example:
            >>> from flux.lexer import tokenize
            >>> from flux.parser import Parser
            >>> tree = Parser(tokenize("Hello, {{ name }}!")).parse()
            >>> compiled = Compiler().compile(tree, key="k")
            >>> print(compiled.python_source)  # doctest: +SKIP

    """

    __slots__ = (
        "_counter",
        "_has_layout",
        "_locals",
        "_node_dispatch",
    )

    def __init__(self):
        self._locals: dict[str, str] = {}
        self._counter = 0
        self._has_layout = False
        self._node_dispatch = {
            "Data": self._compile_data,
            "Output": self._compile_output,
            "Json": self._compile_json,
            "Csrf": self._compile_csrf,
            "Method": self._compile_method,
            "Statements": self._compile_statements,
            "If": self._compile_if,
            "Foreach": self._compile_foreach,
            "For": self._compile_for,
            "While": self._compile_while,
            "Break": self._compile_break,
            "Continue": self._compile_continue,
            "AuthGuard": self._compile_auth_guard,
            "Section": self._compile_section,
            "Yield": self._compile_yield,
            "Include": self._compile_include,
            "Component": self._compile_component,
        }

    def compile(self, node: TemplateNode, key: str) -> CompiledTemplate:
        """Compile a template tree.

        Args:
            node: Root Template node
            key: Cache key recorded on the result

        Returns:
            CompiledTemplate with code object and generated source
        """
        self._locals = {}
        self._counter = 0
        self._has_layout = node.extends is not None

        module = ast.Module(body=[self._make_render_function(node)], type_ignores=[])
        ast.fix_missing_locations(module)

        return CompiledTemplate(
            key=key,
            code=compile(module, "<flux>", "exec"),
            python_source=ast.unparse(module),
            layout=node.extends,
            sections=tuple(node.sections),
        )

    def _make_render_function(self, node: TemplateNode) -> ast.FunctionDef:
        """Generate ``render(ctx, _sections)``."""
        body: list[ast.stmt] = [
            # _rc = _get_render_ctx()
            ast.Assign(
                targets=[ast.Name(id="_rc", ctx=ast.Store())],
                value=ast.Call(
                    func=ast.Name(id="_get_render_ctx", ctx=ast.Load()),
                    args=[],
                    keywords=[],
                ),
            ),
            # buf = []
            ast.Assign(
                targets=[ast.Name(id="buf", ctx=ast.Store())],
                value=ast.List(elts=[], ctx=ast.Load()),
            ),
            # _append = buf.append
            ast.Assign(
                targets=[ast.Name(id="_append", ctx=ast.Store())],
                value=ast.Attribute(
                    value=ast.Name(id="buf", ctx=ast.Load()),
                    attr="append",
                    ctx=ast.Load(),
                ),
            ),
        ]
        body.extend(self._compile_body(node.body))
        # return ''.join(buf)
        body.append(ast.Return(value=self._join(ast.Name(id="buf", ctx=ast.Load()))))

        extra: dict[str, Any] = {}
        if sys.version_info >= (3, 12):
            extra["type_params"] = []
        return ast.FunctionDef(
            name="render",
            args=ast.arguments(
                posonlyargs=[],
                args=[ast.arg(arg="ctx"), ast.arg(arg="_sections")],
                vararg=None,
                kwonlyargs=[],
                kw_defaults=[],
                kwarg=None,
                defaults=[],
            ),
            body=body,
            decorator_list=[],
            returns=None,
            **extra,
        )

    # ------------------------------------------------------------------
    # Shared building blocks used by the statement mixins
    # ------------------------------------------------------------------

    def _compile_node(self, node: Node) -> list[ast.stmt]:
        node_type = type(node).__name__
        stmts = self._node_dispatch[node_type](node)
        if node_type in _LINE_TRACKED and stmts:
            stmts.insert(0, self._line_marker(node.lineno))
        return stmts

    def _compile_body(self, nodes: Sequence[Node]) -> list[ast.stmt]:
        body: list[ast.stmt] = []
        for child in nodes:
            body.extend(self._compile_node(child))
        return body

    def _next_id(self) -> int:
        self._counter += 1
        return self._counter

    def _bind_locals(self, names: Sequence[str], n: int) -> dict[str, str]:
        """Map template names to fresh Python locals; return the old mapping."""
        saved = dict(self._locals)
        for name in names:
            self._locals[name] = f"l_{n}_{name}"
        return saved

    def _restore_locals(self, saved: dict[str, str]) -> None:
        self._locals = saved

    def _uses_loop_variable(self, nodes: Sequence[Node]) -> bool:
        """True if any expression under ``nodes`` references ``loop``."""
        for expr in iter_expressions(nodes):
            for sub in ast.walk(expr.tree):
                if isinstance(sub, ast.Name) and sub.id == "loop":
                    return True
        return False

    def _emit_output(self, value_expr: ast.expr) -> ast.stmt:
        """Generate ``_append(value)``."""
        return ast.Expr(
            value=ast.Call(
                func=ast.Name(id="_append", ctx=ast.Load()),
                args=[value_expr],
                keywords=[],
            ),
        )

    @staticmethod
    def _join(buf: ast.expr) -> ast.expr:
        return ast.Call(
            func=ast.Attribute(value=ast.Constant(value=""), attr="join", ctx=ast.Load()),
            args=[buf],
            keywords=[],
        )

    @staticmethod
    def _line_marker(lineno: int) -> ast.stmt:
        return ast.Assign(
            targets=[
                ast.Attribute(
                    value=ast.Name(id="_rc", ctx=ast.Load()),
                    attr="line",
                    ctx=ast.Store(),
                )
            ],
            value=ast.Constant(value=lineno),
        )

    def _capture(self, nodes: Sequence[Node]) -> tuple[list[ast.stmt], ast.expr]:
        """Compile ``nodes`` with output redirected into a private buffer.

        Returns the statements and a ``_Markup(''.join(_buf_N))`` expression
        for the captured text.

            _buf_N = []
            _saved_N = _append
            _append = _buf_N.append
            try:
                ... body ...
            finally:
                _append = _saved_N
        """
        n = self._next_id()
        buf_name, saved_name = f"_buf_{n}", f"_saved_{n}"
        stmts: list[ast.stmt] = [
            ast.Assign(
                targets=[ast.Name(id=buf_name, ctx=ast.Store())],
                value=ast.List(elts=[], ctx=ast.Load()),
            ),
            ast.Assign(
                targets=[ast.Name(id=saved_name, ctx=ast.Store())],
                value=ast.Name(id="_append", ctx=ast.Load()),
            ),
            ast.Assign(
                targets=[ast.Name(id="_append", ctx=ast.Store())],
                value=ast.Attribute(
                    value=ast.Name(id=buf_name, ctx=ast.Load()),
                    attr="append",
                    ctx=ast.Load(),
                ),
            ),
            ast.Try(
                body=self._compile_body(nodes) or [ast.Pass()],
                handlers=[],
                orelse=[],
                finalbody=[
                    ast.Assign(
                        targets=[ast.Name(id="_append", ctx=ast.Store())],
                        value=ast.Name(id=saved_name, ctx=ast.Load()),
                    )
                ],
            ),
        ]
        captured = ast.Call(
            func=ast.Name(id="_Markup", ctx=ast.Load()),
            args=[self._join(ast.Name(id=buf_name, ctx=ast.Load()))],
            keywords=[],
        )
        return stmts, captured

    def _scope_expr(self) -> ast.expr:
        """``{**ctx, 'item': l_1_item, ...}``: the data visible at this point."""
        keys: list[ast.expr | None] = [None]
        values: list[ast.expr] = [ast.Name(id="ctx", ctx=ast.Load())]
        for name, local in sorted(self._locals.items()):
            keys.append(ast.Constant(value=name))
            values.append(ast.Name(id=local, ctx=ast.Load()))
        return ast.Dict(keys=keys, values=values)


def compile_template(source: str, name: str | None = None) -> CompiledTemplate:
    """Tokenize, parse and compile template source.

    Raises:
        TemplateSyntaxError: If the source is malformed.
    """
    tree = Parser(tokenize(source, name), name, source).parse()
    return Compiler().compile(tree, key=source_key(source))
