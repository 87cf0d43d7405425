"""Sandboxed expression parsing for Flux templates.

Template expressions use Python expression syntax, parsed with
``ast.parse(mode="eval")`` and checked against a whitelist. The sandbox
admits pure value computation over the data context and nothing else:

Allowed:
    literals, names (``true``/``false``/``null`` included), ``a.b``,
    ``a[b]``, ``a[1:2]``, arithmetic (``+ - * / // %``), comparisons,
    ``and``/``or``/``not``, ``x if c else y``, list/tuple/dict/set
    displays, and calls to registered functions by name (``len(items)``)

Rejected with TemplateSyntaxError:
    attribute names starting with ``_``, method calls (``a.b()``),
    ``**``, lambdas, comprehensions, f-strings, starred and ``**`` arguments,
    walrus, await/yield

``@php`` statements are parsed by ``parse_assignments`` into plain or
augmented assignments to simple names; ``i++`` and ``i--`` are accepted as
shorthand for ``i += 1`` and ``i -= 1``.

"""

from __future__ import annotations

import ast
import re

from flux.environment.exceptions import ErrorCode, TemplateSyntaxError
from flux.nodes import Assign, Expr

_ALLOWED_NODES: tuple[type[ast.AST], ...] = (
    ast.Expression,
    ast.Constant,
    ast.Name,
    ast.Load,
    ast.Attribute,
    ast.Subscript,
    ast.Slice,
    ast.BinOp,
    ast.UnaryOp,
    ast.BoolOp,
    ast.Compare,
    ast.IfExp,
    ast.List,
    ast.Tuple,
    ast.Dict,
    ast.Set,
    ast.Call,
    ast.keyword,
    # Operators
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.FloorDiv,
    ast.Mod,
    ast.UAdd,
    ast.USub,
    ast.Not,
    ast.And,
    ast.Or,
    ast.Eq,
    ast.NotEq,
    ast.Lt,
    ast.LtE,
    ast.Gt,
    ast.GtE,
    ast.In,
    ast.NotIn,
    ast.Is,
    ast.IsNot,
)

_AUG_OPS: dict[type[ast.operator], str] = {
    ast.Add: "+=",
    ast.Sub: "-=",
    ast.Mult: "*=",
    ast.Div: "/=",
    ast.FloorDiv: "//=",
    ast.Mod: "%=",
}

_INCREMENT_RE = re.compile(r"^\s*(?:(\w+)\s*(\+\+|--)|(\+\+|--)\s*(\w+))\s*$")

_DESCRIPTIONS: dict[type[ast.AST], str] = {
    ast.Lambda: "lambda expressions",
    ast.ListComp: "comprehensions",
    ast.SetComp: "comprehensions",
    ast.DictComp: "comprehensions",
    ast.GeneratorExp: "generator expressions",
    ast.JoinedStr: "f-strings",
    ast.NamedExpr: "assignment expressions",
    ast.Starred: "starred arguments",
    ast.Pow: "the ** operator",
    ast.Await: "await",
    ast.Yield: "yield",
}


class _SandboxValidator(ast.NodeVisitor):
    """Reject any node outside the expression whitelist."""

    def __init__(self, fail):
        self._fail = fail

    def generic_visit(self, node: ast.AST) -> None:
        if not isinstance(node, _ALLOWED_NODES):
            what = _DESCRIPTIONS.get(type(node), f"'{type(node).__name__}' syntax")
            self._fail(f"{what[0].upper()}{what[1:]} are not allowed in template expressions")
        super().generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_"):
            self._fail(f"Access to private attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            self._fail(f"Access to private name '{node.id}' is not allowed")
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        if not isinstance(node.func, ast.Name):
            self._fail("Only registered functions can be called, e.g. len(items)")
        for keyword in node.keywords:
            if keyword.arg is None:
                self._fail("'**' arguments are not allowed in template expressions")
        self.generic_visit(node)

    def visit_Dict(self, node: ast.Dict) -> None:
        if any(key is None for key in node.keys):
            self._fail("'**' unpacking is not allowed in template expressions")
        self.generic_visit(node)


def _validate(tree: ast.AST, fail) -> None:
    _SandboxValidator(fail).visit(tree)


def _make_fail(
    lineno: int,
    col_offset: int,
    directive: str | None,
    name: str | None,
    source: str | None,
):
    def fail(message: str):
        raise TemplateSyntaxError(
            message,
            lineno=lineno,
            name=name,
            source=source,
            col_offset=col_offset,
            directive=directive,
            code=ErrorCode.INVALID_EXPRESSION,
        )

    return fail


def parse_expression(
    text: str,
    lineno: int,
    col_offset: int,
    *,
    directive: str | None = None,
    name: str | None = None,
    source: str | None = None,
) -> Expr:
    """Parse and validate a single template expression.

    Raises:
        TemplateSyntaxError: If the text is not valid expression syntax or
            uses anything outside the sandbox.
    """
    fail = _make_fail(lineno, col_offset, directive, name, source)
    stripped = text.strip()
    if not stripped:
        fail(f"Empty expression in '{directive}'" if directive else "Empty expression")
    try:
        tree = ast.parse(stripped, mode="eval")
    except (SyntaxError, ValueError) as e:
        fail(f"Invalid expression {stripped!r}: {getattr(e, 'msg', e)}")
    _validate(tree, fail)
    return Expr(lineno, col_offset, stripped, tree.body)


def parse_arguments(
    text: str,
    lineno: int,
    col_offset: int,
    *,
    directive: str,
    name: str | None = None,
    source: str | None = None,
) -> list[Expr]:
    """Parse a directive's comma-separated argument list."""
    fail = _make_fail(lineno, col_offset, directive, name, source)
    pieces = split_top_level(text, ",")
    if pieces and not pieces[-1].strip():
        pieces.pop()
    if not pieces:
        fail(f"'{directive}' expects at least one argument")
    return [
        parse_expression(
            piece,
            lineno,
            col_offset,
            directive=directive,
            name=name,
            source=source,
        )
        for piece in pieces
    ]


def parse_assignments(
    text: str,
    lineno: int,
    col_offset: int,
    *,
    directive: str = "@php",
    name: str | None = None,
    source: str | None = None,
    separators: str = ";\n",
) -> list[Assign]:
    """Parse ``@php`` statements into sandboxed assignments.

    Statements are separated by ``;`` or newlines (outside brackets and
    strings). Each must be ``name = expr``, ``name <op>= expr``, ``name++``
    or ``name--``.
    """
    fail = _make_fail(lineno, col_offset, directive, name, source)
    assignments: list[Assign] = []
    for piece in split_top_level(text, separators):
        statement = piece.strip()
        if not statement:
            continue

        increment = _INCREMENT_RE.match(statement)
        if increment:
            target = increment.group(1) or increment.group(4)
            symbol = increment.group(2) or increment.group(3)
            op: ast.operator = ast.Add() if symbol == "++" else ast.Sub()
            one = Expr(lineno, col_offset, "1", ast.Constant(value=1))
            assignments.append(Assign(lineno, col_offset, target, one, op))
            continue

        try:
            module = ast.parse(statement, mode="exec")
        except (SyntaxError, ValueError) as e:
            fail(f"Invalid statement {statement!r}: {getattr(e, 'msg', e)}")
        if len(module.body) != 1:
            fail(f"Expected a single assignment, got {statement!r}")
        stmt = module.body[0]

        if isinstance(stmt, ast.Assign):
            if len(stmt.targets) != 1 or not isinstance(stmt.targets[0], ast.Name):
                fail(f"Only assignments to a single name are allowed: {statement!r}")
            target = stmt.targets[0].id
            op = None
        elif isinstance(stmt, ast.AugAssign):
            if not isinstance(stmt.target, ast.Name):
                fail(f"Only assignments to a single name are allowed: {statement!r}")
            if type(stmt.op) not in _AUG_OPS:
                fail(f"Unsupported assignment operator in {statement!r}")
            target = stmt.target.id
            op = stmt.op
        else:
            fail(f"Only assignments are allowed in '{directive}': {statement!r}")

        if target.startswith("_") or target in ("true", "false", "null", "loop"):
            fail(f"Cannot assign to reserved name '{target}'")
        _validate(ast.Expression(body=stmt.value), fail)
        value_source = ast.get_source_segment(statement, stmt.value) or statement
        value = Expr(lineno, col_offset, value_source, stmt.value)
        assignments.append(Assign(lineno, col_offset, target, value, op))
    return assignments


def split_top_level(text: str, separators: str) -> list[str]:
    """Split text on any separator character outside brackets and strings.

    Example:
        >>> split_top_level("'a,b', f(1, 2), c", ",")
        ["'a,b'", ' f(1, 2)', ' c']
    """
    pieces: list[str] = []
    depth = 0
    quote: str | None = None
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif depth == 0 and ch in separators:
            pieces.append(text[start:i])
            start = i + 1
        i += 1
    pieces.append(text[start:])
    return pieces
