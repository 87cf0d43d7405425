"""Flux AST node definitions.

Immutable frozen dataclasses produced by the parser and consumed by the
compiler. Grouped by concern:

- base: Node
- expressions: Expr, Assign
- output: Data, Output, Json, Csrf, Method
- control_flow: If, Foreach, For, While, Break, Continue, AuthGuard, Statements
- structure: Section, Yield, Include, Component, Template

"""

from flux.nodes.base import Node
from flux.nodes.control_flow import (
    AuthGuard,
    Break,
    Continue,
    For,
    Foreach,
    If,
    Statements,
    While,
)
from flux.nodes.expressions import Assign, Expr
from flux.nodes.output import Csrf, Data, Json, Method, Output
from flux.nodes.structure import Component, Include, Section, Template, Yield

__all__ = [
    "Assign",
    "AuthGuard",
    "Break",
    "Component",
    "Continue",
    "Csrf",
    "Data",
    "Expr",
    "For",
    "Foreach",
    "If",
    "Include",
    "Json",
    "Method",
    "Node",
    "Output",
    "Section",
    "Statements",
    "Template",
    "While",
    "Yield",
]
