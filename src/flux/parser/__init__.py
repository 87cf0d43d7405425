"""Flux parser: tokens to an immutable node tree.

- core: Parser, the stack-based block matcher
- blocks: per-directive parsing mixins
- expressions: sandboxed expression and assignment parsing

"""

from flux.parser.core import Parser, parse
from flux.parser.expressions import parse_assignments, parse_expression

__all__ = ["Parser", "parse", "parse_assignments", "parse_expression"]
