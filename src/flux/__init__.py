"""Flux: a Blade-style template engine compiled to Python.

Templates mix literal HTML with ``{{ }}`` output and ``@directive`` control
flow. Each template is compiled once into a Python code object and rendered
by calling it with a context mapping.

Quickstart:
    >>> from flux import Environment
    >>> env = Environment()
    >>> env.render_string("Hello, {{ name }}!", name="<World>")
    'Hello, &lt;World&gt;!'

File-based templates:
    >>> from flux import Environment, FileSystemLoader
    >>> env = Environment(loader=FileSystemLoader("templates/"))
    >>> env.render("pages.home", user=user)   # templates/pages/home.flux

Architecture:
Template Source → Lexer → Parser → Flux nodes → Compiler → Python AST → exec()

Pipeline stages:
1. **Lexer**: Splits source into text, output and directive tokens
2. **Parser**: Matches openers to closers and builds an immutable node tree
3. **Compiler**: Transforms the node tree into an ``ast.Module``
4. **Template**: Wraps the compiled code with the ``render()`` interface

Expressions:
``{{ }}`` and directive arguments hold Python expressions checked against
a whitelist (no imports, lambdas, dunder access or arbitrary calls).
Only functions registered in ``env.functions`` are callable.

Lenient Mode (default):
Undefined names render as empty. Pass ``strict=True`` to raise
ExpressionEvaluationError instead:

    >>> Environment(strict=True).render_string("{{ missing }}")
    Traceback (most recent call last):
    ...
    flux.environment.exceptions.ExpressionEvaluationError: ...

"""

from flux._types import Token, TokenType
from flux.environment import (
    ChoiceLoader,
    DictLoader,
    Environment,
    ErrorCode,
    ExpressionEvaluationError,
    FileSystemLoader,
    FunctionLoader,
    NestedLayoutError,
    RecursionLimitExceededError,
    SourceSnippet,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    build_source_snippet,
)
from flux.render_context import (
    RenderContext,
    get_render_context,
    get_render_context_required,
    render_context,
)
from flux.template import UNDEFINED, LoopContext, Markup, Template, Undefined
from flux.utils.html import html_escape

__version__ = "0.1.0"

__all__ = [
    "UNDEFINED",
    "ChoiceLoader",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "ExpressionEvaluationError",
    "FileSystemLoader",
    "FunctionLoader",
    "LoopContext",
    "Markup",
    "NestedLayoutError",
    "RecursionLimitExceededError",
    "RenderContext",
    "SourceSnippet",
    "Template",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "Token",
    "TokenType",
    "Undefined",
    "__version__",
    "build_source_snippet",
    "get_render_context",
    "get_render_context_required",
    "html_escape",
    "render_context",
]
