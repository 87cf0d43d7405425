"""Flux environment package: configuration, loaders, caching and errors.

Exceptions are imported first; the lexer, parser and runtime helpers all
raise them and import ``flux.environment.exceptions`` directly.

"""

from flux.environment.exceptions import (
    ErrorCode,
    ExpressionEvaluationError,
    NestedLayoutError,
    RecursionLimitExceededError,
    SourceSnippet,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    build_source_snippet,
)
from flux.environment.loaders import (
    ChoiceLoader,
    DictLoader,
    FileSystemLoader,
    FunctionLoader,
    Loader,
)
from flux.environment.cache import TemplateCache
from flux.environment.registry import Registry
from flux.environment.core import Environment

__all__ = [
    "ChoiceLoader",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "ExpressionEvaluationError",
    "FileSystemLoader",
    "FunctionLoader",
    "Loader",
    "NestedLayoutError",
    "RecursionLimitExceededError",
    "Registry",
    "SourceSnippet",
    "TemplateCache",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "build_source_snippet",
]
