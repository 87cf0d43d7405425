"""Flux compiler: node tree to Python code objects.

Example:
    >>> from flux.compiler import compile_template
    >>> compiled = compile_template("Hello, {{ name }}!")
    >>> compiled.layout is None
    True

"""

from flux.compiler.core import CompiledTemplate, Compiler, compile_template, source_key

__all__ = ["CompiledTemplate", "Compiler", "compile_template", "source_key"]
