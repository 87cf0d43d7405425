"""Flux Template package: compiled template objects ready for rendering."""

from flux.template.core import COMPONENT_NOT_FOUND, Template
from flux.template.helpers import UNDEFINED, Undefined
from flux.template.loop_context import LoopContext
from flux.utils.html import Markup

__all__ = [
    "COMPONENT_NOT_FOUND",
    "UNDEFINED",
    "LoopContext",
    "Markup",
    "Template",
    "Undefined",
]
