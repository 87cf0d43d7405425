"""Statement compilation for the Flux compiler.

Provides mixins for compiling Flux statement nodes to Python AST statements:
- basic: output (data, echoes, @json, @csrf, @method) and @php assignments
- control_flow: @if, @foreach, @for, @while, @break, @continue, @auth/@guest
- template_structure: @section, @yield, @include
- components: <x-name> tags

Uses inline TYPE_CHECKING declarations for host attributes.

"""

from __future__ import annotations

from flux.compiler.statements.basic import BasicStatementMixin
from flux.compiler.statements.components import ComponentMixin
from flux.compiler.statements.control_flow import ControlFlowMixin
from flux.compiler.statements.template_structure import TemplateStructureMixin


class StatementCompilationMixin(
    BasicStatementMixin,
    ControlFlowMixin,
    TemplateStructureMixin,
    ComponentMixin,
):
    """Combined mixin for compiling all statement types.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks in each individual mixin.

    """
