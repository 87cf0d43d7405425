"""Block parsing mixins for the Flux parser.

- core: BlockStackMixin (open/close matching, error helpers)
- control_flow: @if, @foreach, @for, @while, @break, @continue, @php, @auth/@guest
- template_structure: @extends, @section, @yield, @include, @json, @method, @csrf
- components: <x-name> tags

"""

from __future__ import annotations

from flux.parser.blocks.components import ComponentParsingMixin
from flux.parser.blocks.control_flow import ControlFlowParsingMixin
from flux.parser.blocks.core import BlockStackMixin
from flux.parser.blocks.template_structure import TemplateStructureParsingMixin

__all__ = [
    "BlockStackMixin",
    "ComponentParsingMixin",
    "ControlFlowParsingMixin",
    "TemplateStructureParsingMixin",
]
