"""HTML escaping and the Markup safe-string type.

``{{ expr }}`` output passes through ``html_escape``; values wrapped in
``Markup`` (or any object with ``__html__``) are emitted unchanged.

Escaping matches ``htmlspecialchars($v, ENT_QUOTES, 'UTF-8')`` so templates
migrated from the PHP engine produce the same bytes:

    >>> html_escape('<a href="x">Tom\'s</a>')
    '&lt;a href=&quot;x&quot;&gt;Tom&#039;s&lt;/a&gt;'

Thread-Safety:
The translation table is built once at import and never mutated.

"""

from __future__ import annotations

from typing import Any

_ESCAPE_TABLE = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#039;",
    }
)


class Markup(str):
    """A string that is already safe for HTML output.

    Component slots, rendered sections and the output of ``@yield`` are
    Markup so they are not escaped a second time when echoed.
    """

    __slots__ = ()

    def __html__(self) -> Markup:
        return self

    def __repr__(self) -> str:
        return f"Markup({super().__repr__()})"


def html_escape(value: Any) -> str:
    """Escape a value for inclusion in HTML.

    ``None`` becomes the empty string. Objects implementing ``__html__`` are
    trusted and returned as-is.
    """
    if value is None:
        return ""
    if hasattr(value, "__html__"):
        return str(value.__html__())
    return str(value).translate(_ESCAPE_TABLE)
