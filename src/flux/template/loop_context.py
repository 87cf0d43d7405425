"""Loop iteration metadata for Flux ``@foreach`` blocks."""

from __future__ import annotations

from typing import Any


class LoopContext:
    """Loop iteration metadata accessible as ``loop`` inside ``@foreach``.

    Only created when the loop body references ``loop``. The items are
    materialized up front so ``count``, ``last`` and ``remaining`` are known.

    Properties:
        index: 0-based iteration index (0, 1, 2, ...)
        iteration: 1-based iteration count (1, 2, 3, ...)
        remaining: Iterations left after this one
        count: Total number of items
        first: True on the first iteration
        last: True on the final iteration
        even: True when ``iteration`` is even
        odd: True when ``iteration`` is odd
        depth: Nesting level, 1 for the outermost loop
        parent: Enclosing loop's LoopContext, or None

    Example:
            ```
            @foreach(users as user)
                <li class="{{ "odd" if loop.odd else "even" }}">
                    {{ loop.iteration }}/{{ loop.count }}: {{ user.name }}
                    @if(loop.last) (last) @endif
                </li>
            @endforeach
            ```

    """

    __slots__ = ("_index", "_items", "_length", "parent")

    def __init__(self, items: list[Any], parent: LoopContext | None = None) -> None:
        self._items = items
        self._length = len(items)
        self._index = 0
        self.parent = parent

    def __iter__(self) -> Any:
        """Iterate through items, updating index for each."""
        for i, item in enumerate(self._items):
            self._index = i
            yield item

    @property
    def index(self) -> int:
        """0-based iteration index."""
        return self._index

    @property
    def iteration(self) -> int:
        """1-based iteration count."""
        return self._index + 1

    @property
    def remaining(self) -> int:
        return self._length - self._index - 1

    @property
    def count(self) -> int:
        return self._length

    @property
    def first(self) -> bool:
        return self._index == 0

    @property
    def last(self) -> bool:
        return self._index == self._length - 1

    @property
    def even(self) -> bool:
        return (self._index + 1) % 2 == 0

    @property
    def odd(self) -> bool:
        return (self._index + 1) % 2 == 1

    @property
    def depth(self) -> int:
        """Nesting level of this loop (1 for the outermost)."""
        return 1 if self.parent is None else self.parent.depth + 1

    def __repr__(self) -> str:
        return f"<LoopContext {self.iteration}/{self.count}>"
