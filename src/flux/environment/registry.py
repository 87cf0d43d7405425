"""Component and function registries for the Flux environment.

Provides a dict-like interface over a mapping stored on the Environment.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flux.environment.core import Environment


class Registry:
    """Dict-like view of a name -> callable mapping owned by an Environment.

    Supports:
        - env.components['alert'] = render_alert
        - env.functions.update({'money': format_money})
        - func = env.functions['upper']
        - 'alert' in env.components

    All mutations use copy-on-write: a new dict is built and assigned in a
    single step, so renders running concurrently always see a complete
    mapping, either the old one or the new one.
    """

    __slots__ = ("_attr", "_env")

    def __init__(self, env: Environment, attr: str):
        self._env = env
        self._attr = attr

    def _get_dict(self) -> dict[str, Callable]:
        return getattr(self._env, self._attr)

    def _set_dict(self, d: dict[str, Callable]) -> None:
        setattr(self._env, self._attr, d)

    def __getitem__(self, name: str) -> Callable:
        return self._get_dict()[name]

    def __setitem__(self, name: str, func: Callable) -> None:
        new = self._get_dict().copy()
        new[name] = func
        self._set_dict(new)

    def __delitem__(self, name: str) -> None:
        new = self._get_dict().copy()
        del new[name]
        self._set_dict(new)

    def __contains__(self, name: object) -> bool:
        return name in self._get_dict()

    def __len__(self) -> int:
        return len(self._get_dict())

    def __iter__(self):
        return iter(self._get_dict())

    def get(self, name: str, default: Callable | None = None) -> Callable | None:
        return self._get_dict().get(name, default)

    def update(self, mapping: dict[str, Callable]) -> None:
        """Batch update in one copy-on-write step."""
        new = self._get_dict().copy()
        new.update(mapping)
        self._set_dict(new)

    def copy(self) -> dict[str, Callable]:
        """Return a copy of the underlying dict."""
        return self._get_dict().copy()

    def keys(self):
        return self._get_dict().keys()

    def values(self):
        return self._get_dict().values()

    def items(self):
        return self._get_dict().items()
