from __future__ import annotations
from typing import Iterable, Iterator, Set

from .errors import RegistryFrozenError


class MilestoneRegistry:
    """Milestone names declared during the current scan pass.

    Populated in a first phase, then frozen; markers are only evaluated against
    a frozen registry because membership decides the milestone condition.
    """

    def __init__(self) -> None:
        self._names: Set[str] = set()
        self._frozen = False

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "MilestoneRegistry":
        registry = cls()
        for name in names:
            registry.register(name)
        registry.freeze()
        return registry

    def register(self, name: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"cannot register milestone {name!r} after the registry was frozen")
        self._names.add(name)

    def contains(self, name: str) -> bool:
        return name in self._names

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)
