from __future__ import annotations

from dataclasses import asdict, fields, is_dataclass
from typing import Any, Callable, Dict, Generic, Iterator, List, Sequence, Type, TypeVar

A = TypeVar("A")


def action_key(action: Any) -> str:
    """Canonical signature of an action: every tunable field joined by ``_``."""
    parts: List[str] = []
    for f in fields(action):
        v = getattr(action, f.name)
        if isinstance(v, bool):
            parts.append("1" if v else "0")
        else:
            parts.append(str(v))
    return "_".join(parts)


def action_to_dict(action: Any) -> Dict[str, Any]:
    return asdict(action)


def action_from_dict(action_type: Type[A], d: Dict[str, Any]) -> A:
    names = {f.name for f in fields(action_type)}
    missing = names - set(d)
    if missing:
        raise ValueError(f"action record missing fields: {sorted(missing)}")
    return action_type(**{k: d[k] for k in names})


class ActionCatalog(Generic[A]):
    """Immutable, ordered enumeration of the configurations a bandit may pick."""

    def __init__(self, actions: Sequence[A]):
        if not actions:
            raise ValueError("action catalog cannot be empty")
        if not all(is_dataclass(a) for a in actions):
            raise TypeError("catalog actions must be dataclass instances")
        self._actions = tuple(actions)
        self._keys = tuple(action_key(a) for a in self._actions)
        self._index: Dict[str, int] = {}
        for i, k in enumerate(self._keys):
            self._index.setdefault(k, i)

    @staticmethod
    def generate(builder: Callable[[int], Sequence[A]], levels: Sequence[int]) -> "ActionCatalog[A]":
        out: List[A] = []
        for level in levels:
            out.extend(builder(level))
        return ActionCatalog(out)

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[A]:
        return iter(self._actions)

    def __getitem__(self, i: int) -> A:
        return self._actions[i]

    @property
    def actions(self) -> Sequence[A]:
        return self._actions

    @property
    def keys(self) -> Sequence[str]:
        return self._keys

    def index_of(self, action: A) -> int:
        return self._index[action_key(action)]

    def __contains__(self, action: object) -> bool:
        try:
            return action_key(action) in self._index
        except TypeError:
            return False
