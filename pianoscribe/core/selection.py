"""
Sparse set of (group, item) integer pairs.

Used as the note selection: group is the part index, item the note index.
Pairs are stored grouped by their first component so per-part queries
("is note i of part p selected?") don't have to scan the whole set.
"""
from collections.abc import Set as AbstractSet
from typing import Dict, Iterable, Iterator, Optional, Set, Tuple

Pair = Tuple[int, int]

# Marks the singleton cache as stale
_STALE = object()


class _ItemsView(AbstractSet):
    """Read-only view over one group's items."""

    __slots__ = ("_items",)

    def __init__(self, items: Set[int]):
        self._items = items

    def __contains__(self, item) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[int]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"_ItemsView({sorted(self._items)!r})"


class PairsSet:
    """
    Mutable set of (group, item) pairs.

    Invariant: no group maps to an empty item set.
    """

    __slots__ = ("_inner", "_singleton")

    def __init__(self, inner: Optional[Dict[int, Set[int]]] = None, singleton=_STALE):
        self._inner: Dict[int, Set[int]] = inner if inner is not None else {}
        self._singleton = singleton

    @classmethod
    def empty(cls) -> "PairsSet":
        return cls({}, None)

    @classmethod
    def singleton(cls, pair: Pair) -> "PairsSet":
        group, item = pair
        return cls({group: {item}}, (group, item))

    @classmethod
    def from_iterable(cls, groups: Iterable[Tuple[int, Iterable[int]]]) -> "PairsSet":
        """Build from (group, items) pairs, dropping groups with no items."""
        inner = {}
        for group, items in groups:
            items = set(items)
            if items:
                inner.setdefault(group, set()).update(items)
        return cls(inner)

    def copy(self) -> "PairsSet":
        return PairsSet({g: set(items) for g, items in self._inner.items()}, self._singleton)

    @property
    def is_empty(self) -> bool:
        return not self._inner

    @property
    def as_singleton(self) -> Optional[Pair]:
        """The only pair in the set, or None if there are zero or several."""
        if self._singleton is not _STALE:
            return self._singleton
        self._singleton = None
        if len(self._inner) == 1:
            (group, items), = self._inner.items()
            if len(items) == 1:
                item, = items
                self._singleton = (group, item)
        return self._singleton

    def has(self, pair: Pair) -> bool:
        group, item = pair
        items = self._inner.get(group)
        return items is not None and item in items

    __contains__ = has

    def with_first(self, group: int) -> Optional[AbstractSet]:
        """Items selected within one group, or None if the group is absent."""
        items = self._inner.get(group)
        return _ItemsView(items) if items is not None else None

    def groups(self) -> Iterator[int]:
        return iter(self._inner)

    def add(self, pair: Pair):
        self._singleton = _STALE
        group, item = pair
        items = self._inner.get(group)
        if items is not None:
            items.add(item)
        else:
            self._inner[group] = {item}

    def delete(self, pair: Pair):
        self._singleton = _STALE
        group, item = pair
        items = self._inner.get(group)
        if items is not None and item in items:
            items.discard(item)
            if not items:
                del self._inner[group]

    def toggle(self, pair: Pair):
        self._singleton = _STALE
        group, item = pair
        items = self._inner.get(group)
        if items is None:
            self._inner[group] = {item}
        elif item in items:
            items.discard(item)
            if not items:
                del self._inner[group]
        else:
            items.add(item)

    def clear(self):
        self._singleton = None
        self._inner.clear()

    def xor_with(self, other: "PairsSet"):
        """In-place symmetric difference."""
        self._singleton = _STALE
        for group, other_items in list(other._inner.items()):
            items = self._inner.get(group)
            if items is None:
                self._inner[group] = set(other_items)
            else:
                items.symmetric_difference_update(other_items)
                if not items:
                    del self._inner[group]

    def union_with(self, other: "PairsSet"):
        """In-place union."""
        self._singleton = _STALE
        for group, other_items in other._inner.items():
            items = self._inner.get(group)
            if items is None:
                self._inner[group] = set(other_items)
            else:
                items.update(other_items)

    def __iter__(self) -> Iterator[Pair]:
        for group, items in self._inner.items():
            for item in items:
                yield group, item

    def __len__(self) -> int:
        return sum(len(items) for items in self._inner.values())

    def __bool__(self) -> bool:
        return bool(self._inner)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PairsSet):
            return NotImplemented
        return self._inner == other._inner

    __hash__ = None

    def __repr__(self) -> str:
        return f"PairsSet({sorted(self)!r})"
