"""Bidirectional string <-> integer id tables."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List

NOT_FOUND = -1


class Quark:
    """Assigns contiguous ids ``0..size-1`` to strings in first-seen order.

    A growable quark hands out the next id for an unseen string.  Once frozen,
    :meth:`intern` no longer mutates the table and returns :data:`NOT_FOUND`
    for unseen strings, which is how evaluation data is mapped onto the
    attribute and label space of a trained model.
    """

    def __init__(self, items: Iterable[str] = (), frozen: bool = False) -> None:
        self._ids: Dict[str, int] = {}
        self._items: List[str] = []
        self.frozen = False
        for item in items:
            self.intern(item)
        self.frozen = frozen

    def intern(self, name: str) -> int:
        """Return the id of ``name``, assigning a new one when the quark is growable."""

        qid = self._ids.get(name)
        if qid is not None:
            return qid
        if self.frozen:
            return NOT_FOUND
        qid = len(self._items)
        self._ids[name] = qid
        self._items.append(name)
        return qid

    __call__ = intern

    def lookup(self, name: str) -> int:
        return self._ids.get(name, NOT_FOUND)

    def resolve(self, qid: int) -> str:
        if qid < 0 or qid >= len(self._items):
            raise IndexError(f"quark id out of range: {qid} (size {len(self._items)})")
        return self._items[qid]

    def freeze(self) -> None:
        self.frozen = True

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __repr__(self) -> str:
        state = "frozen" if self.frozen else "growable"
        return f"Quark(size={len(self._items)}, {state})"
