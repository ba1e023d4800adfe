"""Order-statistic AVL tree with a pluggable strict ordering."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional


@dataclass(frozen=True)
class InsertResult:
    """Outcome of :meth:`AvlTree.insert`.

    ``data`` is the element held by the tree: the new one, or the equal
    element that was already present. ``rank`` is the number of elements
    in the tree that compare less than or equal to the inserted value.
    """

    data: Any
    is_new: bool
    rank: int


class _Node:
    __slots__ = ("data", "balance", "size", "child")

    def __init__(self, data: Any) -> None:
        self.data = data
        self.balance = 0
        self.size = 1
        self.child: list[Optional[_Node]] = [None, None]


def _child_size(node: _Node, direction: int) -> int:
    child = node.child[direction]
    return child.size if child is not None else 0


def _rotate1(p: _Node, direction: int) -> _Node:
    """Single rotation: (a,(b,c)q)p => ((a,b)p,c)q."""
    opp = 1 - direction
    q = p.child[opp]
    size_p = p.size
    p.size -= q.size - _child_size(q, direction)
    q.size = size_p
    p.child[opp] = q.child[direction]
    q.child[direction] = p
    return q


def _rotate2(p: _Node, direction: int) -> _Node:
    """Double rotation: (a,((b,c)r,d)q)p => ((a,b)p,(c,d)q)r."""
    opp = 1 - direction
    q = p.child[opp]
    r = q.child[direction]
    size_x_dir = _child_size(r, direction)
    r.size = p.size
    p.size -= q.size - size_x_dir
    q.size -= size_x_dir + 1
    p.child[opp] = r.child[direction]
    r.child[direction] = p
    q.child[direction] = r.child[opp]
    r.child[opp] = q
    b1 = 1 if direction == 0 else -1
    if r.balance == b1:
        q.balance, p.balance = 0, -b1
    elif r.balance == 0:
        q.balance = p.balance = 0
    else:
        q.balance, p.balance = b1, 0
    r.balance = 0
    return r


class AvlTree:
    """A balanced binary search tree that also tracks subtree sizes."""

    def __init__(self, less: Optional[Callable[[Any, Any], bool]] = None) -> None:
        self._less = less if less is not None else operator.lt
        self._root: Optional[_Node] = None

    def _cmp(self, x: Any, y: Any) -> int:
        return int(bool(self._less(y, x))) - int(bool(self._less(x, y)))

    def __len__(self) -> int:
        return self._root.size if self._root is not None else 0

    def __iter__(self) -> Iterator[Any]:
        stack: list[_Node] = []
        node = self._root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.child[0]
            node = stack.pop()
            yield node.data
            node = node.child[1]

    def __contains__(self, data: Any) -> bool:
        return self._lookup(data)[0] is not None

    def _lookup(self, data: Any) -> tuple[Optional[_Node], int]:
        node = self._root
        rank = 0
        while node is not None:
            cmp = self._cmp(data, node.data)
            if cmp >= 0:
                rank += _child_size(node, 0) + 1
            if cmp < 0:
                node = node.child[0]
            elif cmp > 0:
                node = node.child[1]
            else:
                break
        return node, rank

    def find(self, data: Any) -> tuple[Any, int]:
        """Return ``(element, rank)``; element is None when absent.

        The rank counts the elements less than or equal to ``data``.
        """
        node, rank = self._lookup(data)
        return (node.data if node is not None else None), rank

    def insert(self, data: Any) -> InsertResult:
        """Insert ``data`` unless an equal element is already present."""
        rank = 0
        p = self._root
        q: Optional[_Node] = None
        bp, bq = p, None
        which = 0
        stack: list[int] = []
        path: list[_Node] = []
        while p is not None:
            cmp = self._cmp(data, p.data)
            if cmp >= 0:
                rank += _child_size(p, 0) + 1
            if cmp == 0:
                return InsertResult(p.data, False, rank)
            if p.balance != 0:
                bq, bp, stack = q, p, []
            which = 1 if cmp > 0 else 0
            stack.append(which)
            path.append(p)
            q, p = p, p.child[which]
        x = _Node(data)
        if q is None:
            self._root = x
        else:
            q.child[which] = x
        result = InsertResult(data, True, rank)
        if bp is None:
            return result
        for node in path:
            node.size += 1
        p = bp
        for direction in stack:
            p.balance += 1 if direction else -1
            p = p.child[direction]
        if -2 < bp.balance < 2:
            return result
        which = 1 if bp.balance < 0 else 0
        b1 = 1 if which == 0 else -1
        q = bp.child[1 - which]
        if q.balance == b1:
            r = _rotate1(bp, which)
            q.balance = bp.balance = 0
        else:
            r = _rotate2(bp, which)
        if bq is None:
            self._root = r
        else:
            bq.child[0 if bp is bq.child[0] else 1] = r
        return result

    def erase(self, data: Any) -> bool:
        """Remove the element equal to ``data``; return whether one was found."""
        fake = _Node(None)
        fake.child[0] = self._root
        path: list[Any] = []
        dirs: list[Any] = []
        p = fake
        cmp = -1
        while cmp:
            which = 1 if cmp > 0 else 0
            dirs.append(which)
            path.append(p)
            p = p.child[which]
            if p is None:
                return False
            cmp = self._cmp(data, p.data)
        for node in path[1:]:
            node.size -= 1
        if p.child[1] is None:
            path[-1].child[dirs[-1]] = p.child[0]
        else:
            q = p.child[1]
            if q.child[0] is None:
                q.child[0] = p.child[0]
                q.balance = p.balance
                path[-1].child[dirs[-1]] = q
                path.append(q)
                dirs.append(1)
                q.size = p.size - 1
            else:
                e = len(path)
                path.append(None)
                dirs.append(None)
                while True:
                    dirs.append(0)
                    path.append(q)
                    r = q.child[0]
                    if r.child[0] is None:
                        break
                    q = r
                r.child[0] = p.child[0]
                q.child[0] = r.child[1]
                r.child[1] = p.child[1]
                r.balance = p.balance
                path[e - 1].child[dirs[e - 1]] = r
                path[e] = r
                dirs[e] = 1
                for node in path[e + 1:]:
                    node.size -= 1
                r.size = p.size - 1
        for d in range(len(path) - 1, 0, -1):
            q = path[d]
            which = dirs[d]
            other = 1 - which
            b1, b2 = (1, 2) if which == 0 else (-1, -2)
            q.balance += b1
            if q.balance == b1:
                break
            if q.balance == b2:
                r = q.child[other]
                parent, pdir = path[d - 1], dirs[d - 1]
                if r.balance == -b1:
                    parent.child[pdir] = _rotate2(q, which)
                else:
                    parent.child[pdir] = _rotate1(q, which)
                    if r.balance == 0:
                        r.balance = -b1
                        q.balance = b1
                        break
                    r.balance = q.balance = 0
        self._root = fake.child[0]
        return True