"""Open-addressing hash set with quadratic probing and tombstones."""

from __future__ import annotations

import operator
from enum import IntEnum
from typing import Any, Callable, Iterator

_MASK32 = 0xFFFFFFFF
_USED = 0
_DELETED = 1
_EMPTY = 2


def _roundup32(x: int) -> int:
    x = (x - 1) & _MASK32
    for shift in (1, 2, 4, 8, 16):
        x |= x >> shift
    return (x + 1) & _MASK32


class PutStatus(IntEnum):
    """What :meth:`KHash.put` did with the key."""

    PRESENT = 0
    ADDED = 1
    REUSED = 2


class KHash:
    """Hash set whose buckets can be addressed by index."""

    def __init__(
        self,
        hash_func: Callable[[Any], int] = hash,
        eq: Callable[[Any, Any], bool] = operator.eq,
    ) -> None:
        self._hash_func = hash_func
        self._eq = eq
        self._n_buckets = 0
        self._count = 0
        self._n_occupied = 0
        self._upper_bound = 0
        self._flags: list[int] = []
        self._keys: list[Any] = []

    def _hash(self, key: Any) -> int:
        return self._hash_func(key) & _MASK32

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Any]:
        for flag, key in zip(self._flags, self._keys):
            if flag == _USED:
                yield key

    def __contains__(self, key: Any) -> bool:
        return self.get(key) != self.end()

    def capacity(self) -> int:
        return self._n_buckets

    def end(self) -> int:
        """Index returned for a missing key."""
        return self._n_buckets

    def exist(self, index: int) -> bool:
        return not self._flags[index] & 3

    def at(self, index: int) -> Any:
        return self._keys[index]

    def get(self, key: Any) -> int:
        """Return the bucket index of ``key``, or :meth:`end` if absent."""
        nb = self._n_buckets
        if not nb:
            return 0
        flags, keys = self._flags, self._keys
        mask = nb - 1
        step = 0
        i = last = self._hash(key) & mask
        while not flags[i] & _EMPTY and (flags[i] & _DELETED or not self._eq(keys[i], key)):
            step += 1
            i = (i + step) & mask
            if i == last:
                return nb
        return nb if flags[i] & 3 else i

    def resize(self, new_n_buckets: int) -> None:
        """Rehash into a power-of-two number of buckets, if the keys fit."""
        new_nb = max(_roundup32(new_n_buckets), 4)
        if self._count >= (new_nb >> 1) + (new_nb >> 2):
            return
        new_flags = [_EMPTY] * new_nb
        nb = self._n_buckets
        flags, keys = self._flags, self._keys
        if nb < new_nb:
            keys.extend([None] * (new_nb - nb))
        mask = new_nb - 1
        for j in range(nb):
            if flags[j] & 3:
                continue
            key = keys[j]
            flags[j] |= _DELETED
            while True:
                step = 0
                i = self._hash(key) & mask
                while not new_flags[i] & _EMPTY:
                    step += 1
                    i = (i + step) & mask
                new_flags[i] &= ~_EMPTY
                if i < nb and not flags[i] & 3:
                    keys[i], key = key, keys[i]
                    flags[i] |= _DELETED
                else:
                    keys[i] = key
                    break
        if nb > new_nb:
            del keys[new_nb:]
        self._flags = new_flags
        self._n_buckets = new_nb
        self._n_occupied = self._count
        self._upper_bound = (new_nb >> 1) + (new_nb >> 2)

    def put(self, key: Any) -> tuple[int, PutStatus]:
        """Insert ``key``; return its bucket index and what happened."""
        if self._n_occupied >= self._upper_bound:
            if self._n_buckets > (self._count << 1):
                self.resize(self._n_buckets - 1)
            else:
                self.resize(self._n_buckets + 1)
        nb = self._n_buckets
        flags, keys = self._flags, self._keys
        mask = nb - 1
        step = 0
        x = site = nb
        i = self._hash(key) & mask
        if flags[i] & _EMPTY:
            x = i
        else:
            last = i
            while not flags[i] & _EMPTY and (flags[i] & _DELETED or not self._eq(keys[i], key)):
                if flags[i] & _DELETED:
                    site = i
                step += 1
                i = (i + step) & mask
                if i == last:
                    x = site
                    break
            if x == nb:
                x = site if (flags[i] & _EMPTY and site != nb) else i
        if flags[x] & _EMPTY:
            keys[x] = key
            flags[x] = _USED
            self._count += 1
            self._n_occupied += 1
            return x, PutStatus.ADDED
        if flags[x] & _DELETED:
            keys[x] = key
            flags[x] = _USED
            self._count += 1
            return x, PutStatus.REUSED
        return x, PutStatus.PRESENT

    def delete(self, index: int) -> None:
        """Mark the bucket at ``index`` deleted; no-op for end or empty buckets."""
        if index != self._n_buckets and not self._flags[index] & 3:
            self._flags[index] |= _DELETED
            self._count -= 1