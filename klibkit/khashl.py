"""Linear-probing hash tables with Fibonacci hashing and backward-shift deletion."""

from __future__ import annotations

import operator
from typing import Any, Callable, Iterator, Optional

_MASK32 = 0xFFFFFFFF
_FIB32 = 2654435769


def _h2b(hash_value: int, bits: int) -> int:
    return ((hash_value * _FIB32) & _MASK32) >> (32 - bits)


class KHashSet:
    """Hash set whose buckets can be addressed by index."""

    def __init__(
        self,
        hash_func: Callable[[Any], int] = hash,
        eq: Callable[[Any, Any], bool] = operator.eq,
    ) -> None:
        self._hash_func = hash_func
        self._eq = eq
        self._bits = 0
        self._count = 0
        self._used: Optional[list[bool]] = None
        # each slot holds [key, hash, value]
        self._slots: list[Any] = []

    def _hash(self, key: Any) -> int:
        return self._hash_func(key) & _MASK32

    def _entry_hash(self, entry: list) -> int:
        return self._hash(entry[0])

    def _matches(self, entry: list, key: Any, hash_value: int) -> bool:
        return bool(self._eq(entry[0], key))

    def _new_entry(self, key: Any, hash_value: int) -> list:
        return [key, hash_value, None]

    def n_buckets(self) -> int:
        return 1 << self._bits if self._used is not None else 0

    def end(self) -> int:
        """Index returned for a missing key."""
        return self.n_buckets()

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Any]:
        if self._used is None:
            return
        for used, entry in zip(self._used, self._slots):
            if used:
                yield entry[0]

    def __contains__(self, key: Any) -> bool:
        return self.get(key) != self.end()

    def key(self, index: int) -> Any:
        return self._slots[index][0]

    def occupied(self, index: int) -> bool:
        return self._used is not None and self._used[index]

    def clear(self) -> None:
        """Remove all keys, keeping the allocated buckets."""
        if self._used is None:
            return
        self._used = [False] * self.n_buckets()
        self._count = 0

    def get(self, key: Any) -> int:
        """Return the bucket index of ``key``, or :meth:`end` if absent."""
        if self._used is None:
            return 0
        used, slots = self._used, self._slots
        nb = self.n_buckets()
        mask = nb - 1
        h = self._hash(key)
        i = last = _h2b(h, self._bits)
        while used[i] and not self._matches(slots[i], key, h):
            i = (i + 1) & mask
            if i == last:
                return nb
        return i if used[i] else nb

    def resize(self, new_n_buckets: int) -> None:
        """Rehash into a power-of-two number of buckets, if the keys fit."""
        j = new_n_buckets.bit_length() - 1 if new_n_buckets > 0 else 0
        if new_n_buckets & (new_n_buckets - 1):
            j += 1
        new_bits = max(j, 2)
        new_nb = 1 << new_bits
        if self._count > (new_nb >> 1) + (new_nb >> 2):
            return
        new_used = [False] * new_nb
        used = self._used if self._used is not None else []
        nb = self.n_buckets()
        slots = self._slots
        if nb < new_nb:
            slots.extend([None] * (new_nb - nb))
        mask = new_nb - 1
        for j in range(nb):
            if not used[j]:
                continue
            entry = slots[j]
            used[j] = False
            while True:
                i = _h2b(self._entry_hash(entry), new_bits)
                while new_used[i]:
                    i = (i + 1) & mask
                new_used[i] = True
                if i < nb and used[i]:
                    slots[i], entry = entry, slots[i]
                    used[i] = False
                else:
                    slots[i] = entry
                    break
        if nb > new_nb:
            del slots[new_nb:]
        self._used = new_used
        self._bits = new_bits

    def put(self, key: Any) -> tuple[int, bool]:
        """Insert ``key``; return its bucket index and whether it was absent."""
        nb = self.n_buckets()
        if self._count >= (nb >> 1) + (nb >> 2):
            self.resize(nb + 1)
            nb = self.n_buckets()
        used, slots = self._used, self._slots
        mask = nb - 1
        h = self._hash(key)
        i = last = _h2b(h, self._bits)
        while used[i] and not self._matches(slots[i], key, h):
            i = (i + 1) & mask
            if i == last:
                break
        if not used[i]:
            slots[i] = self._new_entry(key, h)
            used[i] = True
            self._count += 1
            return i, True
        return i, False

    def delete(self, index: int) -> bool:
        """Remove the key at ``index``; return False if nothing was there."""
        nb = self.n_buckets()
        if self._used is None or not 0 <= index < nb or not self._used[index]:
            return False
        used, slots = self._used, self._slots
        mask = nb - 1
        i = j = index
        while True:
            j = (j + 1) & mask
            if j == i or not used[j]:
                break
            k = _h2b(self._entry_hash(slots[j]), self._bits)
            if (j > i and (k <= i or k > j)) or (j < i and i >= k > j):
                slots[i] = slots[j]
                i = j
        used[i] = False
        self._count -= 1
        return True


class KHashMap(KHashSet):
    """Hash map built on :class:`KHashSet`; values live beside their keys."""

    def __init__(
        self,
        hash_func: Callable[[Any], int] = hash,
        eq: Callable[[Any, Any], bool] = operator.eq,
        default_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        super().__init__(hash_func, eq)
        self._default_factory = default_factory

    def _new_entry(self, key: Any, hash_value: int) -> list:
        value = self._default_factory() if self._default_factory is not None else None
        return [key, hash_value, value]

    def value(self, index: int) -> Any:
        return self._slots[index][2]

    def set_value(self, index: int, value: Any) -> None:
        self._slots[index][2] = value

    def __getitem__(self, key: Any) -> Any:
        index = self.get(key)
        if index == self.end():
            if self._default_factory is None:
                raise KeyError(key)
            index, _ = self.put(key)
        return self._slots[index][2]

    def __setitem__(self, key: Any, value: Any) -> None:
        index, _ = self.put(key)
        self._slots[index][2] = value


class _CachedHash:
    """Keeps each key's hash in its bucket and compares it before the keys."""

    def _entry_hash(self, entry: list) -> int:
        return entry[1]

    def _matches(self, entry: list, key: Any, hash_value: int) -> bool:
        return entry[1] == hash_value and bool(self._eq(entry[0], key))


class KHashSetCached(_CachedHash, KHashSet):
    """Hash set that never rehashes stored keys."""

    def __init__(
        self,
        hash_func: Callable[[Any], int] = hash,
        eq: Callable[[Any, Any], bool] = operator.eq,
    ) -> None:
        super().__init__(hash_func, eq)


class KHashMapCached(_CachedHash, KHashMap):
    """Hash map that never rehashes stored keys."""

    def __init__(
        self,
        hash_func: Callable[[Any], int] = hash,
        eq: Callable[[Any, Any], bool] = operator.eq,
        default_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        super().__init__(hash_func, eq, default_factory)