"""Banded seed extension and banded global alignment with affine gaps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from klibkit.ksw import _check_matrix, _check_residues

_MINUS_INF = -0x40000000
_OPS = ("M", "I", "D")


@dataclass(frozen=True)
class ExtendResult:
    """Best extension score and the query/target lengths it covers."""

    score: int
    qle: int
    tle: int


@dataclass(frozen=True)
class GlobalResult:
    """Global alignment score and its CIGAR as ``(op, length)`` pairs."""

    score: int
    cigar: list[tuple[str, int]] = field(default_factory=list)

    @property
    def cigar_string(self) -> str:
        return "".join(f"{length}{op}" for op, length in self.cigar)


def _profile(query: Sequence[int], m: int, mat: Sequence[int]) -> list[list[int]]:
    return [[mat[k * m + c] for c in query] for k in range(m)]


def _validate(query, target, m, mat, gape) -> None:
    _check_matrix(m, mat)
    _check_residues(query, m, "query")
    _check_residues(target, m, "target")
    if gape <= 0:
        raise ValueError("gap extension penalty must be positive")


def extend(
    query: Sequence[int],
    target: Sequence[int],
    m: int,
    mat: Sequence[int],
    gapo: int,
    gape: int,
    w: int,
    h0: int = 0,
) -> ExtendResult:
    """Extend an alignment that already scores ``h0`` from the start of both sequences.

    The band half-width ``w`` is narrowed to what the best possible score
    could pay for in gaps. ``qle`` and ``tle`` are the lengths of query and
    target covered by the best extension (0 when nothing beats ``h0``).
    """
    _validate(query, target, m, mat, gape)
    qlen = len(query)
    if qlen == 0:
        raise ValueError("query must not be empty")
    h0 = max(h0, 0)
    gapoe = gapo + gape
    qp = _profile(query, m, mat)
    eh_h = [0] * (qlen + 1)
    eh_e = [0] * (qlen + 1)
    eh_h[0] = h0
    eh_h[1] = h0 - gapoe if h0 > gapoe else 0
    j = 2
    while j <= qlen and eh_h[j - 1] > gape:
        eh_h[j] = eh_h[j - 1] - gape
        j += 1
    best_sub = max(0, max(mat[: m * m]))
    max_gap = max(int((qlen * best_sub - gapo) / gape + 1.0), 1)
    w = min(w, max_gap)

    best, max_i, max_j = h0, -1, -1
    beg, end = 0, qlen
    for i, residue in enumerate(target):
        q = qp[residue]
        f = 0
        row_max, mj = 0, -1
        h1 = max(h0 - (gapo + gape * (i + 1)), 0)
        beg = max(beg, i - w)
        end = min(end, i + w + 1, qlen)
        for j in range(beg, end):
            h, e = eh_h[j], eh_e[j]
            eh_h[j] = h1
            h += q[j]
            h = max(h, e, f)
            h1 = h
            if row_max <= h:
                mj, row_max = j, h
            h = max(h - gapoe, 0)
            e = max(e - gape, h)
            eh_e[j] = e
            f = max(f - gape, h)
        eh_h[end], eh_e[end] = h1, 0
        if row_max == 0:
            break
        if row_max > best:
            best, max_i, max_j = row_max, i, mj
        j = mj
        while j >= beg and eh_h[j]:
            j -= 1
        beg = j + 1
        j = mj + 2
        while j <= end and eh_h[j]:
            j += 1
        end = j
    return ExtendResult(best, max_j + 1, max_i + 1)


def _push(cigar: list[list], op: int, length: int) -> None:
    if cigar and cigar[-1][0] == op:
        cigar[-1][1] += length
    else:
        cigar.append([op, length])


def global_align(
    query: Sequence[int],
    target: Sequence[int],
    m: int,
    mat: Sequence[int],
    gapo: int,
    gape: int,
    w: int,
) -> GlobalResult:
    """Align both sequences end to end inside a band of half-width ``w``.

    CIGAR operations are ``M`` (match or mismatch), ``I`` (residue only in
    the query) and ``D`` (residue only in the target).
    """
    _validate(query, target, m, mat, gape)
    if w < 0:
        raise ValueError("band width must not be negative")
    qlen, tlen = len(query), len(target)
    gapoe = gapo + gape
    n_col = min(qlen, 2 * w + 1)
    z = bytearray(n_col * tlen)
    qp = _profile(query, m, mat)
    eh_h = [_MINUS_INF] * (qlen + 1)
    eh_e = [_MINUS_INF] * (qlen + 1)
    eh_h[0] = 0
    for j in range(1, min(qlen, w) + 1):
        eh_h[j] = -(gapo + gape * j)

    for i, residue in enumerate(target):
        q = qp[residue]
        row = i * n_col
        f = _MINUS_INF
        beg = i - w if i > w else 0
        end = min(i + w + 1, qlen)
        h1 = -(gapo + gape * (i + 1)) if beg == 0 else _MINUS_INF
        for j in range(beg, end):
            h, e = eh_h[j], eh_e[j]
            eh_h[j] = h1
            h += q[j]
            d = 0 if h > e else 1
            h = h if h > e else e
            d = d if h > f else 2
            h = h if h > f else f
            h1 = h
            h -= gapoe
            e -= gape
            if e > h:
                d |= 1 << 2
            e = max(e, h)
            eh_e[j] = e
            f -= gape
            if f > h:
                d |= 2 << 4
            f = max(f, h)
            z[row + j - beg] = d
        eh_h[end], eh_e[end] = h1, _MINUS_INF
    score = eh_h[qlen]

    cigar: list[list] = []
    i = tlen - 1
    k = min(i + w + 1, qlen) - 1
    which = 0
    while i >= 0 and k >= 0:
        beg = i - w if i > w else 0
        which = z[i * n_col + k - beg] >> (which << 1) & 3
        if which == 0:
            _push(cigar, 0, 1)
            i -= 1
            k -= 1
        elif which == 1:
            _push(cigar, 2, 1)
            i -= 1
        else:
            _push(cigar, 1, 1)
            k -= 1
    if i >= 0:
        _push(cigar, 2, i + 1)
    if k >= 0:
        _push(cigar, 1, k + 1)
    cigar.reverse()
    return GlobalResult(score, [(_OPS[op], length) for op, length in cigar])