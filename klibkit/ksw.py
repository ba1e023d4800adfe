"""Striped Smith-Waterman local alignment on 8-lane or 16-lane score vectors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import Optional, Sequence


class AlignFlag(IntFlag):
    """Options for :func:`align`; the low 16 bits of ``xtra`` carry a score."""

    BYTE = 0x10000
    STOP = 0x20000
    SUBO = 0x40000
    START = 0x80000


_SCORE_MASK = 0xFFFF


@dataclass
class AlignResult:
    """Best local hit; positions are inclusive and -1 when unset."""

    score: int = 0
    te: int = -1
    qe: int = -1
    score2: int = -1
    te2: int = -1
    tb: int = -1
    qb: int = -1


def _check_matrix(m: int, mat: Sequence[int]) -> None:
    if m <= 0:
        raise ValueError("alphabet size must be positive")
    if len(mat) < m * m:
        raise ValueError(f"scoring matrix needs {m * m} entries, got {len(mat)}")
    if any(not -128 <= v <= 127 for v in mat[: m * m]):
        raise ValueError("scores must fit in a signed byte")


def _check_residues(seq: Sequence[int], m: int, what: str) -> None:
    if any(not 0 <= c < m for c in seq):
        raise ValueError(f"{what} residues must lie in [0, {m})")


class QueryProfile:
    """Query scores laid out in striped lanes, reusable across targets.

    ``size`` 1 stores scores as unsigned bytes (16 lanes, may saturate at
    255); any larger value stores signed 16-bit scores (8 lanes).
    """

    def __init__(
        self, query: Sequence[int], m: int, mat: Sequence[int], size: int = 2
    ) -> None:
        _check_matrix(m, mat)
        qlen = len(query)
        if qlen == 0:
            raise ValueError("query must not be empty")
        _check_residues(query, m, "query")
        self.size = 2 if size > 1 else 1
        self.lanes = 8 * (3 - self.size)
        self.qlen = qlen
        self.slen = (qlen + self.lanes - 1) // self.lanes
        self.m = m
        scores = list(mat[: m * m])
        low = min(127, min(scores))
        self.max_score = max(0, max(scores))
        self.shift = (256 - (low & 0xFF)) & 0xFF
        self.mdiff = (self.max_score + self.shift) & 0xFF
        slen, lanes = self.slen, self.lanes
        self.vectors: list[list[list[int]]] = []
        for a in range(m):
            row = scores[a * m : (a + 1) * m]
            per_residue = []
            for i in range(slen):
                vec = []
                for k in range(i, slen * lanes, slen):
                    v = row[query[k]] if k < qlen else 0
                    vec.append((v + self.shift) & 0xFF if self.size == 1 else v)
                per_residue.append(vec)
            self.vectors.append(per_residue)


def _shift_lane(v: list[int]) -> list[int]:
    return [0] + v[:-1]


def _record_hit(hits: list[list[int]], imax: int, i: int) -> None:
    if not hits or hits[-1][1] + 1 != i:
        hits.append([imax, i])
    elif hits[-1][0] < imax:
        hits[-1] = [imax, i]


def _second_best(r: AlignResult, hits: list[list[int]], te: int, max_score: int) -> None:
    if not hits:
        return
    span = (r.score + max_score - 1) // max_score
    low, high = te - span, te + span
    for score, end in hits:
        if (end < low or end > high) and score > r.score2:
            r.score2, r.te2 = score, end


def _limits(xtra: int) -> tuple[int, int]:
    minsc = xtra & _SCORE_MASK if xtra & AlignFlag.SUBO else 0x10000
    endsc = xtra & _SCORE_MASK if xtra & AlignFlag.STOP else 0x10000
    return minsc, endsc


def _sw_u8(prof: QueryProfile, target: Sequence[int], gapo: int, gape: int, xtra: int) -> AlignResult:
    r = AlignResult()
    minsc, endsc = _limits(xtra)
    lanes, slen, shift = prof.lanes, prof.slen, prof.shift
    gapoe = (gapo + gape) & 0xFF
    gape &= 0xFF
    zero = [0] * lanes
    h0 = [zero] * slen
    h1 = [zero] * slen
    e_vec = [zero] * slen
    hmax = [zero] * slen
    hits: list[list[int]] = []
    gmax, te = 0, -1
    for i, residue in enumerate(target):
        profile = prof.vectors[residue]
        f = zero
        vmax = zero
        h = _shift_lane(h0[slen - 1])
        for j, s in enumerate(profile):
            e = e_vec[j]
            h = [max(min(x + y, 255) - shift, 0, ee, ff) for x, y, ee, ff in zip(h, s, e, f)]
            vmax = list(map(max, vmax, h))
            h1[j] = h
            h = [max(x - gapoe, 0) for x in h]
            e_vec[j] = [max(x - gape, 0, y) for x, y in zip(e, h)]
            f = [max(x - gape, 0, y) for x, y in zip(f, h)]
            h = h0[j]
        done = False
        for _ in range(16):
            f = _shift_lane(f)
            for j in range(slen):
                h = list(map(max, h1[j], f))
                h1[j] = h
                h = [max(x - gapoe, 0) for x in h]
                f = [max(x - gape, 0) for x in f]
                if all(x <= y for x, y in zip(f, h)):
                    done = True
                    break
            if done:
                break
        imax = max(vmax)
        if imax >= minsc:
            _record_hit(hits, imax, i)
        if imax > gmax:
            gmax, te = imax, i
            hmax = list(h1)
            if gmax + shift >= 255 or gmax >= endsc:
                break
        h0, h1 = h1, h0
    r.score = gmax if gmax + shift < 255 else 255
    r.te = te
    if r.score != 255:
        best = -1
        for j, vec in enumerate(hmax):
            for lane, v in enumerate(vec):
                if v > best:
                    best, r.qe = v, j + lane * slen
        _second_best(r, hits, te, prof.max_score)
    return r


def _adds16(a: int, b: int) -> int:
    return max(-32768, min(32767, a + b))


def _subs_u16(a: int, b: int) -> int:
    v = max((a & 0xFFFF) - (b & 0xFFFF), 0)
    return v - 0x10000 if v >= 0x8000 else v


def _sw_i16(prof: QueryProfile, target: Sequence[int], gapo: int, gape: int, xtra: int) -> AlignResult:
    r = AlignResult()
    minsc, endsc = _limits(xtra)
    lanes, slen = prof.lanes, prof.slen
    gapoe = (gapo + gape) & 0xFFFF
    gape &= 0xFFFF
    zero = [0] * lanes
    h0 = [zero] * slen
    h1 = [zero] * slen
    e_vec = [zero] * slen
    hmax = [zero] * slen
    hits: list[list[int]] = []
    gmax, te = 0, -1
    for i, residue in enumerate(target):
        profile = prof.vectors[residue]
        f = zero
        vmax = zero
        h = _shift_lane(h0[slen - 1])
        for j, s in enumerate(profile):
            e = e_vec[j]
            h = [max(_adds16(x, y), ee, ff) for x, y, ee, ff in zip(h, s, e, f)]
            vmax = list(map(max, vmax, h))
            h1[j] = h
            h = [_subs_u16(x, gapoe) for x in h]
            e_vec[j] = [max(_subs_u16(x, gape), y) for x, y in zip(e, h)]
            f = [max(_subs_u16(x, gape), y) for x, y in zip(f, h)]
            h = h0[j]
        done = False
        for _ in range(16):
            f = _shift_lane(f)
            for j in range(slen):
                h = list(map(max, h1[j], f))
                h1[j] = h
                h = [_subs_u16(x, gapoe) for x in h]
                f = [_subs_u16(x, gape) for x in f]
                if not any(x > y for x, y in zip(f, h)):
                    done = True
                    break
            if done:
                break
        imax = max(vmax) & 0xFFFF
        if imax >= minsc:
            _record_hit(hits, imax, i)
        if imax > gmax:
            gmax, te = imax, i
            hmax = list(h1)
            if gmax >= endsc:
                break
        h0, h1 = h1, h0
    r.score, r.te = gmax, te
    best = -1
    r.qe = -1
    for j, vec in enumerate(hmax):
        for lane, v in enumerate(vec):
            v &= 0xFFFF
            if v > best:
                best, r.qe = v, j + lane * slen
    _second_best(r, hits, te, prof.max_score)
    return r


def align(
    query: Sequence[int],
    target: Sequence[int],
    m: int,
    mat: Sequence[int],
    gapo: int,
    gape: int,
    xtra: int = 0,
    profile: Optional[QueryProfile] = None,
) -> AlignResult:
    """Locally align ``query`` against ``target``.

    A gap of length ``l`` costs ``gapo + l * gape``. ``xtra`` combines
    :class:`AlignFlag` values with a score in its low 16 bits. A prebuilt
    ``profile`` of the same query may be passed to skip rebuilding it.
    """
    _check_matrix(m, mat)
    _check_residues(target, m, "target")
    query = list(query)
    target = list(target)
    if profile is None:
        profile = QueryProfile(query, m, mat, 1 if xtra & AlignFlag.BYTE else 2)
    func = _sw_i16 if profile.size == 2 else _sw_u8
    r = func(profile, target, gapo, gape, xtra)
    if not xtra & AlignFlag.START or (
        xtra & AlignFlag.SUBO and r.score < xtra & _SCORE_MASK
    ):
        return r
    if r.qe < 0:
        return r
    rev_query = query[: r.qe + 1][::-1]
    rev_target = target[: r.te + 1][::-1] + target[r.te + 1 :]
    rev_profile = QueryProfile(rev_query, m, mat, profile.size)
    rr = func(rev_profile, rev_target, gapo, gape, AlignFlag.STOP | r.score)
    if r.score == rr.score:
        r.tb = r.te - rr.te
        r.qb = r.qe - rr.qe
    return r