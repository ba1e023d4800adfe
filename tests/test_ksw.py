import random

import pytest

from klibkit.ksw import AlignFlag, AlignResult, QueryProfile, align

NT = {"A": 0, "C": 1, "G": 2, "T": 3, "N": 4}


def encode(s):
    return [NT[c] for c in s]


def dna_matrix(sa=1, sb=3):
    mat = []
    for i in range(4):
        mat.extend(sa if i == j else -sb for j in range(4))
        mat.append(0)
    mat.extend([0] * 5)
    return mat


MAT = dna_matrix()
GAPO, GAPE = 5, 2


def run(query, target, xtra=0, profile=None):
    return align(encode(query), encode(target), 5, MAT, GAPO, GAPE, xtra, profile)


def test_default_result_fields():
    r = AlignResult()
    assert (r.score, r.te, r.qe, r.score2, r.te2, r.tb, r.qb) == (0, -1, -1, -1, -1, -1, -1)


@pytest.mark.parametrize("byte", [False, True])
def test_identical_sequences(byte):
    q = "ACGTTGCAAGCTAGGCTA"
    xtra = AlignFlag.START | (AlignFlag.BYTE if byte else 0)
    r = run(q, q, xtra)
    assert r.score == len(q)
    assert r.te == len(q) - 1
    assert r.qe == len(q) - 1
    assert r.tb == 0
    assert r.qb == 0


@pytest.mark.parametrize("byte", [False, True])
def test_query_embedded_in_target(byte):
    q = "GATTACAGATTACA"
    target = "TTTT" + q + "GGGG"
    xtra = AlignFlag.START | (AlignFlag.BYTE if byte else 0)
    r = run(q, target, xtra)
    assert r.score == len(q)
    assert r.te == 4 + len(q) - 1
    assert r.tb == 4
    assert r.qb == 0
    assert r.qe == len(q) - 1


def test_byte_mode_saturates_at_255():
    rng = random.Random(7)
    q = "".join(rng.choice("ACGT") for _ in range(300))
    r8 = run(q, q, AlignFlag.BYTE)
    r16 = run(q, q)
    assert r8.score == 255
    assert r8.qe == -1
    assert r16.score == len(q)


def test_stop_flag_ends_early():
    q = "ACGTACGTACGTACGTACGT"
    r = run(q, q, AlignFlag.STOP | 3)
    assert r.score == 3
    assert r.te == 2


@pytest.mark.parametrize("byte", [False, True])
def test_second_best_hit(byte):
    q = "ACGTACGTAC"
    target = q + "T" * 20 + q
    xtra = AlignFlag.SUBO | 5 | (AlignFlag.BYTE if byte else 0)
    r = run(q, target, xtra)
    assert r.score == len(q)
    assert r.te == len(q) - 1
    assert r.score2 == len(q)
    assert r.te2 == len(target) - 1


def test_byte_and_word_modes_agree():
    rng = random.Random(11)
    for _ in range(15):
        q = "".join(rng.choice("ACGT") for _ in range(rng.randint(5, 40)))
        t = "".join(rng.choice("ACGT") for _ in range(rng.randint(5, 60)))
        r8 = run(q, t, AlignFlag.START)
        r16 = run(q, t, AlignFlag.START | AlignFlag.BYTE)
        assert r8.score == r16.score
        assert r8.te == r16.te


def test_start_and_end_bound_the_alignment():
    rng = random.Random(3)
    for _ in range(10):
        q = "".join(rng.choice("ACGT") for _ in range(25))
        t = "".join(rng.choice("ACGT") for _ in range(50))
        r = run(q, t, AlignFlag.START)
        if r.tb >= 0:
            assert 0 <= r.tb <= r.te < len(t)
            assert 0 <= r.qb <= r.qe < len(q)


def test_reused_profile_gives_same_result():
    q = "ACGGTCATGCA"
    prof = QueryProfile(encode(q), 5, MAT, 2)
    for t in ["TTACGGTCATGCATT", "ACGG", "GGGGCATGCA"]:
        assert run(q, t, AlignFlag.START, prof) == run(q, t, AlignFlag.START)


def test_profile_layout():
    prof = QueryProfile(encode("ACGTACGTAC"), 5, MAT, 1)
    assert prof.size == 1
    assert prof.lanes == 16
    assert prof.slen == 1
    assert prof.shift == 3
    assert prof.max_score == 1
    word = QueryProfile(encode("ACGTACGTAC"), 5, MAT, 2)
    assert word.lanes == 8
    assert word.slen == 2


def test_empty_target_scores_zero():
    r = run("ACGT", "")
    assert r.score == 0
    assert r.te == -1


def test_empty_query_rejected():
    with pytest.raises(ValueError):
        run("", "ACGT")


def test_short_matrix_rejected():
    with pytest.raises(ValueError):
        align([0, 1], [0, 1], 5, [1, -1], GAPO, GAPE)


def test_out_of_range_residue_rejected():
    with pytest.raises(ValueError):
        align([0, 7], [0, 1], 5, MAT, GAPO, GAPE)