import math
import random

import pytest

from klibkit.avl import AvlTree, InsertResult

KEYS = [chr(i) for i in range(33, 127) if chr(i) not in "().;"]


def _check(node):
    """Verify balance and size fields; return (count, height)."""
    if node is None:
        return 0, 0
    lc, lh = _check(node.child[0])
    rc, rh = _check(node.child[1])
    assert rh - lh == node.balance
    assert lc + rc + 1 == node.size
    return lc + rc + 1, max(lh, rh) + 1


def test_shuffled_insert_and_erase_keeps_invariants():
    rng = random.Random(11)
    buf = KEYS[:]
    rng.shuffle(buf)
    tree = AvlTree()
    for key in buf:
        result = tree.insert(key)
        assert result.is_new
        count, _ = _check(tree._root)
        assert count == len(tree)
    rng.shuffle(buf)
    erased = buf[: len(buf) // 2]
    for key in erased:
        assert tree.erase(key)
        count, _ = _check(tree._root)
        assert count == len(tree)
    assert list(tree) == sorted(set(KEYS) - set(erased))


def test_ranks_match_sorted_positions():
    tree = AvlTree()
    values = list(range(0, 200, 2))
    random.Random(5).shuffle(values)
    for v in values:
        tree.insert(v)
    for idx, v in enumerate(sorted(values)):
        found, rank = tree.find(v)
        assert found == v
        assert rank == idx + 1


def test_find_missing_reports_smaller_count():
    tree = AvlTree()
    for v in (10, 20, 30):
        tree.insert(v)
    assert tree.find(25) == (None, 2)
    assert tree.find(5) == (None, 0)
    assert 25 not in tree
    assert 20 in tree


def test_erase_missing_returns_false():
    tree = AvlTree()
    assert tree.erase(1) is False
    tree.insert(1)
    assert tree.erase(2) is False
    assert len(tree) == 1


def test_custom_ordering_reverses_iteration():
    tree = AvlTree(less=lambda a, b: a > b)
    for v in [3, 1, 4, 5, 9, 2, 6]:
        tree.insert(v)
    assert list(tree) == [9, 6, 5, 4, 3, 2, 1]


@pytest.mark.parametrize("n", [1, 2, 17, 1000])
def test_sequential_insert_stays_balanced(n):
    tree = AvlTree()
    for v in range(n):
        tree.insert(v)
    count, height = _check(tree._root)
    assert count == n
    assert height <= 1.45 * math.log2(n + 2)
    for v in range(0, n, 3):
        assert tree.erase(v)
        _check(tree._root)
    assert list(tree) == [v for v in range(n) if v % 3]


def test_erase_everything_empties_tree():
    tree = AvlTree()
    values = list(range(50))
    for v in values:
        tree.insert(v)
    random.Random(3).shuffle(values)
    for v in values:
        assert tree.erase(v)
        _check(tree._root)
    assert len(tree) == 0
    assert list(tree) == []