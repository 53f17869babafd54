import math
import random

import pytest

from rsvpte.avl import AVLTree


def _bound(n):
    return 1.45 * math.log2(n + 2)


def test_empty_tree():
    tree = AVLTree()
    assert len(tree) == 0
    assert tree.height() == 0
    assert list(tree) == []
    assert tree.search(1) is None
    assert 1 not in tree


def test_single_insert():
    tree = AVLTree()
    assert tree.insert(5, "five") is True
    assert tree.height() == 1
    assert tree.search(5) == "five"
    assert 5 in tree
    assert len(tree) == 1


def test_duplicate_is_ignored():
    tree = AVLTree()
    tree.insert(7, "first")
    assert tree.insert(7, "second") is False
    assert tree.search(7) == "first"
    assert len(tree) == 1


@pytest.mark.parametrize("keys", [range(100), range(100, 0, -1), [50, 10, 90, 30, 70, 20, 80]])
def test_iteration_is_sorted_and_balanced(keys):
    tree = AVLTree()
    for key in keys:
        tree.insert(key, key * 2)
    items = list(tree)
    assert [k for k, _ in items] == sorted(keys)
    assert all(v == k * 2 for k, v in items)
    assert tree.height() <= _bound(len(tree))


def test_sequential_inserts_make_perfect_tree():
    tree = AVLTree()
    for key in range(1, 8):
        tree.insert(key, None)
    assert tree.height() == 3


def test_delete_leaf_inner_and_root():
    tree = AVLTree()
    for key in [50, 30, 70, 20, 40, 60, 80]:
        tree.insert(key, str(key))
    assert tree.delete(20) is True
    assert tree.delete(30) is True
    assert tree.delete(50) is True
    assert [k for k, _ in tree] == [40, 60, 70, 80]
    assert tree.search(60) == "60"
    assert 50 not in tree
    assert len(tree) == 4


def test_delete_missing_returns_false():
    tree = AVLTree()
    tree.insert(1, "a")
    assert tree.delete(2) is False
    assert len(tree) == 1
    assert tree.delete(1) is True
    assert tree.delete(1) is False
    assert tree.height() == 0


def test_random_operations_match_dict():
    rng = random.Random(1234)
    tree = AVLTree()
    reference = {}
    for _ in range(2000):
        key = rng.randrange(200)
        if rng.random() < 0.6:
            inserted = tree.insert(key, key + 1)
            assert inserted == (key not in reference)
            reference.setdefault(key, key + 1)
        else:
            removed = tree.delete(key)
            assert removed == (key in reference)
            reference.pop(key, None)
        assert len(tree) == len(reference)
    assert list(tree) == sorted(reference.items())
    assert tree.height() <= _bound(len(tree))
    for key in range(200):
        assert (key in tree) == (key in reference)
        assert tree.search(key) == reference.get(key)