import random
from collections import defaultdict

import pytest

from bptstore import gen
from bptstore.tree import BPlusTree, Entry, key_hash


def _apply(tree, model, commands):
    for command in commands:
        kind, key = command[0], str(command[1])
        if kind == "insert":
            tree.insert(key, command[2])
            model[key].append(command[2])
        elif kind == "delete":
            expected = command[2] in model[key]
            assert tree.delete(key, command[2]) == expected
            if expected:
                model[key].remove(command[2])
        else:
            assert tree.find(key) == sorted(model[key])


def _check_all(tree, model, keys):
    for key in keys:
        assert tree.find(key) == sorted(model[key])


def test_key_hash_of_empty_string_is_zero():
    assert key_hash("") == 0


def test_key_hash_single_ascii_character():
    assert key_hash("a") == ord("a")


def test_key_hash_stays_within_64_bits():
    h = key_hash("z" * 60 + "\u00e9\u4e2d")
    assert 0 <= h < 2**64


def test_entries_order_by_index_then_value():
    assert sorted([Entry(2, 1), Entry(1, 5), Entry(1, 3)]) == [
        Entry(1, 3),
        Entry(1, 5),
        Entry(2, 1),
    ]


def test_find_on_empty_tree(tmp_path):
    with BPlusTree(tmp_path) as tree:
        assert tree.find("missing") == []


def test_values_come_back_sorted(tmp_path):
    with BPlusTree(tmp_path, order=4) as tree:
        for v in (5, 1, 3):
            tree.insert("k", v)
        tree.insert("other", 2)
        assert tree.find("k") == [1, 3, 5]
        assert tree.find("other") == [2]


def test_duplicate_pairs_are_kept(tmp_path):
    with BPlusTree(tmp_path, order=4) as tree:
        tree.insert("k", 7)
        tree.insert("k", 7)
        assert tree.find("k") == [7, 7]
        assert tree.delete("k", 7) is True
        assert tree.find("k") == [7]


def test_delete_missing_returns_false(tmp_path):
    with BPlusTree(tmp_path, order=4) as tree:
        assert tree.delete("k", 1) is False
        tree.insert("k", 1)
        assert tree.delete("k", 2) is False
        assert tree.find("k") == [1]


def test_value_out_of_range(tmp_path):
    with BPlusTree(tmp_path) as tree:
        with pytest.raises(ValueError):
            tree.insert("k", 2**31)


def test_order_too_small(tmp_path):
    with pytest.raises(ValueError):
        BPlusTree(tmp_path, order=2)


@pytest.mark.parametrize("order", [3, 4, 5])
def test_many_keys_with_splits_and_merges(tmp_path, order):
    model = defaultdict(list)
    keys = [str(i) for i in range(1, 201)]
    with BPlusTree(tmp_path, order=order) as tree:
        _apply(tree, model, [("insert", k, int(k)) for k in keys])
        _check_all(tree, model, keys)
        _apply(tree, model, [("delete", k, int(k)) for k in keys[::2]])
        _check_all(tree, model, keys)
        _apply(tree, model, [("delete", k, int(k)) for k in keys[1::2]])
        _check_all(tree, model, keys)
        tree.insert("again", 1)
        assert tree.find("again") == [1]


@pytest.mark.parametrize(
    "commands",
    [gen.insert_then_delete(40), gen.reverse_insert_then_delete(40), gen.insert_delete_find(30)],
)
def test_generated_scripts(tmp_path, commands):
    model = defaultdict(list)
    with BPlusTree(tmp_path, order=3) as tree:
        _apply(tree, model, commands)
        _check_all(tree, model, {str(c[1]) for c in commands})


@pytest.mark.parametrize("seed", [0, 1, 2])
@pytest.mark.parametrize("order", [3, 4, 6])
def test_random_mixed_matches_model(tmp_path, seed, order):
    model = defaultdict(list)
    commands = gen.random_mixed(3, random.Random(seed))
    with BPlusTree(tmp_path, order=order) as tree:
        _apply(tree, model, commands)
        _check_all(tree, model, [str(k) for k in range(1, 101)])


def test_many_values_under_one_key(tmp_path):
    with BPlusTree(tmp_path, order=3) as tree:
        values = list(range(50, 0, -1))
        for v in values:
            tree.insert("same", v)
        tree.insert("before", 0)
        assert tree.find("same") == sorted(values)
        for v in values[:25]:
            assert tree.delete("same", v)
        assert tree.find("same") == sorted(values[25:])
        assert tree.find("before") == [0]


def test_persists_across_reopen(tmp_path):
    model = defaultdict(list)
    commands = gen.random_insert_find(2, random.Random(5))
    with BPlusTree(tmp_path, order=4) as tree:
        _apply(tree, model, commands)
    with BPlusTree(tmp_path, order=4) as tree:
        _check_all(tree, model, [str(k) for k in range(1, 101)])


def test_reopen_after_emptying(tmp_path):
    with BPlusTree(tmp_path, order=3) as tree:
        for i in range(20):
            tree.insert(str(i), i)
        for i in range(20):
            assert tree.delete(str(i), i)
    with BPlusTree(tmp_path, order=3) as tree:
        assert tree.find("3") == []
        tree.insert("3", 3)
        assert tree.find("3") == [3]


def test_reopen_with_other_order_fails(tmp_path):
    with BPlusTree(tmp_path, order=4) as tree:
        tree.insert("k", 1)
    with pytest.raises(ValueError):
        BPlusTree(tmp_path, order=5)


def test_operations_after_close_fail(tmp_path):
    tree = BPlusTree(tmp_path, order=4)
    tree.insert("k", 1)
    tree.close()
    tree.close()
    with pytest.raises(ValueError):
        tree.find("k")