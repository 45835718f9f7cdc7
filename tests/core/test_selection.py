import pytest

from pianoscribe.core.selection import PairsSet


def test_empty_set():
    s = PairsSet.empty()
    assert s.is_empty
    assert not s
    assert len(s) == 0
    assert s.as_singleton is None
    assert not s.has((0, 0))


def test_singleton_detection_follows_mutations():
    s = PairsSet.singleton((1, 2))
    assert s.as_singleton == (1, 2)
    s.add((1, 3))
    assert s.as_singleton is None
    s.delete((1, 2))
    assert s.as_singleton == (1, 3)
    s.add((0, 3))
    assert s.as_singleton is None
    s.delete((1, 3))
    assert s.as_singleton == (0, 3)
    s.clear()
    assert s.as_singleton is None


def test_toggle_parity():
    s = PairsSet.empty()
    for _ in range(3):
        s.toggle((2, 5))
    assert s.has((2, 5))
    s.toggle((2, 5))
    assert not s.has((2, 5))
    # no empty group is left behind
    assert list(s.groups()) == []


def test_delete_missing_pair_is_noop():
    s = PairsSet.singleton((0, 1))
    s.delete((0, 2))
    s.delete((3, 1))
    assert s == PairsSet.singleton((0, 1))


def test_with_first_is_read_only_view():
    s = PairsSet.from_iterable([(0, [1, 2]), (1, [])])
    items = s.with_first(0)
    assert set(items) == {1, 2}
    assert 1 in items
    assert s.with_first(1) is None
    with pytest.raises(AttributeError):
        items.add(3)


def test_xor_twice_is_identity():
    a = PairsSet.from_iterable([(0, [1, 2]), (1, [4])])
    x = PairsSet.from_iterable([(0, [2, 3]), (2, [0])])
    original = a.copy()
    a.xor_with(x)
    assert sorted(a) == [(0, 1), (0, 3), (1, 4), (2, 0)]
    a.xor_with(x)
    assert a == original


def test_xor_and_union_do_not_alias_other():
    a = PairsSet.empty()
    b = PairsSet.singleton((0, 1))
    a.union_with(b)
    a.add((0, 2))
    assert sorted(b) == [(0, 1)]

    c = PairsSet.empty()
    c.xor_with(b)
    c.add((0, 5))
    assert sorted(b) == [(0, 1)]


def test_union():
    a = PairsSet.from_iterable([(0, [1])])
    a.union_with(PairsSet.from_iterable([(0, [1, 2]), (3, [3])]))
    assert sorted(a) == [(0, 1), (0, 2), (3, 3)]
    assert len(a) == 3


def test_copy_is_independent():
    a = PairsSet.singleton((0, 0))
    b = a.copy()
    b.add((0, 1))
    assert a.as_singleton == (0, 0)
    assert len(b) == 2


def test_contains_and_iteration():
    s = PairsSet.from_iterable([(1, [0, 2])])
    assert (1, 2) in s
    assert (1, 1) not in s
    assert sorted(s) == [(1, 0), (1, 2)]
    assert repr(s) == "PairsSet([(1, 0), (1, 2)])"
