import pytest

from sparselin.data import create_dataset
from sparselin.quark import NOT_FOUND, Quark


def test_ids_are_contiguous_in_first_seen_order():
    quark = Quark()
    assert [quark.intern(name) for name in ["b", "a", "b", "c", "a"]] == [0, 1, 0, 2, 1]
    assert len(quark) == 3
    assert list(quark) == ["b", "a", "c"]


def test_resolve_inverts_intern():
    quark = Quark(["x", "y", "z"])
    for name in ["x", "y", "z"]:
        assert quark.resolve(quark.intern(name)) == name


def test_resolve_out_of_range():
    quark = Quark(["x"])
    with pytest.raises(IndexError):
        quark.resolve(1)
    with pytest.raises(IndexError):
        quark.resolve(-1)


def test_frozen_quark_does_not_grow():
    quark = Quark(["x"], frozen=True)
    assert quark.intern("x") == 0
    assert quark("unseen") == NOT_FOUND
    assert len(quark) == 1
    assert "unseen" not in quark


def test_lookup_never_assigns():
    quark = Quark()
    assert quark.lookup("a") == NOT_FOUND
    assert len(quark) == 0
    quark.freeze()
    assert "frozen" in repr(quark)


def test_seeded_frozen_quark_keeps_seed_ids():
    quark = Quark(["-1", "+1"], frozen=True)
    assert quark.frozen
    assert (quark.lookup("-1"), quark.lookup("+1")) == (0, 1)
    assert quark.intern("0") == NOT_FOUND
    assert list(quark) == ["-1", "+1"]


def test_binary_dataset_labels_are_seeded():
    data = create_dataset("binary")
    assert list(data.labels) == ["-1", "+1"]
    assert data.labels.frozen
