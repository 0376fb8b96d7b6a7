import io

import pytest

from sparselin.data import create_dataset
from sparselin.errors import InvalidDataError
from sparselin.reader import get_name_value, read_data, read_dataset, read_stream


def test_get_name_value_splits_at_rightmost_colon():
    assert get_name_value("x:y:2") == ("x:y", 2.0)
    assert get_name_value("plain") == ("plain", 1.0)
    assert get_name_value("neg:-0.5") == ("neg", -0.5)


# ================================================================
# line-oriented data
# ================================================================
def test_binary_labels_weights_and_values(make_dataset):
    data = make_dataset("binary", "+1:2.5\tA:0.5\tB\n-1\tB\n1\tA\n")
    assert len(data) == 3
    first, second, third = data
    assert (first.label, first.weight, first.features) == (True, 2.5, [(0, 0.5), (1, 1.0)])
    assert (second.label, second.weight) == (False, 1.0)
    assert third.label is True


def test_comments_and_blank_lines_are_skipped(make_dataset):
    data = make_dataset("multiclass", "# header\n\nsport\tball\n\n# trailer\n")
    assert len(data) == 1
    assert list(data.labels) == ["sport"]


def test_empty_label_reports_line_number(make_dataset):
    with pytest.raises(InvalidDataError) as excinfo:
        make_dataset("binary", "1\tA\n\tB\n")
    assert excinfo.value.lineno == 2
    assert "an empty label found" in str(excinfo.value)
    assert "line 2" in str(excinfo.value)


def test_invalid_binary_label(make_dataset):
    with pytest.raises(InvalidDataError) as excinfo:
        make_dataset("binary", "# c\n2\tA\n")
    assert excinfo.value.lineno == 2


def test_invalid_attribute_value(make_dataset):
    with pytest.raises(InvalidDataError, match="A:x"):
        make_dataset("multiclass", "sport\tA:x\n")


def test_attribute_filter(make_dataset):
    data = make_dataset("multiclass", "a\tw_x\tz\nb\tw_y\n", attribute_filter="^w_")
    assert list(data.attributes) == ["w_x", "w_y"]
    assert data[0].candidates[0].attributes == [(0, 1.0)]


# ================================================================
# candidate blocks
# ================================================================
def test_selection_blocks(make_dataset):
    data = make_dataset("selection", "@boi\n+a\tx\nb\ty\n@eoi\n@boi\na\ty\n+c\tx:2\n@eoi\n")
    assert len(data) == 2
    assert list(data.labels) == ["a", "b", "c"]
    assert data[0].true_index() == 0
    assert data[1].true_index() == 1
    assert data[1].candidates[1].attributes == [(0, 2.0)]


def test_bias_is_added_to_every_candidate(make_dataset):
    data = make_dataset("ranking", "@boi\n+r1\tx\nr2\n@eoi\n", bias=1.0)
    for candidate in data[0].candidates:
        assert candidate.attributes[-1] == (0, 1.0)


@pytest.mark.parametrize(
    "text, lineno",
    [
        ("@eoi\n", 1),
        ("+a\tx\n", 1),
        ("@boi\n+a\tx\n@boi\n", 3),
        ("@boi\n+a\tx\n+b\ty\n@eoi\n", 4),
        ("@boi\n+\tx\n@eoi\n", 2),
    ],
)
def test_malformed_blocks(make_dataset, text, lineno):
    with pytest.raises(InvalidDataError) as excinfo:
        make_dataset("selection", text)
    assert excinfo.value.lineno == lineno


def test_unterminated_block(make_dataset):
    with pytest.raises(InvalidDataError, match="@eoi"):
        make_dataset("ranking", "@boi\n+a\tx\n")


# ================================================================
# files and groups
# ================================================================
def test_each_file_is_a_group(tmp_path):
    first = tmp_path / "a.txt"
    second = tmp_path / "b.txt"
    first.write_text("1\tA\n-1\tB\n", encoding="utf8")
    second.write_text("1\tC\n", encoding="utf8")
    data = create_dataset("binary")
    assert read_dataset(data, [first, second]) == 2
    assert [instance.group for instance in data] == [0, 0, 1]


def test_split_overrides_file_groups(tmp_path):
    path = tmp_path / "a.txt"
    path.write_text("".join(f"1\tA{i}\n" for i in range(5)), encoding="utf8")
    data = create_dataset("binary")
    assert read_dataset(data, [path], split=2) == 2
    assert [instance.group for instance in data] == [0, 1, 0, 1, 0]


def test_read_data_from_stdin(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("sport\tball\n"))
    data = create_dataset("multiclass")
    read_data(data, [])
    assert len(data) == 1


def test_read_stream_returns_count():
    data = create_dataset("multiclass")
    assert read_stream(["a\tx\n", "b\ty\n"], data, group=4) == 2
    assert [instance.group for instance in data] == [4, 4]
