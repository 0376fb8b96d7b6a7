# tests/conftest.py
from __future__ import annotations

import io
from typing import Callable

import pytest

from sparselin.data import Dataset, create_dataset
from sparselin.reader import ReaderOptions, read_stream

BINARY_TEXT = "1\tA\tB\n-1\tA\n1\tB\n"

TOPICS_TEXT = """\
sport\tball\tgoal
sport\tball\tteam
sport\tgoal\tteam
politics\tvote\tparty
politics\tvote\telection
politics\tparty\telection
weather\train\tsun
weather\tsun\twind
weather\train\twind
"""

RANKING_TEXT = """\
@boi
+r1\tgood\tx
r2\tbad\tx
@eoi
@boi
r1\tbad\ty
+r2\tgood
@eoi
@boi
r1\tbad
r2\tbad\tz
+r3\tgood\tz
@eoi
"""


def load(
    task: str,
    text: str,
    bias: float = 0.0,
    feature_generation: str = "sparse",
    attribute_filter: str = None,
) -> Dataset:
    data = create_dataset(task, ("-1", "O"), bias, feature_generation)
    read_stream(io.StringIO(text), data, options=ReaderOptions.build(attribute_filter))
    return data


@pytest.fixture
def make_dataset() -> Callable[..., Dataset]:
    return load


@pytest.fixture
def binary_data() -> Dataset:
    return load("binary", BINARY_TEXT)


@pytest.fixture
def topics_data() -> Dataset:
    return load("multiclass", TOPICS_TEXT)


@pytest.fixture
def ranking_data() -> Dataset:
    return load("ranking", RANKING_TEXT)


@pytest.fixture
def topics_file(tmp_path):
    path = tmp_path / "topics.txt"
    path.write_text(TOPICS_TEXT, encoding="utf8")
    return path


@pytest.fixture
def binary_file(tmp_path):
    path = tmp_path / "binary.txt"
    path.write_text(BINARY_TEXT * 3, encoding="utf8")
    return path
