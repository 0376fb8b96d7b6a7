"""Reading data sets from tab-separated feature files.

Binary and multiclass data hold one instance per line::

    <label>[:<weight>] TAB <attribute>[:<value>] TAB ...

Selection and ranking data group candidate lines into instance blocks::

    @boi
    [+]<label> TAB <attribute>[:<value>] TAB ...
    ...
    @eoi

where the ``+`` prefix marks the true candidate.  Empty lines and lines
starting with ``#`` are skipped everywhere.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Pattern, Sequence, Tuple

from .data import (
    BIAS_ATTRIBUTE,
    BinaryDataset,
    BinaryInstance,
    Dataset,
    Instance,
    MulticlassDataset,
)
from .errors import InvalidDataError
from .evaluation import split_groups

LOGGER = logging.getLogger(__name__)

BEGIN_OF_INSTANCE = "@boi"
END_OF_INSTANCE = "@eoi"


@dataclass
class ReaderOptions:
    token_separator: str = "\t"
    value_separator: str = ":"
    attribute_filter: Optional[Pattern[str]] = None

    @classmethod
    def build(cls, attribute_filter: Optional[str] = None) -> "ReaderOptions":
        pattern = re.compile(attribute_filter) if attribute_filter else None
        return cls(attribute_filter=pattern)


def get_name_value(token: str, separator: str = ":") -> Tuple[str, float]:
    """Split ``name[:value]`` at the rightmost separator; the value defaults to 1."""

    col = token.rfind(separator)
    if col < 0:
        return token, 1.0
    return token[:col], float(token[col + 1 :])


def _accepts(options: ReaderOptions, name: str) -> bool:
    return options.attribute_filter is None or options.attribute_filter.search(name) is not None


def _split_line(line: str, options: ReaderOptions, lineno: int) -> Tuple[str, float, Sequence[str]]:
    fields = line.split(options.token_separator)
    if not fields[0]:
        raise InvalidDataError("an empty label found", line, lineno)
    try:
        name, value = get_name_value(fields[0], options.value_separator)
    except ValueError:
        raise InvalidDataError("an invalid label weight found", line, lineno) from None
    return name, value, fields[1:]


def _read_attributes(target, tokens: Sequence[str], data: Dataset, options: ReaderOptions, line: str, lineno: int) -> None:
    for token in tokens:
        if not token:
            continue
        try:
            name, value = get_name_value(token, options.value_separator)
        except ValueError:
            raise InvalidDataError(f"an invalid value found in '{token}'", line, lineno) from None
        if not _accepts(options, name):
            continue
        aid = data.attributes.intern(name)
        if aid >= 0:
            target.append(aid, value)
    if data.bias:
        aid = data.attributes.intern(BIAS_ATTRIBUTE)
        if aid >= 0:
            target.append(aid, data.bias)


def read_binary_line(line: str, data: BinaryDataset, options: ReaderOptions, lineno: int = 0) -> BinaryInstance:
    name, weight, tokens = _split_line(line, options, lineno)
    if name in ("+1", "1"):
        label = True
    elif name == "-1":
        label = False
    else:
        raise InvalidDataError("a class label must be either '+1', '1', or '-1'", line, lineno)
    instance = BinaryInstance(label=label, weight=weight)
    _read_attributes(instance, tokens, data, options, line, lineno)
    return instance


def read_multiclass_line(line: str, data: MulticlassDataset, options: ReaderOptions, lineno: int = 0) -> Instance:
    name, weight, tokens = _split_line(line, options, lineno)
    instance = Instance(weight=weight)
    candidate = instance.new_candidate(data.labels.intern(name), truth=True)
    _read_attributes(candidate, tokens, data, options, line, lineno)
    return instance


def _read_line_stream(lines: Iterable[str], data: Dataset, group: int, options: ReaderOptions) -> int:
    read_line = read_binary_line if isinstance(data, BinaryDataset) else read_multiclass_line
    count = 0
    for lineno, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if not line or line.startswith("#"):
            continue
        instance = read_line(line, data, options, lineno)
        instance.group = group
        data.append(instance)
        count += 1
    return count


def _read_candidate_stream(lines: Iterable[str], data: Dataset, group: int, options: ReaderOptions) -> int:
    count = 0
    instance: Optional[Instance] = None
    lineno = 0
    for lineno, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if not line or line.startswith("#"):
            continue
        if line.startswith(BEGIN_OF_INSTANCE):
            if instance is not None:
                raise InvalidDataError(f"{BEGIN_OF_INSTANCE} found before {END_OF_INSTANCE}", line, lineno)
            instance = Instance(group=group)
            continue
        if line.startswith(END_OF_INSTANCE):
            if instance is None:
                raise InvalidDataError(f"{END_OF_INSTANCE} found without {BEGIN_OF_INSTANCE}", line, lineno)
            if sum(1 for candidate in instance.candidates if candidate.truth) > 1:
                raise InvalidDataError("an instance has more than one true candidate", line, lineno)
            data.append(instance)
            instance = None
            count += 1
            continue
        if instance is None:
            raise InvalidDataError("a candidate found outside of an instance block", line, lineno)

        name, _, tokens = _split_line(line, options, lineno)
        truth = name.startswith("+")
        if truth:
            name = name[1:]
        if not name:
            raise InvalidDataError("an empty label found", line, lineno)
        candidate = instance.new_candidate(data.labels.intern(name), truth=truth)
        _read_attributes(candidate, tokens, data, options, line, lineno)

    if instance is not None:
        raise InvalidDataError(f"the last instance is not terminated by {END_OF_INSTANCE}", None, lineno)
    return count


def read_stream(
    lines: Iterable[str],
    data: Dataset,
    group: int = 0,
    options: Optional[ReaderOptions] = None,
) -> int:
    """Append the instances of ``lines`` to ``data`` and return how many were read."""

    options = options or ReaderOptions()
    data.reserve_bias()
    if data.task in ("selection", "ranking"):
        return _read_candidate_stream(lines, data, group, options)
    return _read_line_stream(lines, data, group, options)


def read_data(data: Dataset, files: Sequence[Path], options: Optional[ReaderOptions] = None) -> None:
    """Read each file as its own group, or STDIN when no file is given."""

    if not files:
        LOGGER.info("Reading STDIN")
        read_stream(sys.stdin, data, 0, options)
        return
    for i, path in enumerate(files):
        LOGGER.info("File (%d/%d) : %s", i + 1, len(files), path)
        with Path(path).open(encoding="utf8") as handle:
            count = read_stream(handle, data, i, options)
        LOGGER.info("Read %d instances from %s", count, path)


def read_dataset(
    data: Dataset,
    files: Sequence[Path],
    split: int = 0,
    options: Optional[ReaderOptions] = None,
) -> int:
    """Read the data and assign groups; returns the number of groups."""

    read_data(data, files, options)
    if split > 0:
        return split_groups(data, split)
    return len(files)
