"""Model files: writing trained weights, reading them back and tagging data.

A model file starts with a header naming the model family::

    @classias<TAB>linear<TAB>binary
    @classias<TAB>linear<TAB>multi<TAB><feature generation>
    @classias<TAB>linear<TAB>ranking

multi models then list their labels (``@label<TAB><name>``), and every
non-zero weight follows on its own line as ``<weight><TAB><attribute>``
(``<TAB><label>`` appended for multi models).  Bias weights are stored
multiplied by the bias value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, TextIO, Union

import numpy as np

from .classify import LinearClassifier
from .data import (
    BIAS_ATTRIBUTE,
    BinaryFeatureGenerator,
    Dataset,
    FeatureGenerator,
    IdentityFeatureGenerator,
    SparseFeatureGenerator,
    create_dataset,
)
from .errors import InvalidModelError
from .evaluation import EvaluationResult, evaluate_instances
from .quark import Quark

LOGGER = logging.getLogger(__name__)

MAGIC = "@classias"
LABEL_PREFIX = "@label"

MODEL_KINDS = {
    "binary": "binary",
    "multiclass": "multi",
    "selection": "multi",
    "ranking": "ranking",
}


def model_header(data: Dataset) -> str:
    kind = MODEL_KINDS[data.task]
    if kind == "multi":
        return f"{MAGIC}\tlinear\t{kind}\t{data.feature_generator.name}"
    return f"{MAGIC}\tlinear\t{kind}"


def write_model(path: Union[str, Path], data: Dataset, weights: np.ndarray) -> int:
    """Write the non-zero ``weights`` of a model trained on ``data``; returns the number written."""

    kind = MODEL_KINDS[data.task]
    generator = data.feature_generator
    written = 0
    with Path(path).open("w", encoding="utf8") as handle:
        handle.write(model_header(data) + "\n")
        if kind == "multi":
            for name in data.labels:
                handle.write(f"{LABEL_PREFIX}\t{name}\n")
        for fid, weight in enumerate(weights):
            if weight == 0.0:
                continue
            aid, lid = generator.backward(fid)
            attribute = data.attributes.resolve(aid)
            value = float(weight)
            if attribute == BIAS_ATTRIBUTE:
                value *= data.bias
            if kind == "multi":
                handle.write(f"{value!r}\t{attribute}\t{data.labels.resolve(lid)}\n")
            else:
                handle.write(f"{value!r}\t{attribute}\n")
            written += 1
    LOGGER.info("Stored %d non-zero weights to %s", written, path)
    return written


@dataclass
class LinearModel:
    """Weights read from a model file, indexed by the model's own feature ids."""

    kind: str
    attributes: Quark
    labels: Quark
    feature_generator: FeatureGenerator
    weights: np.ndarray

    def compatible_with(self, task: str) -> bool:
        return MODEL_KINDS.get(task) == self.kind

    def new_dataset(self, task: str, negative_labels: Iterable[str], bias: float = 0.0) -> Dataset:
        """Return an empty data set whose attributes (and labels) are frozen to the model's."""

        if not self.compatible_with(task):
            raise InvalidModelError(f"a {self.kind} model cannot tag {task} data")
        data = create_dataset(task, tuple(negative_labels), bias)
        data.attributes = Quark(self.attributes, frozen=True)
        if self.kind == "multi":
            data.labels = Quark(self.labels, frozen=True)
        return data

    def bind(self, data: Dataset) -> None:
        """Finalize ``data`` and score it with the model's feature generator."""

        data.finalize()
        data.feature_generator = self.feature_generator


def read_model(source: Union[str, Path, TextIO], bias: float = 1.0) -> LinearModel:
    """Read a model file; bias weights are divided by ``bias``."""

    if isinstance(source, (str, Path)):
        with Path(source).open(encoding="utf8") as handle:
            return _parse_model(handle, bias)
    return _parse_model(source, bias)


def _parse_model(lines: Iterable[str], bias: float) -> LinearModel:
    kind: Optional[str] = None
    attributes = Quark()
    labels = Quark()
    generator = None
    values: List[float] = []

    for lineno, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if not line:
            continue
        fields = line.split("\t")
        if kind is None:
            if len(fields) < 3 or fields[0] != MAGIC or fields[1] != "linear":
                raise InvalidModelError(f"unrecognized model header at line {lineno}: {line!r}")
            kind = fields[2]
            if kind == "binary":
                labels = Quark(["-1", "+1"], frozen=True)
            elif kind == "multi":
                generator = SparseFeatureGenerator()
            elif kind != "ranking":
                raise InvalidModelError(f"unknown model type at line {lineno}: {kind}")
            continue
        if fields[0] == LABEL_PREFIX:
            if kind != "multi" or len(fields) != 2:
                raise InvalidModelError(f"unexpected label line {lineno}: {line!r}")
            labels.intern(fields[1])
            continue

        expected = 3 if kind == "multi" else 2
        if len(fields) != expected:
            raise InvalidModelError(f"expected {expected} fields at line {lineno}: {line!r}")
        try:
            value = float(fields[0])
        except ValueError:
            raise InvalidModelError(f"invalid weight at line {lineno}: {fields[0]!r}") from None
        if fields[1] == BIAS_ATTRIBUTE and bias:
            value /= bias
        aid = attributes.intern(fields[1])
        if kind == "multi":
            lid = labels.lookup(fields[2])
            if lid < 0:
                raise InvalidModelError(f"undeclared label at line {lineno}: {fields[2]!r}")
            fid = generator.assign(aid, lid)
            values.extend([0.0] * (fid + 1 - len(values)))
            values[fid] = value
        else:
            values.extend([0.0] * (aid + 1 - len(values)))
            values[aid] = value

    if kind is None:
        raise InvalidModelError("empty model file")
    if kind == "binary":
        generator = BinaryFeatureGenerator(len(attributes))
    elif kind == "ranking":
        generator = IdentityFeatureGenerator(len(attributes))
    weights = np.zeros(generator.num_features)
    weights[: len(values)] = values
    attributes.freeze()
    labels.freeze()
    return LinearModel(kind, attributes, labels, generator, weights)


def tag(data: Dataset, model: LinearModel, output: Optional[TextIO] = None) -> EvaluationResult:
    """Write the predicted label of every instance and evaluate against the references."""

    model.bind(data)
    if output is not None:
        cls = LinearClassifier(model.weights, model.feature_generator)
        for instance in data:
            lid = cls.label(cls.argmax) if cls.classify(instance) else -1
            output.write((data.labels.resolve(lid) if lid >= 0 else "") + "\n")
    return evaluate_instances(data.instances, model.weights, data)
