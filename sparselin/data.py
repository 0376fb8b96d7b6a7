"""Sparse instances, feature generators and data sets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import DegenerateInstanceError, InvalidDataError, InvalidTaskError
from .quark import NOT_FOUND, Quark

LOGGER = logging.getLogger(__name__)

BIAS_ATTRIBUTE = "__BIAS__"
DEFAULT_NEGATIVE_LABELS: FrozenSet[str] = frozenset({"-1", "O"})
NO_HOLDOUT = -1

# Label ids of the binary task.
FALSE_LABEL = 0
TRUE_LABEL = 1

Attributes = List[Tuple[int, float]]


@dataclass
class Candidate:
    """One labelled option of an instance with its sparse attribute vector."""

    label: int
    attributes: Attributes = field(default_factory=list)
    truth: bool = False

    def append(self, aid: int, value: float = 1.0) -> None:
        self.attributes.append((aid, value))


@dataclass
class Instance:
    """An instance of the multiclass, selection or ranking task."""

    candidates: List[Candidate] = field(default_factory=list)
    group: int = 0
    weight: float = 1.0

    def new_candidate(self, label: int, truth: bool = False) -> Candidate:
        candidate = Candidate(label=label, truth=truth)
        self.candidates.append(candidate)
        return candidate

    def true_index(self) -> int:
        """Return the position of the true candidate, or -1 if there is none."""

        for i, candidate in enumerate(self.candidates):
            if candidate.truth:
                return i
        return -1

    def true_label(self) -> int:
        index = self.true_index()
        return self.candidates[index].label if index >= 0 else NOT_FOUND


@dataclass
class BinaryInstance:
    """An instance of the binary task.

    The trainers see a binary instance as two candidates: the false label
    without attributes and the true label carrying the features.  Scoring the
    pair with :class:`BinaryFeatureGenerator` makes the softmax equal to the
    logistic function of ``w . x``.
    """

    label: bool = False
    features: Attributes = field(default_factory=list)
    weight: float = 1.0
    group: int = 0

    def append(self, fid: int, value: float = 1.0) -> None:
        self.features.append((fid, value))

    @property
    def candidates(self) -> Tuple[Candidate, Candidate]:
        return (
            Candidate(FALSE_LABEL, [], truth=not self.label),
            Candidate(TRUE_LABEL, self.features, truth=self.label),
        )

    def true_index(self) -> int:
        return TRUE_LABEL if self.label else FALSE_LABEL

    def true_label(self) -> int:
        return TRUE_LABEL if self.label else FALSE_LABEL


def require_true_index(instance) -> int:
    """Return the true candidate index of a training instance or raise."""

    if not instance.candidates:
        raise DegenerateInstanceError("an instance has no candidate")
    index = instance.true_index()
    if index < 0:
        raise DegenerateInstanceError("an instance has no true candidate")
    return index


class FeatureGenerator:
    """Maps (attribute, label) pairs to feature ids and back."""

    name = ""

    def forward(self, aid: int, lid: int) -> int:
        raise NotImplementedError

    def backward(self, fid: int) -> Tuple[int, int]:
        raise NotImplementedError

    @property
    def num_features(self) -> int:
        raise NotImplementedError


class BinaryFeatureGenerator(FeatureGenerator):
    """Features are attributes; only the true label carries them."""

    name = "binary"

    def __init__(self, num_attributes: int) -> None:
        self.num_attributes = num_attributes

    def forward(self, aid: int, lid: int) -> int:
        if lid == TRUE_LABEL and 0 <= aid < self.num_attributes:
            return aid
        return NOT_FOUND

    def backward(self, fid: int) -> Tuple[int, int]:
        return fid, TRUE_LABEL

    @property
    def num_features(self) -> int:
        return self.num_attributes


class IdentityFeatureGenerator(FeatureGenerator):
    """Features are attributes regardless of the candidate label (ranking)."""

    name = "identity"

    def __init__(self, num_attributes: int) -> None:
        self.num_attributes = num_attributes

    def forward(self, aid: int, lid: int) -> int:
        return aid if 0 <= aid < self.num_attributes else NOT_FOUND

    def backward(self, fid: int) -> Tuple[int, int]:
        return fid, NOT_FOUND

    @property
    def num_features(self) -> int:
        return self.num_attributes


class DenseFeatureGenerator(FeatureGenerator):
    """Every attribute is combined with every label: ``fid = aid * L + lid``."""

    name = "dense"

    def __init__(self, num_attributes: int, num_labels: int) -> None:
        self.num_attributes = num_attributes
        self.num_labels = num_labels

    def forward(self, aid: int, lid: int) -> int:
        if 0 <= aid < self.num_attributes and 0 <= lid < self.num_labels:
            return aid * self.num_labels + lid
        return NOT_FOUND

    def backward(self, fid: int) -> Tuple[int, int]:
        return divmod(fid, self.num_labels)

    @property
    def num_features(self) -> int:
        return self.num_attributes * self.num_labels


class SparseFeatureGenerator(FeatureGenerator):
    """Only (attribute, label) pairs observed on true candidates become features."""

    name = "sparse"

    def __init__(self) -> None:
        self._forward: Dict[Tuple[int, int], int] = {}
        self._backward: List[Tuple[int, int]] = []

    def assign(self, aid: int, lid: int) -> int:
        key = (aid, lid)
        fid = self._forward.get(key)
        if fid is None:
            fid = len(self._backward)
            self._forward[key] = fid
            self._backward.append(key)
        return fid

    def forward(self, aid: int, lid: int) -> int:
        return self._forward.get((aid, lid), NOT_FOUND)

    def backward(self, fid: int) -> Tuple[int, int]:
        return self._backward[fid]

    @property
    def num_features(self) -> int:
        return len(self._backward)


FEATURE_GENERATIONS = ("sparse", "dense")


class Dataset:
    """Instances plus the quarks and the feature generator describing them.

    Instances are appended while reading; :meth:`finalize` settles the label
    and attribute counts, builds the feature generator and the list of
    positive labels.  Finalizing twice is a no-op.
    """

    task = ""

    def __init__(
        self,
        negative_labels: Iterable[str] = DEFAULT_NEGATIVE_LABELS,
        bias: float = 0.0,
    ) -> None:
        self.instances: List = []
        self.attributes = Quark()
        self.labels = Quark()
        self.negative_labels = frozenset(negative_labels)
        self.bias = bias
        self.feature_generator: Optional[FeatureGenerator] = None
        self.positive_labels: List[int] = []
        self.user_feature_start = 0
        self.finalized = False

    def __len__(self) -> int:
        return len(self.instances)

    def __iter__(self) -> Iterator:
        return iter(self.instances)

    def __getitem__(self, index: int):
        return self.instances[index]

    def append(self, instance) -> None:
        self.instances.append(instance)

    @property
    def num_attributes(self) -> int:
        return len(self.attributes)

    @property
    def num_labels(self) -> int:
        return len(self.labels)

    @property
    def num_features(self) -> int:
        if self.feature_generator is None:
            raise RuntimeError("The data set has not been finalized yet.")
        return self.feature_generator.num_features

    @property
    def groups(self) -> List[int]:
        return sorted({instance.group for instance in self.instances})

    def reserve_bias(self) -> None:
        """Make sure the bias attribute holds attribute id 0."""

        if not self.bias or self.attributes.frozen:
            return
        aid = self.attributes.intern(BIAS_ATTRIBUTE)
        if aid != 0:
            raise InvalidDataError("A bias attribute could not obtain #0")

    def training_instances(self, holdout: int = NO_HOLDOUT) -> Iterator:
        return (instance for instance in self.instances if instance.group != holdout)

    def holdout_instances(self, holdout: int) -> Iterator:
        return (instance for instance in self.instances if instance.group == holdout)

    def finalize(self) -> None:
        if self.finalized:
            return
        self._finalize()
        self.positive_labels = [
            lid for lid, name in enumerate(self.labels) if name not in self.negative_labels
        ]
        self.finalized = True
        LOGGER.info(
            "Finalized %s data: %d instances, %d attributes, %d labels, %d features",
            self.task,
            len(self.instances),
            self.num_attributes,
            self.num_labels,
            self.num_features,
        )

    def _finalize(self) -> None:
        raise NotImplementedError


class BinaryDataset(Dataset):
    task = "binary"

    def __init__(self, negative_labels: Iterable[str] = DEFAULT_NEGATIVE_LABELS, bias: float = 0.0) -> None:
        super().__init__(negative_labels, bias)
        self.labels = Quark(["-1", "+1"], frozen=True)

    def _finalize(self) -> None:
        self.feature_generator = BinaryFeatureGenerator(self.num_attributes)
        self.user_feature_start = 1 if self.bias else 0


class SelectionDataset(Dataset):
    """Instances list their candidate labels; features are attribute x label pairs."""

    task = "selection"

    def __init__(
        self,
        negative_labels: Iterable[str] = DEFAULT_NEGATIVE_LABELS,
        bias: float = 0.0,
        feature_generation: str = "sparse",
    ) -> None:
        super().__init__(negative_labels, bias)
        if feature_generation not in FEATURE_GENERATIONS:
            raise ValueError(f"unknown feature generation: {feature_generation}")
        self.feature_generation = feature_generation

    def _finalize(self) -> None:
        num_labels = self.num_labels
        if self.feature_generation == "dense":
            # Bias pairs (0, l) land on ids 0..L-1.
            self.feature_generator = DenseFeatureGenerator(self.num_attributes, num_labels)
        else:
            generator = SparseFeatureGenerator()
            if self.bias:
                for lid in range(num_labels):
                    generator.assign(0, lid)
            for instance in self.instances:
                for candidate in instance.candidates:
                    if candidate.truth:
                        for aid, _ in candidate.attributes:
                            generator.assign(aid, candidate.label)
            self.feature_generator = generator
        self.user_feature_start = num_labels if self.bias else 0


class MulticlassDataset(SelectionDataset):
    """Every label is a candidate of every instance.

    The reader stores the observed label as the single true candidate; at
    finalize time each instance is expanded into one candidate per label, all
    sharing the same attribute list.
    """

    task = "multiclass"

    def _finalize(self) -> None:
        num_labels = self.num_labels
        for instance in self.instances:
            observed = instance.candidates
            label = observed[0].label if observed and observed[0].truth else NOT_FOUND
            attributes = observed[0].attributes if observed else []
            instance.candidates = [
                Candidate(lid, attributes, truth=(lid == label)) for lid in range(num_labels)
            ]
        super()._finalize()


class RankingDataset(Dataset):
    """Candidates carry their own attribute vectors; features are attributes."""

    task = "ranking"

    def _finalize(self) -> None:
        self.feature_generator = IdentityFeatureGenerator(self.num_attributes)
        self.user_feature_start = 1 if self.bias else 0


DATASET_TYPES = {
    "binary": BinaryDataset,
    "multiclass": MulticlassDataset,
    "selection": SelectionDataset,
    "ranking": RankingDataset,
}

TASK_ALIASES = {"b": "binary", "m": "multiclass", "s": "selection", "r": "ranking"}


def resolve_task(task: str) -> str:
    name = TASK_ALIASES.get(task, task)
    if name not in DATASET_TYPES:
        raise InvalidTaskError(task)
    return name


def create_dataset(
    task: str,
    negative_labels: Sequence[str] = tuple(DEFAULT_NEGATIVE_LABELS),
    bias: float = 0.0,
    feature_generation: str = "sparse",
) -> Dataset:
    """Return an empty data set for ``task`` (``binary``, ``multiclass``, ``selection`` or ``ranking``)."""

    name = resolve_task(task)
    if name in ("multiclass", "selection"):
        return DATASET_TYPES[name](negative_labels, bias, feature_generation)
    return DATASET_TYPES[name](negative_labels, bias)
