"""Linear classifiers for sparse feature data."""

from .classify import LinearClassifier
from .data import (
    BinaryDataset,
    BinaryInstance,
    Candidate,
    Dataset,
    Instance,
    MulticlassDataset,
    RankingDataset,
    SelectionDataset,
    create_dataset,
)
from .evaluation import cross_validate, holdout_evaluation, split_groups
from .lbfgs import LBFGSStatus, minimize
from .maxent import MaxEntConfig, MaxEntTrainer
from .model import read_model, write_model
from .online import OnlineTrainer
from .quark import NOT_FOUND, Quark
from .reader import read_dataset, read_stream
from .training import create_trainer

__all__ = [
    "BinaryDataset",
    "BinaryInstance",
    "Candidate",
    "create_dataset",
    "create_trainer",
    "cross_validate",
    "Dataset",
    "holdout_evaluation",
    "Instance",
    "LBFGSStatus",
    "LinearClassifier",
    "MaxEntConfig",
    "MaxEntTrainer",
    "minimize",
    "MulticlassDataset",
    "NOT_FOUND",
    "OnlineTrainer",
    "Quark",
    "RankingDataset",
    "read_dataset",
    "read_model",
    "read_stream",
    "SelectionDataset",
    "split_groups",
    "write_model",
]
