"""
Copyright (c) 2025. All rights reserved.
"""

"""
Per-fold and cross-validation results.

A CrossValidationResult is created empty with the fold order, receives one
FoldResult per fold in that order, and is finalized exactly once by summing
the fold confusion matrices.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from crossval.evaluate import accuracy_from_confusion, per_class_recall


@dataclass
class FoldResult:
    """
    Outcome of training and testing one fold.

    Attributes:
        training_time (float): Wall-clock seconds spent in the backend's fit
        testing_time (float): Wall-clock seconds spent in the backend's predict
        model (Any): Trained-model handle, owned by this result
        confusion_mat (np.ndarray): int64 matrix [num_classes, num_classes], rows = true class
        validation_mask (Optional[np.ndarray]): Hold-out mask used for the fold's training samples
        history (Optional[Any]): Training history reported by the backend, if any
    """

    training_time: float
    testing_time: float
    model: Any
    confusion_mat: np.ndarray
    validation_mask: Optional[np.ndarray] = None
    history: Optional[Any] = None

    @property
    def num_test_samples(self) -> int:
        return int(self.confusion_mat.sum())

    @property
    def accuracy(self) -> float:
        return accuracy_from_confusion(self.confusion_mat)


class CrossValidationResult:
    """
    Fold results in fold order plus the aggregate confusion matrix.

    Example:
        result = CrossValidationResult(["A", "B"])
        result.add("A", fold_a)
        result.add("B", fold_b)
        result.aggregate()
        result["A"].confusion_mat + result["B"].confusion_mat  # == result.confusion_mat
    """

    def __init__(self, fold_order: Sequence[str]) -> None:
        self.fold_order: List[str] = list(fold_order)
        self.folds: Dict[str, FoldResult] = {}
        self.confusion_mat: Optional[np.ndarray] = None

    def add(self, name: str, result: FoldResult) -> None:
        """Record the next fold's result; folds must arrive in fold order."""
        if self.finalized:
            raise RuntimeError("cannot add fold results after aggregation")
        if len(self.folds) == len(self.fold_order):
            raise RuntimeError(f"unexpected fold '{name}', all folds already have results")
        expected = self.fold_order[len(self.folds)]
        if name != expected:
            raise RuntimeError(f"expected a result for fold '{expected}', got '{name}'")
        self.folds[name] = result

    def aggregate(self) -> np.ndarray:
        """
        Sum the fold confusion matrices element-wise and finalize the result.

        Raises:
            RuntimeError: If a fold has no result yet or the result is already finalized
        """
        if self.finalized:
            raise RuntimeError("cross-validation result is already aggregated")
        missing = [name for name in self.fold_order if name not in self.folds]
        if missing:
            raise RuntimeError(f"folds {missing} have no result yet")

        total = np.zeros_like(self.folds[self.fold_order[0]].confusion_mat)
        for name in self.fold_order:
            total = total + self.folds[name].confusion_mat
        self.confusion_mat = total
        return total

    @property
    def finalized(self) -> bool:
        return self.confusion_mat is not None

    def __getitem__(self, name: str) -> FoldResult:
        return self.folds[name]

    def __contains__(self, name: object) -> bool:
        return name in self.folds

    def __iter__(self) -> Iterator[str]:
        return iter(self.fold_order)

    def __len__(self) -> int:
        return len(self.fold_order)

    def items(self) -> Iterator[Tuple[str, FoldResult]]:
        for name in self.fold_order:
            if name in self.folds:
                yield name, self.folds[name]

    @property
    def accuracy(self) -> float:
        """Accuracy of the aggregate matrix."""
        if not self.finalized:
            raise RuntimeError("cross-validation result is not aggregated yet")
        return accuracy_from_confusion(self.confusion_mat)

    def class_recall(self) -> np.ndarray:
        """Recall of every class over all folds."""
        if not self.finalized:
            raise RuntimeError("cross-validation result is not aggregated yet")
        return per_class_recall(self.confusion_mat)

    def to_frame(self) -> pd.DataFrame:
        """
        Summary table with one row per fold and a final ``total`` row.

        Returns:
            pd.DataFrame: Columns training_time, testing_time, num_test_samples, accuracy
        """
        rows = [
            {
                "fold": name,
                "training_time": fold.training_time,
                "testing_time": fold.testing_time,
                "num_test_samples": fold.num_test_samples,
                "accuracy": fold.accuracy,
            }
            for name, fold in self.items()
        ]
        if self.finalized:
            rows.append(
                {
                    "fold": "total",
                    "training_time": sum(row["training_time"] for row in rows),
                    "testing_time": sum(row["testing_time"] for row in rows),
                    "num_test_samples": int(self.confusion_mat.sum()),
                    "accuracy": self.accuracy,
                }
            )
        return pd.DataFrame(rows).set_index("fold")
