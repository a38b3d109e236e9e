"""
Copyright (c) 2025. All rights reserved.
"""

"""
Fold evaluation: timed inference and confusion-matrix accounting.
"""

import time
from typing import Any, Tuple

import numpy as np
from sklearn.metrics import confusion_matrix

from crossval.backend import ModelBackend
from crossval.errors import (
    CrossValidationError,
    DelegatedTrainingFailure,
    LabelSpaceError,
    ShapeError,
)


def _check_label_space(labels: np.ndarray, num_classes: int, what: str) -> None:
    outside = labels[(labels < 1) | (labels > num_classes)]
    if outside.size:
        raise LabelSpaceError(
            f"{what} labels {sorted(set(outside.tolist()))} lie outside the class space 1..{num_classes}"
        )


def compute_confusion_matrix(
    y_true: np.ndarray, y_pred: np.ndarray, num_classes: int
) -> np.ndarray:
    """
    Cross-tabulate true against predicted labels.

    Entry (i, j) counts samples of true class i+1 predicted as class j+1; the
    class order 1..num_classes is the same for every fold, so matrices of
    different folds can be summed.

    Args:
        y_true (np.ndarray): True labels [num_samples]
        y_pred (np.ndarray): Predicted labels [num_samples]
        num_classes (int): Side length of the matrix

    Returns:
        np.ndarray: int64 matrix [num_classes, num_classes]

    Raises:
        ShapeError: If the label vectors differ in length
        LabelSpaceError: If any label lies outside 1..num_classes
    """
    y_true = np.asarray(y_true, dtype=np.int64).ravel()
    y_pred = np.asarray(y_pred, dtype=np.int64).ravel()
    if y_true.shape != y_pred.shape:
        raise ShapeError(f"{y_true.size} true labels but {y_pred.size} predictions")
    _check_label_space(y_true, num_classes, "true")
    _check_label_space(y_pred, num_classes, "predicted")

    if y_true.size == 0:
        return np.zeros((num_classes, num_classes), dtype=np.int64)
    labels = np.arange(1, num_classes + 1)
    return confusion_matrix(y_true, y_pred, labels=labels).astype(np.int64)


def evaluate_fold(
    backend: ModelBackend,
    model: Any,
    x_test: np.ndarray,
    y_test: np.ndarray,
    num_classes: int,
) -> Tuple[np.ndarray, float]:
    """
    Predict a fold's test batch and tabulate the result.

    Only the ``predict`` call is timed. Errors raised by the backend are
    reported as DelegatedTrainingFailure.

    Args:
        backend (ModelBackend): Backend that trained the model
        model (Any): Trained-model handle
        x_test (np.ndarray): Test inputs [num_samples, height, width, channels]
        y_test (np.ndarray): True test labels [num_samples]
        num_classes (int): Number of classes

    Returns:
        Tuple[np.ndarray, float]: (confusion matrix, inference wall-clock seconds)
    """
    start = time.perf_counter()
    try:
        y_pred = backend.predict(model, x_test)
    except CrossValidationError:
        raise
    except Exception as e:
        raise DelegatedTrainingFailure(f"prediction failed: {e}") from e
    testing_time = time.perf_counter() - start
    return compute_confusion_matrix(y_test, y_pred, num_classes), testing_time


def accuracy_from_confusion(confusion: np.ndarray) -> float:
    """Fraction of correctly classified samples; NaN for an empty matrix."""
    total = confusion.sum()
    if total == 0:
        return float("nan")
    return float(np.trace(confusion) / total)


def per_class_recall(confusion: np.ndarray) -> np.ndarray:
    """Recall of every true class (row); NaN for classes without samples."""
    support = confusion.sum(axis=1).astype(np.float64)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.diag(confusion) / support
