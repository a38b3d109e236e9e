"""
Copyright (c) 2025. All rights reserved.
"""

"""
Fold data model and sample batch assembly.

A dataset maps fold names to the ordered samples of that fold; the train and
test datasets of one run share their fold names and order. This module
stacks a fold's samples into input batches and label vectors, validates the
datasets up front (fold names, sample shapes, label space), and loads folds
stored as ``.npz`` files.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from crossval.errors import ConfigurationError, LabelSpaceError, ShapeError

logger = logging.getLogger(__name__)


def sample_shape(array: np.ndarray) -> Tuple[int, int, int]:
    """Shape of a sample as (height, width, channels); 2-D arrays are single channel."""
    if array.ndim == 2:
        return (array.shape[0], array.shape[1], 1)
    if array.ndim == 3:
        return tuple(array.shape)
    raise ShapeError(f"samples must be 2-D or 3-D arrays, got shape {array.shape}")


@dataclass(frozen=True)
class Sample:
    """
    One multichannel 2-D array with its class label.

    The array is stored as a read-only ``height x width x channels`` copy.

    Attributes:
        data (np.ndarray): Sample array [height, width, channels]
        label (int): Class label in 1..num_classes
    """

    data: np.ndarray
    label: int

    def __post_init__(self) -> None:
        array = np.array(self.data, dtype=np.float32)
        array = array.reshape(sample_shape(array))
        array.setflags(write=False)
        object.__setattr__(self, "data", array)
        label = float(self.label)
        if not label.is_integer():
            raise LabelSpaceError(f"labels must be integers, got {self.label!r}")
        object.__setattr__(self, "label", int(label))

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.data.shape


@dataclass
class FoldData:
    """Ordered samples of one side (train or test) of a fold."""

    samples: List[Sample] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def labels(self) -> np.ndarray:
        return np.array([sample.label for sample in self.samples], dtype=np.int64)

    @classmethod
    def from_arrays(cls, arrays: Sequence[np.ndarray], labels: Sequence[int]) -> "FoldData":
        """
        Build a fold from parallel sequences of arrays and labels.

        Args:
            arrays (Sequence[np.ndarray]): Sample arrays, or one stacked array [N, H, W(, C)]
            labels (Sequence[int]): Class labels, same length as arrays

        Raises:
            ShapeError: If arrays and labels differ in length
        """
        if len(arrays) != len(labels):
            raise ShapeError(f"{len(arrays)} arrays but {len(labels)} labels")
        return cls([Sample(array, label) for array, label in zip(arrays, labels)])


Dataset = Dict[str, FoldData]


def assemble_batch(
    samples: Sequence[Sample], expected_shape: Optional[Tuple[int, ...]] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stack a fold's samples into an input batch and a parallel label vector.

    Args:
        samples (Sequence[Sample]): Ordered samples of one fold side
        expected_shape (Optional[Tuple[int, ...]]): Declared input shape
                                                   (height, width, channels)

    Returns:
        Tuple[np.ndarray, np.ndarray]:
            - inputs: float32 batch [num_samples, height, width, channels]
            - labels: int64 labels [num_samples], in sample order

    Raises:
        ShapeError: If sample shapes differ from each other or from expected_shape

    Example:
        inputs, labels = assemble_batch(train_data["A"].samples, (32, 32, 3))
    """
    if expected_shape is None:
        if not samples:
            raise ShapeError("cannot infer the input shape of an empty sample collection")
        expected_shape = samples[0].shape
    expected_shape = tuple(expected_shape)

    for index, sample in enumerate(samples):
        if sample.shape != expected_shape:
            raise ShapeError(
                f"sample {index} has shape {sample.shape}, expected {expected_shape}"
            )

    if not samples:
        return (
            np.empty((0,) + expected_shape, dtype=np.float32),
            np.empty(0, dtype=np.int64),
        )

    inputs = np.stack([sample.data for sample in samples], axis=0)
    labels = np.array([sample.label for sample in samples], dtype=np.int64)
    return inputs, labels


def fold_names(train_data: Dataset, test_data: Dataset) -> List[str]:
    """
    Fold order shared by the train and test datasets.

    Raises:
        ConfigurationError: If the datasets are empty or their fold names or order differ
    """
    train_names = list(train_data.keys())
    test_names = list(test_data.keys())
    if not train_names:
        raise ConfigurationError("the train dataset contains no folds")
    if train_names != test_names:
        raise ConfigurationError(
            f"train folds {train_names} and test folds {test_names} do not match"
        )
    return train_names


def derive_num_classes(train_fold: FoldData, test_fold: FoldData) -> int:
    """
    Number of classes from one fold's combined train and test labels.

    Labels are 1..num_classes, so the count is the largest label observed.

    Raises:
        ConfigurationError: If the fold holds no samples at all
        LabelSpaceError: If the largest label is below 1
    """
    labels = np.concatenate([train_fold.labels, test_fold.labels])
    if labels.size == 0:
        raise ConfigurationError("cannot derive the class space from a fold without samples")
    num_classes = int(labels.max())
    if num_classes < 1:
        raise LabelSpaceError(f"labels must be positive integers, largest label is {num_classes}")
    return num_classes


def validate_datasets(
    train_data: Dataset, test_data: Dataset
) -> Tuple[List[str], Tuple[int, int, int], int]:
    """
    Check every fold before any training happens.

    The input shape is taken from the first training sample of the first fold
    and the class count from the first fold's labels; every sample of every
    fold must then match that shape and carry a label in 1..num_classes.

    Args:
        train_data (Dataset): Training samples per fold
        test_data (Dataset): Test samples per fold

    Returns:
        Tuple of (fold names in order, input shape, num_classes)

    Raises:
        ConfigurationError: On mismatched fold names or an empty first fold
        ShapeError: On a sample whose shape differs from the input shape
        LabelSpaceError: On a label outside 1..num_classes
    """
    names = fold_names(train_data, test_data)
    first = names[0]
    if len(train_data[first]) == 0:
        raise ConfigurationError("the first fold has no training samples", fold=first)

    input_shape = train_data[first].samples[0].shape
    try:
        num_classes = derive_num_classes(train_data[first], test_data[first])
    except (ConfigurationError, LabelSpaceError) as e:
        raise e.with_fold(first)

    for name in names:
        for side, fold in (("train", train_data[name]), ("test", test_data[name])):
            for index, sample in enumerate(fold.samples):
                if sample.shape != input_shape:
                    raise ShapeError(
                        f"{side} sample {index} has shape {sample.shape}, expected {input_shape}",
                        fold=name,
                    )
                if not 1 <= sample.label <= num_classes:
                    raise LabelSpaceError(
                        f"{side} sample {index} has label {sample.label}, "
                        f"outside the class space 1..{num_classes}",
                        fold=name,
                    )

    logger.debug(
        f"Validated {len(names)} folds, input shape {input_shape}, {num_classes} classes"
    )
    return names, input_shape, num_classes


def load_folds(data_dir: Union[str, Path]) -> Tuple[Dataset, Dataset]:
    """
    Load train and test datasets from a directory of ``<fold>.npz`` files.

    Each file holds ``train_data``, ``train_labels``, ``test_data`` and
    ``test_labels``; data arrays are stacked along the leading axis. Folds
    are ordered by file name.

    Args:
        data_dir (Union[str, Path]): Directory containing the fold files

    Returns:
        Tuple[Dataset, Dataset]: (train dataset, test dataset)

    Raises:
        FileNotFoundError: If the directory does not exist
        ConfigurationError: If no fold files are found or a file lacks an array
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise FileNotFoundError(f"Data directory not found at: {data_dir}")

    fold_files = sorted(data_dir.glob("*.npz"))
    if not fold_files:
        raise ConfigurationError(f"no .npz fold files found in {data_dir}")

    train_data: Dataset = {}
    test_data: Dataset = {}
    for fold_file in fold_files:
        with np.load(fold_file) as arrays:
            try:
                train_data[fold_file.stem] = FoldData.from_arrays(
                    arrays["train_data"], arrays["train_labels"]
                )
                test_data[fold_file.stem] = FoldData.from_arrays(
                    arrays["test_data"], arrays["test_labels"]
                )
            except KeyError as e:
                raise ConfigurationError(
                    f"{fold_file.name} is missing array {e}", fold=fold_file.stem
                ) from e
        logger.info(
            f"Loaded fold '{fold_file.stem}': {len(train_data[fold_file.stem])} train, "
            f"{len(test_data[fold_file.stem])} test samples"
        )
    return train_data, test_data
