"""
Copyright (c) 2025. All rights reserved.
"""

"""
Cross-validation driver.

This module provides the CrossValidationExperiment class that runs the
complete k-fold pipeline:

    INIT -> PARTITION_FOLDS -> (TRAIN_FOLD -> EVALUATE_FOLD) per fold -> AGGREGATE -> DONE

INIT validates the datasets, derives the class space and input shape from the
first fold and builds the architecture once. PARTITION_FOLDS draws every
fold's validation mask before any training. Folds are then trained and
evaluated one at a time in fold order, and AGGREGATE sums the fold confusion
matrices. Any error is fatal and names the failing fold; no partial result
is returned.
"""

import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from crossval.architecture import Architecture, build_architecture
from crossval.backend import ModelBackend, TorchBackend
from crossval.data import Dataset, assemble_batch, validate_datasets
from crossval.errors import CrossValidationError, DelegatedTrainingFailure
from crossval.evaluate import evaluate_fold
from crossval.options import TrainingOptions, parse_training_options
from crossval.results import CrossValidationResult, FoldResult
from crossval.splitter import compute_validation_masks
from lib.configs import ArchitectureConfig, ExperimentConfig, RandomnessConfig
from lib.experiment import Experiment
from lib.logger import Logger
from lib.utils import plot_confusion_matrix

logger = logging.getLogger(__name__)


class State(Enum):
    """Stages of a cross-validation run."""

    INIT = "init"
    PARTITION_FOLDS = "partition_folds"
    TRAIN_FOLD = "train_fold"
    EVALUATE_FOLD = "evaluate_fold"
    AGGREGATE = "aggregate"
    DONE = "done"


class CrossValidationExperiment(Experiment):
    """
    K-fold training and evaluation orchestrator.

    Attributes:
        train_data (Dataset): Training samples per fold
        test_data (Dataset): Test samples per fold
        backend (ModelBackend): Learning library used to build, fit and predict
        state (State): Current stage of the run
        fold_order (List[str]): Fold names in processing order
        input_shape (Tuple[int, int, int]): Declared sample shape
        num_classes (int): Size of the class space
        architecture (Architecture): Stage sequence shared by all folds
        validation_masks (Dict[str, np.ndarray]): Hold-out mask per fold
        result (Optional[CrossValidationResult]): Result being filled by the run
    """

    def __init__(
        self,
        config: ExperimentConfig,
        train_data: Dataset,
        test_data: Dataset,
        backend: Optional[ModelBackend] = None,
    ) -> None:
        """
        Set up the run without touching the data.

        Args:
            config (ExperimentConfig): Training, architecture and randomness configuration
            train_data (Dataset): Training samples per fold, in fold order
            test_data (Dataset): Test samples per fold, same fold names and order
            backend (Optional[ModelBackend]): Backend to use, defaults to TorchBackend
        """
        super().__init__(config)
        self.train_data = train_data
        self.test_data = test_data
        self.backend = backend or TorchBackend(
            seed=config.randomness.seed, log_dir=self.run_dir()
        )

        self.state = State.INIT
        self.fold_order: List[str] = []
        self.input_shape: Optional[Tuple[int, int, int]] = None
        self.num_classes: Optional[int] = None
        self.architecture: Optional[Architecture] = None
        self.model_spec: Any = None
        self.validation_masks: Dict[str, np.ndarray] = {}
        self.result: Optional[CrossValidationResult] = None

    def initialize(self) -> None:
        """
        INIT: validate the datasets and build the architecture once.

        Raises:
            ConfigurationError, ShapeError, LabelSpaceError: On invalid datasets or geometry
            DelegatedTrainingFailure: If the backend cannot build the model
        """
        self.fold_order, self.input_shape, self.num_classes = validate_datasets(
            self.train_data, self.test_data
        )
        self.architecture = build_architecture(
            self.input_shape, self.num_classes, self.config.architecture
        )
        try:
            self.model_spec = self.backend.build(self.architecture)
        except CrossValidationError:
            raise
        except Exception as e:
            raise DelegatedTrainingFailure(f"building the model failed: {e}") from e

        logger.info(
            f"{len(self.fold_order)} folds, input shape {self.input_shape}, "
            f"{self.num_classes} classes"
        )
        self.result = CrossValidationResult(self.fold_order)

    def partition_folds(self) -> None:
        """PARTITION_FOLDS: draw every fold's validation mask, in fold order."""
        self.state = State.PARTITION_FOLDS
        fold_sizes = {name: len(self.train_data[name]) for name in self.fold_order}
        self.validation_masks = compute_validation_masks(
            fold_sizes, self.config.train_config.valid_perc, self.config.randomness
        )

    def train_fold(self, name: str) -> Tuple[Any, float]:
        """
        TRAIN_FOLD: assemble a fold's training batch, split it and fit a model.

        Returns:
            Tuple[Any, float]: (trained-model handle, fit wall-clock seconds)
        """
        self.state = State.TRAIN_FOLD
        x_train_all, y_train_all = assemble_batch(
            self.train_data[name].samples, self.input_shape
        )
        mask = self.validation_masks[name]
        x_train, y_train = x_train_all[~mask], y_train_all[~mask]
        x_valid, y_valid = x_train_all[mask], y_train_all[mask]

        start = time.perf_counter()
        try:
            model = self.backend.fit(
                self.model_spec,
                x_train,
                y_train,
                x_valid,
                y_valid,
                self.config.train_config,
                run_name=name,
            )
        except CrossValidationError:
            raise
        except Exception as e:
            raise DelegatedTrainingFailure(f"training failed: {e}") from e
        return model, time.perf_counter() - start

    def evaluate_fold(self, name: str, model: Any) -> Tuple[np.ndarray, float]:
        """
        EVALUATE_FOLD: predict the fold's test batch and tabulate it.

        Returns:
            Tuple[np.ndarray, float]: (confusion matrix, predict wall-clock seconds)
        """
        self.state = State.EVALUATE_FOLD
        x_test, y_test = assemble_batch(self.test_data[name].samples, self.input_shape)
        return evaluate_fold(self.backend, model, x_test, y_test, self.num_classes)

    def run(self) -> CrossValidationResult:
        """
        Execute the complete cross-validation.

        Returns:
            CrossValidationResult: Fold results in fold order plus the aggregate matrix

        Raises:
            CrossValidationError: Any failure; fold-level failures name the fold
            RuntimeError: If the experiment was already run
        """
        if self.state is not State.INIT:
            raise RuntimeError(f"experiment already ran (state: {self.state.value})")

        self.initialize()
        self.partition_folds()

        for index, name in enumerate(self.fold_order):
            logger.info(f"CNN training fold {index + 1}/{len(self.fold_order)}: '{name}'")
            try:
                model, training_time = self.train_fold(name)
                confusion, testing_time = self.evaluate_fold(name, model)
            except CrossValidationError as e:
                raise e.with_fold(name)

            fold_result = FoldResult(
                training_time=training_time,
                testing_time=testing_time,
                model=model,
                confusion_mat=confusion,
                validation_mask=self.validation_masks[name],
                history=getattr(model, "history", None),
            )
            self.result.add(name, fold_result)
            logger.info(
                f"Fold '{name}': training {training_time:.2f}s, testing {testing_time:.3f}s, "
                f"accuracy {fold_result.accuracy:.4f}"
            )
            self._log_fold(index, name, fold_result)

        self.state = State.AGGREGATE
        total = self.result.aggregate()
        logger.info(
            f"Cross-validation accuracy {self.result.accuracy:.4f} over {int(total.sum())} test samples"
        )
        if self.logs_dir is not None:
            plot_confusion_matrix(total, self.run_dir(), "summary", tag="confusion/total")

        self.state = State.DONE
        return self.result

    def _log_fold(self, index: int, name: str, fold_result: FoldResult) -> None:
        if self.logs_dir is None:
            return
        with Logger(self.run_dir(), "summary") as tb_logger:
            tb_logger.log_scalars(
                {
                    "fold/training_time": fold_result.training_time,
                    "fold/testing_time": fold_result.testing_time,
                    "fold/accuracy": fold_result.accuracy,
                },
                step=index,
            )
        plot_confusion_matrix(
            fold_result.confusion_mat, self.run_dir(), "summary", tag=f"confusion/{name}"
        )


def run_cross_validation(
    train_data: Dataset,
    test_data: Dataset,
    arch_config: ArchitectureConfig,
    training_options: TrainingOptions,
    randomness: RandomnessConfig,
    backend: Optional[ModelBackend] = None,
    log_dir: Optional[str] = None,
    name: Optional[str] = None,
) -> CrossValidationResult:
    """
    Train and test the classifier on every fold.

    Training options are parsed first, so a missing or invalid option fails
    before any fold is touched.

    Args:
        train_data (Dataset): Training samples per fold
        test_data (Dataset): Test samples per fold
        arch_config (ArchitectureConfig): Convolution geometry
        training_options (TrainingOptions): Ordered (key, value) training options
        randomness (RandomnessConfig): Seed and generator for validation splits
        backend (Optional[ModelBackend]): Backend to use, defaults to TorchBackend
        log_dir (Optional[str]): TensorBoard base directory, None disables TensorBoard output
        name (Optional[str]): Run name

    Returns:
        CrossValidationResult: Fold results plus the aggregate confusion matrix

    Example:
        result = run_cross_validation(
            train_data, test_data,
            ArchitectureConfig(filter_size=3, num_filters=8),
            [("valid_perc", 0.2), ("init_learn_rate", 1e-3), ("learn_drop_factor", 0.5),
             ("max_epochs", 10), ("minibatch_size", 8), ("valid_patience", 5),
             ("valid_frequency", 5)],
            RandomnessConfig(seed=42, generator="twister"),
        )
        result.confusion_mat
    """
    config = ExperimentConfig(
        train_config=parse_training_options(training_options),
        architecture=arch_config,
        randomness=randomness,
        name=name,
        log_dir=log_dir,
    )
    experiment = CrossValidationExperiment(config, train_data, test_data, backend)
    return experiment.run()
