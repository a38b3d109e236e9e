"""
Copyright (c) 2025. All rights reserved.
"""

"""
Model backend interface and its PyTorch implementation.

The cross-validation driver only talks to a backend through three
operations: build a model specification from an architecture, fit it on one
fold's training/validation data, and predict labels for a test batch. The
trained model is an opaque handle owned by the fold result.
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import torch

from crossval.architecture import Architecture, ClassificationStage
from crossval.cnn import SpectrogramCNN, to_channels_first
from lib.configs import TrainConfig
from lib.loss_functions import get_loss_function
from lib.train import (
    TrainContext,
    TrainHistory,
    get_lr_scheduler,
    get_optimizer,
    predict_classes,
    train_classifier,
)
from lib.utils import make_torch_generator, scoped_torch_seed

logger = logging.getLogger(__name__)


class ModelBackend(ABC):
    """
    Build / fit / predict interface of a learning library.

    Labels crossing this interface are the harness labels 1..num_classes;
    inputs are channels-last batches [batch_size, height, width, channels].
    """

    @abstractmethod
    def build(self, architecture: Architecture) -> Any:
        """Untrained model specification for the architecture."""

    @abstractmethod
    def fit(
        self,
        model_spec: Any,
        x_train: np.ndarray,
        y_train: np.ndarray,
        x_valid: np.ndarray,
        y_valid: np.ndarray,
        train_config: TrainConfig,
        run_name: Optional[str] = None,
    ) -> Any:
        """Train a fresh copy of ``model_spec``; returns the trained-model handle."""

    @abstractmethod
    def predict(self, model: Any, x_test: np.ndarray) -> np.ndarray:
        """Predicted labels (1..num_classes) for every test sample."""


@dataclass
class TrainedModel:
    """
    Trained-model handle of the PyTorch backend.

    Attributes:
        module (SpectrogramCNN): Trained network in evaluation mode
        history (TrainHistory): Losses and early-stopping record of the fit
    """

    module: SpectrogramCNN
    history: TrainHistory


class TorchBackend(ModelBackend):
    """
    PyTorch implementation of the model backend.

    Weight initialization and per-epoch shuffles are seeded from ``seed``
    through scoped or explicit generators, leaving torch's global random
    state untouched.
    """

    def __init__(
        self, seed: int = 0, log_dir: Optional[str] = None, prediction_batch_size: int = 128
    ) -> None:
        """
        Args:
            seed (int): Seed for weight initialization and training shuffles
            log_dir (Optional[str]): TensorBoard directory for training curves, None disables them
            prediction_batch_size (int): Batch size used by ``predict``
        """
        self.seed = seed
        self.log_dir = log_dir
        self.prediction_batch_size = prediction_batch_size

    def build(self, architecture: Architecture) -> SpectrogramCNN:
        with scoped_torch_seed(self.seed):
            return SpectrogramCNN(architecture)

    def fit(
        self,
        model_spec: SpectrogramCNN,
        x_train: np.ndarray,
        y_train: np.ndarray,
        x_valid: np.ndarray,
        y_valid: np.ndarray,
        train_config: TrainConfig,
        run_name: Optional[str] = None,
    ) -> TrainedModel:
        """
        Train a copy of the model specification on one fold.

        Uses the configured solver with a piecewise learning-rate schedule,
        gradient-norm clipping, per-epoch reshuffling, periodic validation and
        early stopping (see ``lib.train.train_classifier``).

        Returns:
            TrainedModel: Trained network and its training history
        """
        device = torch.device(train_config.device)
        model = copy.deepcopy(model_spec).to(device)

        train_inputs = to_channels_first(x_train).to(device)
        train_targets = torch.from_numpy(np.asarray(y_train, dtype=np.int64) - 1).to(device)
        val_inputs = to_channels_first(x_valid).to(device)
        val_targets = torch.from_numpy(np.asarray(y_valid, dtype=np.int64) - 1).to(device)

        if model.zero_center:
            model.set_mean_image(train_inputs)

        classification = model.architecture.stage(ClassificationStage)
        optimizer = get_optimizer(
            optimizer_type=train_config.optimizer,
            lr=train_config.init_learn_rate,
            model=model,
        )
        train_context = TrainContext(
            epochs=train_config.max_epochs,
            minibatch_size=train_config.minibatch_size,
            optimizer=optimizer,
            lr_scheduler=get_lr_scheduler(
                lr_scheduler_type=train_config.lr_scheduler,
                optimizer=optimizer,
                drop_period=train_config.learn_drop_period,
                drop_factor=train_config.learn_drop_factor,
            ),
            loss_criterion=get_loss_function(
                classification.loss, classification.class_weights
            ).to(device),
            gradient_threshold=train_config.gradient_threshold,
            valid_frequency=train_config.valid_frequency,
            valid_patience=train_config.valid_patience,
            shuffle_generator=make_torch_generator(self.seed),
            tensorboard_log_dir=self.log_dir,
            run_name=run_name,
        )

        logger.debug(
            f"Fitting on {train_inputs.size(0)} samples, validating on {val_inputs.size(0)}"
        )
        history = train_classifier(
            model, train_context, train_inputs, train_targets, val_inputs, val_targets
        )
        return TrainedModel(module=model, history=history)

    def predict(self, model: TrainedModel, x_test: np.ndarray) -> np.ndarray:
        device = next(model.module.parameters()).device
        inputs = to_channels_first(x_test).to(device)
        predictions = predict_classes(model.module, inputs, self.prediction_batch_size)
        return predictions.cpu().numpy().astype(np.int64) + 1
