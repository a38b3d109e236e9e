"""
Copyright (c) 2025. All rights reserved.
"""

"""
Training utilities for classification models.

This module provides the minibatch training loop with gradient clipping,
periodic validation and early stopping, together with the optimizer and
learning-rate scheduler factories used to set it up. Batched inference
helpers live here as well so training and prediction share one batching
convention.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import torch

from lib.logger import Logger

logger = logging.getLogger(__name__)


@dataclass
class TrainContext:
    """
    Configuration container for training parameters.

    Holds all the components and settings needed to train a classifier,
    including optimizer, scheduler, loss, batching and early-stopping
    settings, and TensorBoard logging configuration.

    Attributes:
        epochs (int): Maximum number of training epochs
        minibatch_size (int): Number of samples per optimizer step
        optimizer (torch.optim.Optimizer): PyTorch optimizer instance
        lr_scheduler (torch.optim.lr_scheduler.LRScheduler): Per-epoch learning rate scheduler
        loss_criterion (torch.nn.Module): Loss function taking (logits, targets)
        gradient_threshold (float): Global L2 norm used for gradient clipping
        valid_frequency (int): Validate every this many iterations
        valid_patience (float): Consecutive non-improving validations tolerated (inf disables)
        shuffle_generator (Optional[torch.Generator]): Source of the per-epoch shuffles
        tensorboard_log_dir (Optional[str]): Directory for TensorBoard logs, None disables them
        run_name (Optional[str]): Name for this training run (default: None)
    """

    epochs: int  # Maximum number of epochs
    minibatch_size: int  # Samples per step
    optimizer: torch.optim.Optimizer  # PyTorch optimizer instance
    lr_scheduler: torch.optim.lr_scheduler.LRScheduler  # Learning rate scheduler
    loss_criterion: torch.nn.Module  # Loss function
    gradient_threshold: float = 1.0  # Gradient-norm clip
    valid_frequency: int = 50  # Iterations between validations
    valid_patience: float = math.inf  # Early-stopping patience
    shuffle_generator: Optional[torch.Generator] = None  # Shuffle RNG
    tensorboard_log_dir: Optional[str] = None  # Directory for TensorBoard logs
    run_name: Optional[str] = None  # Name for this training run


@dataclass
class TrainHistory:
    """
    Record of one training run.

    Attributes:
        iterations (int): Optimizer steps taken
        epochs_run (int): Epochs started
        train_losses (List[float]): Minibatch loss of every iteration
        val_losses (List[Tuple[int, float]]): (iteration, validation loss) of every validation
        best_val_loss (float): Smallest validation loss seen
        stopped_early (bool): True when validation patience ran out
    """

    iterations: int = 0
    epochs_run: int = 0
    train_losses: List[float] = field(default_factory=list)
    val_losses: List[Tuple[int, float]] = field(default_factory=list)
    best_val_loss: float = math.inf
    stopped_early: bool = False


class EarlyStopping:
    """Counts consecutive validations that fail to improve on the best loss."""

    def __init__(self, patience: float) -> None:
        self.patience = patience
        self.best_loss = math.inf
        self.num_bad_validations = 0

    def step(self, val_loss: float) -> bool:
        """Record a validation loss; returns True once patience is exhausted."""
        if val_loss < self.best_loss:
            self.best_loss = val_loss
            self.num_bad_validations = 0
        else:
            self.num_bad_validations += 1
        return self.num_bad_validations >= self.patience


def iterate_minibatches(
    num_samples: int, minibatch_size: int, generator: Optional[torch.Generator] = None
) -> List[torch.Tensor]:
    """
    Shuffle sample indices and cut them into full minibatches.

    Samples that do not fill a final complete minibatch are left out of the
    epoch. When fewer samples than one minibatch exist, all of them form a
    single batch.

    Args:
        num_samples (int): Number of training samples
        minibatch_size (int): Requested batch size
        generator (Optional[torch.Generator]): RNG used for the permutation

    Returns:
        List[torch.Tensor]: Index tensors, one per minibatch
    """
    if num_samples == 0:
        return []
    permutation = torch.randperm(num_samples, generator=generator)
    if num_samples < minibatch_size:
        return [permutation]
    num_batches = num_samples // minibatch_size
    return [
        permutation[i * minibatch_size : (i + 1) * minibatch_size] for i in range(num_batches)
    ]


def compute_loss(
    model: torch.nn.Module,
    loss_criterion: torch.nn.Module,
    inputs: torch.Tensor,
    targets: torch.Tensor,
    batch_size: int,
) -> float:
    """
    Mean loss of a model over a dataset, evaluated in batches without gradients.

    Args:
        model (torch.nn.Module): Model to evaluate
        loss_criterion (torch.nn.Module): Loss function
        inputs (torch.Tensor): Input batch [num_samples, ...]
        targets (torch.Tensor): Target class indices [num_samples]
        batch_size (int): Evaluation batch size

    Returns:
        float: Sample-weighted mean loss
    """
    model.eval()
    total = 0.0
    with torch.no_grad():
        for start in range(0, inputs.size(0), batch_size):
            batch_inputs = inputs[start : start + batch_size]
            batch_targets = targets[start : start + batch_size]
            loss = loss_criterion(model(batch_inputs), batch_targets)
            total += loss.item() * batch_inputs.size(0)
    return total / inputs.size(0)


def train_classifier(
    model: torch.nn.Module,
    train_context: TrainContext,
    train_inputs: torch.Tensor,
    train_targets: torch.Tensor,
    val_inputs: Optional[torch.Tensor] = None,
    val_targets: Optional[torch.Tensor] = None,
) -> TrainHistory:
    """
    Train a classifier with minibatches, gradient clipping and early stopping.

    Every epoch reshuffles the training samples. After each optimizer step
    the gradients are clipped to ``gradient_threshold``; every
    ``valid_frequency`` iterations the validation loss is computed and fed to
    the early-stopping counter. The learning-rate scheduler advances once per
    epoch. An empty validation set trains for the full epoch budget.

    Args:
        model (torch.nn.Module): PyTorch model to train
        train_context (TrainContext): Configuration object with training parameters
        train_inputs (torch.Tensor): Training inputs [num_samples, ...]
        train_targets (torch.Tensor): Zero-based training class indices [num_samples]
        val_inputs (Optional[torch.Tensor]): Validation inputs
        val_targets (Optional[torch.Tensor]): Zero-based validation class indices

    Returns:
        TrainHistory: Losses and stopping information of the run
    """
    tb_logger = None
    if train_context.tensorboard_log_dir is not None:
        tb_logger = Logger(train_context.tensorboard_log_dir, train_context.run_name)

    has_validation = val_inputs is not None and val_inputs.size(0) > 0
    early_stopping = EarlyStopping(train_context.valid_patience)
    history = TrainHistory()

    for epoch in range(train_context.epochs):
        history.epochs_run = epoch + 1
        model.train()
        for batch_indices in iterate_minibatches(
            train_inputs.size(0), train_context.minibatch_size, train_context.shuffle_generator
        ):
            # forward pass
            predictions = model(train_inputs[batch_indices])
            loss = train_context.loss_criterion(predictions, train_targets[batch_indices])

            # backward pass
            train_context.optimizer.zero_grad()
            loss.backward()
            torch.nn.utils.clip_grad_norm_(model.parameters(), train_context.gradient_threshold)
            train_context.optimizer.step()

            history.iterations += 1
            history.train_losses.append(loss.item())

            # Validation phase
            if has_validation and history.iterations % train_context.valid_frequency == 0:
                val_loss = compute_loss(
                    model,
                    train_context.loss_criterion,
                    val_inputs,
                    val_targets,
                    train_context.minibatch_size,
                )
                model.train()
                history.val_losses.append((history.iterations, val_loss))
                history.best_val_loss = min(history.best_val_loss, val_loss)

                current_lr = train_context.optimizer.param_groups[0]["lr"]
                if tb_logger is not None:
                    tb_logger.log_scalars(
                        {
                            "train_loss": loss.item(),
                            "val_loss": val_loss,
                            "learning_rate": current_lr,
                        },
                        step=history.iterations,
                    )
                logger.info(
                    f"Epoch {epoch+1}/{train_context.epochs}, Iteration {history.iterations}, "
                    f"Train Loss: {loss.item():.4f}, Val Loss: {val_loss:.4f}, LR: {current_lr:.6f}"
                )

                if early_stopping.step(val_loss):
                    history.stopped_early = True
                    break

        if history.stopped_early:
            logger.info(
                f"Validation loss did not improve for {early_stopping.num_bad_validations} "
                f"validations, stopping at iteration {history.iterations}"
            )
            break

        # Step the learning rate scheduler once the optimizer has stepped
        if history.iterations > 0:
            train_context.lr_scheduler.step()

    if tb_logger is not None:
        tb_logger.close()

    model.eval()
    return history


def predict_classes(model: torch.nn.Module, inputs: torch.Tensor, batch_size: int) -> torch.Tensor:
    """
    Predict zero-based class indices in batches.

    Args:
        model (torch.nn.Module): Trained classifier emitting logits
        inputs (torch.Tensor): Inputs [num_samples, ...]
        batch_size (int): Inference batch size

    Returns:
        torch.Tensor: Predicted class indices [num_samples]
    """
    model.eval()
    predictions: List[torch.Tensor] = []
    with torch.no_grad():
        for start in range(0, inputs.size(0), batch_size):
            logits = model(inputs[start : start + batch_size])
            predictions.append(logits.argmax(dim=1))
    if not predictions:
        return torch.empty(0, dtype=torch.long)
    return torch.cat(predictions)


def get_optimizer(optimizer_type: str, lr: float, model: torch.nn.Module) -> torch.optim.Optimizer:
    """
    Factory function to create PyTorch optimizers.

    Args:
        optimizer_type (str): Type of optimizer ('adam')
        lr (float): Learning rate
        model (torch.nn.Module): Model whose parameters to optimize

    Returns:
        torch.optim.Optimizer: Configured optimizer instance

    Raises:
        ValueError: If optimizer_type is not supported
    """
    if optimizer_type == "adam":
        return torch.optim.Adam(model.parameters(), lr=lr, betas=(0.9, 0.999), eps=1e-8)
    else:
        raise ValueError(f"Unsupported Optimizer Type: {optimizer_type}")


def get_lr_scheduler(
    lr_scheduler_type: str,
    optimizer: torch.optim.Optimizer,
    drop_period: int,
    drop_factor: float,
) -> torch.optim.lr_scheduler.LRScheduler:
    """
    Factory function to create per-epoch learning rate schedulers.

    Args:
        lr_scheduler_type (str): Type of scheduler ('piecewise')
        optimizer (torch.optim.Optimizer): Optimizer to schedule
        drop_period (int): Epochs between drops
        drop_factor (float): Multiplicative drop factor

    Returns:
        torch.optim.lr_scheduler.LRScheduler: Configured scheduler instance

    Raises:
        ValueError: If lr_scheduler_type is not supported
    """
    if lr_scheduler_type == "piecewise":
        return torch.optim.lr_scheduler.StepLR(optimizer, step_size=drop_period, gamma=drop_factor)
    else:
        raise ValueError(f"Unsupported Learning Rate Scheduler Type: {lr_scheduler_type}")
