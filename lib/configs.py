"""
Copyright (c) 2025. All rights reserved.
"""

"""
Configuration dataclasses for cross-validated CNN experiments.

This module provides structured configuration classes using Python dataclasses
to organize experiment parameters. Each config class groups related parameters
for one aspect of the pipeline: training loop, network geometry, randomness and
the experiment as a whole.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union


@dataclass
class TrainConfig:
    """
    Configuration for the supervised training loop.

    Groups the normalized training options of one cross-validation run. The
    required fields mirror the recognized training-option keys; the fields
    with defaults are fixed choices of the harness or optional keys.

    Attributes:
        valid_perc (float): Fraction of each fold's training samples held out for validation
        init_learn_rate (float): Initial learning rate of the piecewise schedule
        learn_drop_factor (float): Multiplicative factor applied at every drop
        max_epochs (int): Epoch budget per fold
        minibatch_size (int): Number of samples per optimizer step
        valid_patience (float): Consecutive non-improving validations before stopping (may be inf)
        valid_frequency (int): Validate every this many iterations
        learn_drop_period (int): Epochs between learning-rate drops
        gradient_threshold (float): Global gradient-norm clip threshold
        optimizer (str): Solver name ("adam")
        lr_scheduler (str): Learning-rate schedule ("piecewise")
        device (str): Compute device ("cpu")

    Example:
        train_config = TrainConfig(
            valid_perc=0.2,
            init_learn_rate=1e-3,
            learn_drop_factor=0.5,
            max_epochs=30,
            minibatch_size=16,
            valid_patience=5,
            valid_frequency=10,
        )
    """

    valid_perc: float  # Hold-out fraction
    init_learn_rate: float  # Initial learning rate
    learn_drop_factor: float  # Piecewise drop factor
    max_epochs: int  # Epoch budget
    minibatch_size: int  # Batch size
    valid_patience: float  # Early-stopping patience
    valid_frequency: int  # Iterations between validations
    learn_drop_period: int = 10  # Epochs between drops
    gradient_threshold: float = 1.0  # Gradient-norm clip
    optimizer: str = "adam"
    lr_scheduler: str = "piecewise"
    device: str = "cpu"


@dataclass
class ArchitectureConfig:
    """
    Geometry of the single convolutional stage.

    Attributes:
        filter_size (Union[int, Tuple[int, int]]): Kernel height/width (an int means square)
        num_filters (int): Number of convolution filters
        class_weights (Optional[List[float]]): Per-class weights of the classification loss,
                                              None for an unweighted loss
    """

    filter_size: Union[int, Tuple[int, int]]
    num_filters: int
    class_weights: Optional[List[float]] = None


@dataclass
class RandomnessConfig:
    """
    Randomness settings for validation splitting and training shuffles.

    Attributes:
        seed (int): Seed of every per-fold random stream
        generator (str): Bit-generator algorithm name ("twister", "philox", "pcg64", "sfc64")
        independent_folds (bool): Mix the fold index into the seed so folds get
                                  independent streams instead of identical ones
    """

    seed: int = 0
    generator: str = "twister"
    independent_folds: bool = False


@dataclass
class ExperimentConfig:
    """
    Complete experiment configuration combining all parameter groups.

    Attributes:
        name (Optional[str]): Run name; generated from a timestamp when None
        train_config (TrainConfig): Training loop configuration
        architecture (ArchitectureConfig): Network geometry
        randomness (RandomnessConfig): Randomness configuration
        log_dir (Optional[str]): TensorBoard base directory, None disables TensorBoard output
        log_level (str): Level name for the standard logging module
    """

    train_config: TrainConfig
    architecture: ArchitectureConfig
    randomness: RandomnessConfig = field(default_factory=RandomnessConfig)
    name: Optional[str] = None
    log_dir: Optional[str] = "logs"
    log_level: str = "INFO"
