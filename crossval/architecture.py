"""
Copyright (c) 2025. All rights reserved.
"""

"""
Fixed-topology architecture description.

The classifier is always the same ordered stage sequence:

    input -> batch normalization -> convolution -> nonlinearity
          -> fully connected -> softmax -> classification loss

Only the input shape, the number of classes and the convolution geometry
vary. The description is plain data; backends turn it into a trainable model.
"""

from dataclasses import dataclass
from numbers import Integral
from typing import Optional, Tuple, Type, TypeVar, Union

from crossval.errors import ConfigurationError
from lib.configs import ArchitectureConfig


@dataclass(frozen=True)
class InputStage:
    """Declared sample shape (height, width, channels) and input normalization."""

    shape: Tuple[int, int, int]
    normalization: str = "zerocenter"
    name: str = "input"


@dataclass(frozen=True)
class BatchNormStage:
    name: str = "batchnorm"


@dataclass(frozen=True)
class ConvolutionStage:
    """Single 2-D convolution, stride 1, with shape-preserving padding."""

    filter_size: Tuple[int, int]
    num_filters: int
    padding: str = "same"
    name: str = "conv"


@dataclass(frozen=True)
class NonlinearityStage:
    activation: str = "relu"
    name: str = "relu"


@dataclass(frozen=True)
class FullyConnectedStage:
    num_outputs: int
    name: str = "fc"


@dataclass(frozen=True)
class SoftmaxStage:
    name: str = "softmax"


@dataclass(frozen=True)
class ClassificationStage:
    """Cross-entropy loss over mutually exclusive classes, optionally class-weighted."""

    loss: str = "crossentropy"
    class_weights: Optional[Tuple[float, ...]] = None
    name: str = "classification"


Stage = Union[
    InputStage,
    BatchNormStage,
    ConvolutionStage,
    NonlinearityStage,
    FullyConnectedStage,
    SoftmaxStage,
    ClassificationStage,
]
StageT = TypeVar("StageT")

STAGE_ORDER = (
    InputStage,
    BatchNormStage,
    ConvolutionStage,
    NonlinearityStage,
    FullyConnectedStage,
    SoftmaxStage,
    ClassificationStage,
)


@dataclass(frozen=True)
class Architecture:
    """Ordered, immutable stage sequence of the classifier."""

    stages: Tuple[Stage, ...]

    def __post_init__(self) -> None:
        if tuple(type(stage) for stage in self.stages) != STAGE_ORDER:
            raise ConfigurationError(
                "architecture stages must be "
                + " -> ".join(stage_type.__name__ for stage_type in STAGE_ORDER)
            )

    def stage(self, stage_type: Type[StageT]) -> StageT:
        """The stage of the given type."""
        return self.stages[STAGE_ORDER.index(stage_type)]

    @property
    def input_shape(self) -> Tuple[int, int, int]:
        return self.stage(InputStage).shape

    @property
    def num_classes(self) -> int:
        return self.stage(FullyConnectedStage).num_outputs


def _filter_size(filter_size: Union[int, Tuple[int, int]]) -> Tuple[int, int]:
    if isinstance(filter_size, Integral):
        filter_size = (filter_size, filter_size)
    filter_size = tuple(int(size) for size in filter_size)
    if len(filter_size) != 2 or min(filter_size) < 1:
        raise ConfigurationError(f"filter size must be one or two positive integers, got {filter_size}")
    return filter_size


def build_architecture(
    input_shape: Tuple[int, int, int], num_classes: int, arch_config: ArchitectureConfig
) -> Architecture:
    """
    Build the classifier's stage sequence.

    Args:
        input_shape (Tuple[int, int, int]): Sample shape (height, width, channels)
        num_classes (int): Number of output classes
        arch_config (ArchitectureConfig): Convolution geometry and loss weights

    Returns:
        Architecture: The ordered stage sequence

    Raises:
        ConfigurationError: On a non-positive geometry or mismatched class weights

    Example:
        architecture = build_architecture((64, 32, 4), 3, ArchitectureConfig(filter_size=3, num_filters=8))
        architecture.num_classes  # 3
    """
    if num_classes < 1:
        raise ConfigurationError(f"number of classes must be positive, got {num_classes}")
    if arch_config.num_filters < 1:
        raise ConfigurationError(f"number of filters must be positive, got {arch_config.num_filters}")

    class_weights = None
    loss = "crossentropy"
    if arch_config.class_weights is not None:
        class_weights = tuple(float(weight) for weight in arch_config.class_weights)
        if len(class_weights) != num_classes:
            raise ConfigurationError(
                f"{len(class_weights)} class weights given for {num_classes} classes"
            )
        loss = "weighted_crossentropy"

    return Architecture(
        stages=(
            InputStage(shape=tuple(input_shape)),
            BatchNormStage(),
            ConvolutionStage(
                filter_size=_filter_size(arch_config.filter_size),
                num_filters=int(arch_config.num_filters),
            ),
            NonlinearityStage(),
            FullyConnectedStage(num_outputs=num_classes),
            SoftmaxStage(),
            ClassificationStage(loss=loss, class_weights=class_weights),
        )
    )
