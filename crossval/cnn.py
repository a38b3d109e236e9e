"""
Copyright (c) 2025. All rights reserved.
"""

"""
Convolutional Neural Network realizing the fixed classifier architecture.

The network zero-centers its input with the training mean image, normalizes
it with batch normalization, applies one shape-preserving convolution and a
nonlinearity, and projects the flattened feature maps onto the class logits.
The softmax stage is applied by ``predict_proba``; training losses consume
the logits directly.
"""

import numpy as np
import torch

from crossval.architecture import (
    Architecture,
    ConvolutionStage,
    InputStage,
    NonlinearityStage,
)
from lib.activations import get_activation_layer


def to_channels_first(inputs: np.ndarray) -> torch.Tensor:
    """
    Convert a channels-last batch into a float32 channels-first tensor.

    Args:
        inputs (np.ndarray): Batch [batch_size, height, width, channels]

    Returns:
        torch.Tensor: Tensor [batch_size, channels, height, width]
    """
    return torch.from_numpy(np.ascontiguousarray(inputs, dtype=np.float32)).permute(0, 3, 1, 2).contiguous()


class SpectrogramCNN(torch.nn.Module):
    """
    Single-convolution classifier for multichannel spectrogram tiles.

    Architecture:
        - Zero-center: subtract the training mean image (when enabled)
        - BatchNorm2d(channels)
        - Conv2d(channels -> num_filters, filter_size, padding="same")
        - Nonlinearity (ReLU)
        - Flatten + Linear(num_filters * height * width -> num_classes)

    Input Shape: [batch_size, channels, height, width]
    Output Shape: [batch_size, num_classes] (class logits)

    Attributes:
        mean_image (torch.Tensor): Buffer [channels, height, width] subtracted from inputs
        batch_norm (nn.BatchNorm2d): Normalization stage
        conv (nn.Conv2d): Convolution stage
        activation (nn.Module): Nonlinearity stage
        flatten (nn.Flatten): Flattens feature maps for the fully connected stage
        fc (nn.Linear): Fully connected stage producing the logits
    """

    def __init__(self, architecture: Architecture) -> None:
        """
        Initialize the network from an architecture description.

        Args:
            architecture (Architecture): Stage sequence to realize

        Example:
            model = SpectrogramCNN(build_architecture((64, 32, 4), 3, arch_config))
        """
        super().__init__()
        self.architecture = architecture

        input_stage = architecture.stage(InputStage)
        height, width, channels = input_stage.shape
        self.zero_center = input_stage.normalization == "zerocenter"
        self.register_buffer("mean_image", torch.zeros(channels, height, width))

        conv_stage = architecture.stage(ConvolutionStage)
        self.batch_norm = torch.nn.BatchNorm2d(channels)
        self.conv = torch.nn.Conv2d(
            channels,
            conv_stage.num_filters,
            kernel_size=conv_stage.filter_size,
            stride=1,
            padding=conv_stage.padding,
        )
        self.activation = get_activation_layer(architecture.stage(NonlinearityStage).activation)

        # Classifier: padding="same" keeps height x width
        self.flatten = torch.nn.Flatten()
        self.fc = torch.nn.Linear(conv_stage.num_filters * height * width, architecture.num_classes)

    def set_mean_image(self, inputs: torch.Tensor) -> None:
        """Store the mean image of a channels-first training batch."""
        if inputs.size(0) > 0:
            self.mean_image.copy_(inputs.mean(dim=0))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Forward pass through the network.

        Args:
            x (torch.Tensor): Input tensor [batch_size, channels, height, width]

        Returns:
            torch.Tensor: Class logits [batch_size, num_classes]
        """
        if self.zero_center:
            x = x - self.mean_image
        x = self.batch_norm(x)  # [batch, C, H, W]
        x = self.activation(self.conv(x))  # [batch, F, H, W]
        x = self.flatten(x)  # [batch, F*H*W]
        return self.fc(x)  # [batch, num_classes]

    def predict_proba(self, x: torch.Tensor) -> torch.Tensor:
        """Softmax stage: class probabilities [batch_size, num_classes]."""
        return torch.softmax(self.forward(x), dim=1)
