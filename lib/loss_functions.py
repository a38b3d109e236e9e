"""
Loss function utilities for the classification-loss stage.
"""

from typing import Optional, Sequence

import torch


def get_loss_function(
    custom_loss: str, class_weights: Optional[Sequence[float]] = None
) -> torch.nn.Module:
    """Factory function for classification loss functions.

    The network emits unnormalized logits; both losses apply the softmax
    internally, so the softmax stage is only materialized at prediction time.

    Args:
        custom_loss (str): Loss identifier:
                          - 'crossentropy': Cross-entropy over mutually exclusive classes
                          - 'weighted_crossentropy': Cross-entropy with per-class weights
        class_weights (Optional[Sequence[float]]): One weight per class, required
                                                   for 'weighted_crossentropy'

    Returns:
        torch.nn.Module: Loss module taking (logits, zero-based targets)

    Raises:
        ValueError: If custom_loss is unsupported or weights are missing
    """
    if custom_loss == "crossentropy":
        return torch.nn.CrossEntropyLoss()
    elif custom_loss == "weighted_crossentropy":
        if class_weights is None:
            raise ValueError("weighted_crossentropy requires class_weights")
        return torch.nn.CrossEntropyLoss(
            weight=torch.as_tensor(class_weights, dtype=torch.float32)
        )
    else:
        raise ValueError(
            f"Unsupported loss function: {custom_loss}. "
            f"Supported losses: crossentropy, weighted_crossentropy"
        )
