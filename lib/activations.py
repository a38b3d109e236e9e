"""
Copyright (c) 2025. All rights reserved.
"""

"""
Nonlinearity-stage factory.

Architecture descriptions name their nonlinearity with a plain string so
they stay free of torch; the network asks this module for the matching
module when it is built.
"""

from typing import Callable, Dict

import torch

ACTIVATIONS: Dict[str, Callable[[], torch.nn.Module]] = {
    "relu": torch.nn.ReLU,
    "leakyrelu": lambda: torch.nn.LeakyReLU(negative_slope=0.01),
    "elu": torch.nn.ELU,
    "tanh": torch.nn.Tanh,
}


def get_activation_layer(custom_act: str) -> torch.nn.Module:
    """Instantiate the nonlinearity named ``custom_act``.

    Args:
        custom_act (str): One of 'relu', 'leakyrelu' (slope 0.01), 'elu', 'tanh'

    Returns:
        torch.nn.Module: Fresh activation module

    Raises:
        ValueError: For an unknown name
    """
    try:
        return ACTIVATIONS[custom_act]()
    except KeyError:
        raise ValueError(
            f"Unsupported activation layer: {custom_act}. "
            f"Supported activations: {', '.join(ACTIVATIONS)}"
        ) from None
