"""
Copyright (c) 2025. All rights reserved.
"""

"""
Hold-out validation splitting with explicit per-fold random streams.

Each fold's training samples are divided once into a training subset and a
held-out validation subset. The random stream used for a fold is built from
the randomness configuration right before its mask is drawn, so a mask
depends only on (seed, generator, number of samples, hold-out fraction) and
never on the draws made for earlier folds.
"""

import logging
import math
from typing import Dict, List, Mapping, Type

import numpy as np

from crossval.errors import ConfigurationError
from lib.configs import RandomnessConfig

logger = logging.getLogger(__name__)

BIT_GENERATORS: Dict[str, Type[np.random.BitGenerator]] = {
    "twister": np.random.MT19937,
    "mt19937": np.random.MT19937,
    "philox": np.random.Philox,
    "pcg64": np.random.PCG64,
    "default": np.random.PCG64,
    "sfc64": np.random.SFC64,
}


def make_random_stream(randomness: RandomnessConfig, fold_index: int = 0) -> np.random.Generator:
    """
    Build the random stream of one fold.

    With ``independent_folds`` off every fold receives a stream seeded with
    the same seed, reproducing a reseed before each fold. With it on the fold
    index is appended to the seed entropy, giving every fold its own stream.

    Args:
        randomness (RandomnessConfig): Seed and generator name
        fold_index (int): Position of the fold in the fold order

    Returns:
        np.random.Generator: Fresh generator for the fold

    Raises:
        ConfigurationError: If the generator name or seed is invalid
    """
    bit_generator_cls = BIT_GENERATORS.get(randomness.generator.lower())
    if bit_generator_cls is None:
        raise ConfigurationError(
            f"unknown random generator '{randomness.generator}', "
            f"supported: {', '.join(sorted(BIT_GENERATORS))}"
        )
    if randomness.seed < 0:
        raise ConfigurationError(f"random seed must be non-negative, got {randomness.seed}")

    if randomness.independent_folds:
        seed_sequence = np.random.SeedSequence([randomness.seed, fold_index])
    else:
        seed_sequence = np.random.SeedSequence(randomness.seed)
    return np.random.Generator(bit_generator_cls(seed_sequence))


def holdout_size(num_samples: int, valid_perc: float) -> int:
    """Number of held-out samples: valid_perc * num_samples rounded half up."""
    return min(num_samples, int(math.floor(valid_perc * num_samples + 0.5)))


def holdout_mask(num_samples: int, valid_perc: float, rng: np.random.Generator) -> np.ndarray:
    """
    Random, non-stratified hold-out membership mask.

    Args:
        num_samples (int): Number of training samples in the fold
        valid_perc (float): Fraction to hold out, in [0, 1]
        rng (np.random.Generator): The fold's random stream

    Returns:
        np.ndarray: Boolean mask [num_samples], True for held-out (validation) samples

    Example:
        mask = holdout_mask(10, 0.2, make_random_stream(RandomnessConfig(seed=1)))
        x_valid, x_train = inputs[mask], inputs[~mask]
    """
    mask = np.zeros(num_samples, dtype=bool)
    num_held_out = holdout_size(num_samples, valid_perc)
    if num_held_out > 0:
        mask[rng.permutation(num_samples)[:num_held_out]] = True
    return mask


def compute_validation_masks(
    fold_sizes: Mapping[str, int], valid_perc: float, randomness: RandomnessConfig
) -> Dict[str, np.ndarray]:
    """
    Validation masks of every fold, computed in fold order.

    Args:
        fold_sizes (Mapping[str, int]): Number of training samples per fold, in fold order
        valid_perc (float): Hold-out fraction
        randomness (RandomnessConfig): Seed and generator settings

    Returns:
        Dict[str, np.ndarray]: Hold-out mask per fold name
    """
    masks: Dict[str, np.ndarray] = {}
    for fold_index, (name, num_samples) in enumerate(fold_sizes.items()):
        rng = make_random_stream(randomness, fold_index)
        masks[name] = holdout_mask(num_samples, valid_perc, rng)
        num_held_out = int(masks[name].sum())
        if num_held_out in (0, num_samples):
            logger.warning(
                f"Fold '{name}' holds out {num_held_out} of {num_samples} samples, "
                f"validation-based early stopping is ineffective"
            )

    if not randomness.independent_folds:
        repeated = _folds_sharing_masks(fold_sizes)
        if repeated:
            logger.warning(
                f"Folds {repeated} have equal sample counts and share the seed, "
                f"so they hold out the same sample positions; "
                f"set independent_folds to draw separate streams"
            )
    return masks


def _folds_sharing_masks(fold_sizes: Mapping[str, int]) -> List[str]:
    by_size: Dict[int, List[str]] = {}
    for name, num_samples in fold_sizes.items():
        by_size.setdefault(num_samples, []).append(name)
    return [name for names in by_size.values() if len(names) > 1 for name in names]
