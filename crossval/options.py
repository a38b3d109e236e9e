"""
Copyright (c) 2025. All rights reserved.
"""

"""
Training-option parsing.

Training options arrive as an ordered list of ``(key, value)`` pairs (or a
mapping). Recognized keys are collected, later duplicates overriding earlier
ones; unrecognized keys are ignored. The result is a validated
``TrainConfig``, so a missing or malformed option surfaces before any fold
is processed.
"""

import logging
import math
from numbers import Real
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

from crossval.errors import ConfigurationError
from lib.configs import TrainConfig

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "valid_perc",
    "init_learn_rate",
    "learn_drop_factor",
    "max_epochs",
    "minibatch_size",
    "valid_patience",
    "valid_frequency",
)
OPTIONAL_KEYS = ("learn_drop_period", "gradient_threshold")

TrainingOptions = Union[Iterable[Tuple[str, Any]], Mapping[str, Any]]


def _as_real(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ConfigurationError(f"training option '{key}' must be a number, got {value!r}")
    return float(value)


def _as_positive_int(key: str, value: Any) -> int:
    number = _as_real(key, value)
    if not number.is_integer() or number < 1:
        raise ConfigurationError(f"training option '{key}' must be a positive integer, got {value!r}")
    return int(number)


def _as_patience(value: Any) -> float:
    number = _as_real("valid_patience", value)
    if math.isinf(number) and number > 0:
        return math.inf
    return _as_positive_int("valid_patience", value)


def parse_training_options(options: TrainingOptions) -> TrainConfig:
    """
    Normalize raw training options into a TrainConfig.

    Args:
        options (TrainingOptions): Ordered ``(key, value)`` pairs or a mapping

    Returns:
        TrainConfig: Validated training configuration

    Raises:
        ConfigurationError: If a required key is missing or a value is out of range

    Example:
        config = parse_training_options([
            ("valid_perc", 0.2), ("init_learn_rate", 1e-3), ("learn_drop_factor", 0.5),
            ("max_epochs", 20), ("minibatch_size", 8), ("valid_patience", 5),
            ("valid_frequency", 10),
        ])
    """
    pairs = options.items() if isinstance(options, Mapping) else options

    values: Dict[str, Any] = {}
    for key, value in pairs:
        if key in REQUIRED_KEYS or key in OPTIONAL_KEYS:
            values[key] = value
        else:
            logger.debug(f"Ignoring unrecognized training option '{key}'")

    missing = [key for key in REQUIRED_KEYS if key not in values]
    if missing:
        raise ConfigurationError(f"missing required training options: {', '.join(missing)}")

    valid_perc = _as_real("valid_perc", values["valid_perc"])
    if not 0.0 <= valid_perc <= 1.0:
        raise ConfigurationError(f"training option 'valid_perc' must lie in [0, 1], got {valid_perc}")

    init_learn_rate = _as_real("init_learn_rate", values["init_learn_rate"])
    if init_learn_rate <= 0.0:
        raise ConfigurationError(
            f"training option 'init_learn_rate' must be positive, got {init_learn_rate}"
        )

    learn_drop_factor = _as_real("learn_drop_factor", values["learn_drop_factor"])
    if not 0.0 <= learn_drop_factor <= 1.0:
        raise ConfigurationError(
            f"training option 'learn_drop_factor' must lie in [0, 1], got {learn_drop_factor}"
        )

    optional: Dict[str, Any] = {}
    if "learn_drop_period" in values:
        optional["learn_drop_period"] = _as_positive_int(
            "learn_drop_period", values["learn_drop_period"]
        )
    if "gradient_threshold" in values:
        gradient_threshold = _as_real("gradient_threshold", values["gradient_threshold"])
        if gradient_threshold <= 0.0:
            raise ConfigurationError(
                f"training option 'gradient_threshold' must be positive, got {gradient_threshold}"
            )
        optional["gradient_threshold"] = gradient_threshold

    return TrainConfig(
        valid_perc=valid_perc,
        init_learn_rate=init_learn_rate,
        learn_drop_factor=learn_drop_factor,
        max_epochs=_as_positive_int("max_epochs", values["max_epochs"]),
        minibatch_size=_as_positive_int("minibatch_size", values["minibatch_size"]),
        valid_patience=_as_patience(values["valid_patience"]),
        valid_frequency=_as_positive_int("valid_frequency", values["valid_frequency"]),
        **optional,
    )
