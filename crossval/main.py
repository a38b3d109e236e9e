"""
Copyright (c) 2025. All rights reserved.
"""

"""
CLI for cross-validated training of the spectrogram CNN.

Reads one ``<fold>.npz`` file per fold from ``--data_dir``, runs the k-fold
train/test loop and writes the per-fold summary and confusion matrices as
CSV files to ``--output_dir``.
"""

import argparse
import logging
import math
import os
import sys
from typing import List, Optional, Tuple

import pandas as pd

from crossval.data import load_folds
from crossval.driver import CrossValidationExperiment
from crossval.errors import CrossValidationError
from crossval.options import parse_training_options
from crossval.results import CrossValidationResult
from lib.configs import ArchitectureConfig, ExperimentConfig, RandomnessConfig

logger = logging.getLogger(__name__)


def parse_filter_size(value: str) -> Tuple[int, int]:
    """Parse '3' or '3,5' into a (height, width) filter size.

    Args:
        value (str): One integer, or two comma-separated integers

    Returns:
        Tuple[int, int]: Filter height and width

    Raises:
        argparse.ArgumentTypeError: If the value is not one or two integers
    """
    try:
        sizes = [int(x.strip()) for x in value.split(",")]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid filter size '{value}'")
    if len(sizes) == 1:
        return sizes[0], sizes[0]
    if len(sizes) == 2:
        return sizes[0], sizes[1]
    raise argparse.ArgumentTypeError(f"filter size takes one or two integers, got '{value}'")


def parse_class_weights(value: str) -> List[float]:
    """Parse comma-separated class weights, e.g. '1.0,2.5,1.0'."""
    return [float(x.strip()) for x in value.split(",")]


def parse_patience(value: str) -> float:
    """Parse a positive patience or 'inf'."""
    number = float(value)
    return number if math.isinf(number) else int(number)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Train and test a spectrogram CNN with k-fold cross-validation"
    )
    # Data
    parser.add_argument(
        "--data_dir", type=str, required=True, help="Directory holding one <fold>.npz file per fold."
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        default=None,
        help="Directory for fold_summary.csv and confusion matrix CSVs. Nothing is written if omitted.",
    )
    # Training options
    parser.add_argument(
        "--valid_perc", type=float, default=0.2, help="Fraction of training samples held out. Default is 0.2."
    )
    parser.add_argument(
        "--init_learn_rate", type=float, default=1e-3, help="Initial learning rate. Default is 0.001."
    )
    parser.add_argument(
        "--learn_drop_factor",
        type=float,
        default=0.1,
        help="Learning-rate multiplier applied every drop period. Default is 0.1.",
    )
    parser.add_argument(
        "--learn_drop_period", type=int, default=10, help="Epochs between learning-rate drops. Default is 10."
    )
    parser.add_argument("--max_epochs", type=int, default=30, help="Epoch budget per fold. Default is 30.")
    parser.add_argument("--minibatch_size", type=int, default=128, help="Samples per iteration. Default is 128.")
    parser.add_argument(
        "--valid_patience",
        type=parse_patience,
        default=5,
        help="Non-improving validations before early stopping, or 'inf'. Default is 5.",
    )
    parser.add_argument(
        "--valid_frequency", type=int, default=50, help="Iterations between validations. Default is 50."
    )
    parser.add_argument(
        "--gradient_threshold", type=float, default=1.0, help="Gradient-norm clip threshold. Default is 1."
    )
    # Architecture
    parser.add_argument(
        "--filter_size",
        type=parse_filter_size,
        default=(3, 3),
        help="Convolution filter size as 'k' or 'h,w'. Default is 3.",
    )
    parser.add_argument("--num_filters", type=int, default=16, help="Number of convolution filters. Default is 16.")
    parser.add_argument(
        "--class_weights",
        type=parse_class_weights,
        default=None,
        help="Comma-separated per-class loss weights, one per class.",
    )
    # Randomness
    parser.add_argument("--seed", type=int, default=0, help="Random seed. Default is 0.")
    parser.add_argument(
        "--generator",
        type=str,
        default="twister",
        help="Random generator: twister, philox, pcg64 or sfc64. Default is twister.",
    )
    parser.add_argument(
        "--independent_folds",
        action="store_true",
        help="Draw each fold's validation split from its own random stream.",
    )
    # Logging
    parser.add_argument(
        "--run_name", type=str, default=None, help="Name for this run in TensorBoard logs."
    )
    parser.add_argument(
        "--log_dir", type=str, default="logs", help="TensorBoard base directory. Default is logs."
    )
    parser.add_argument(
        "--no_tensorboard", action="store_true", help="Disable TensorBoard output."
    )
    parser.add_argument(
        "--log_level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level. Default is INFO.",
    )
    return parser


def write_outputs(result: CrossValidationResult, output_dir: str) -> None:
    """Write the fold summary and every confusion matrix as CSV files.

    Args:
        result (CrossValidationResult): Aggregated cross-validation result
        output_dir (str): Target directory, created if missing
    """
    os.makedirs(output_dir, exist_ok=True)
    result.to_frame().to_csv(os.path.join(output_dir, "fold_summary.csv"))

    num_classes = result.confusion_mat.shape[0]
    class_labels = [str(i + 1) for i in range(num_classes)]
    matrices = [(name, fold.confusion_mat) for name, fold in result.items()]
    matrices.append(("total", result.confusion_mat))
    for name, confusion in matrices:
        frame = pd.DataFrame(confusion, index=class_labels, columns=class_labels)
        frame.index.name = "true_class"
        frame.to_csv(os.path.join(output_dir, f"confusion_{name}.csv"))
    logger.info(f"Wrote results for {len(result)} folds to {output_dir}")


def main(argv: Optional[List[str]] = None) -> int:
    args: argparse.Namespace = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        train_config = parse_training_options(
            [
                ("valid_perc", args.valid_perc),
                ("init_learn_rate", args.init_learn_rate),
                ("learn_drop_factor", args.learn_drop_factor),
                ("learn_drop_period", args.learn_drop_period),
                ("max_epochs", args.max_epochs),
                ("minibatch_size", args.minibatch_size),
                ("valid_patience", args.valid_patience),
                ("valid_frequency", args.valid_frequency),
                ("gradient_threshold", args.gradient_threshold),
            ]
        )
        config = ExperimentConfig(
            train_config=train_config,
            architecture=ArchitectureConfig(
                filter_size=args.filter_size,
                num_filters=args.num_filters,
                class_weights=args.class_weights,
            ),
            randomness=RandomnessConfig(
                seed=args.seed,
                generator=args.generator,
                independent_folds=args.independent_folds,
            ),
            name=args.run_name,
            log_dir=None if args.no_tensorboard else args.log_dir,
            log_level=args.log_level,
        )
        train_data, test_data = load_folds(args.data_dir)
        result = CrossValidationExperiment(config, train_data, test_data).run()
    except (CrossValidationError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1

    print(result.to_frame().to_string())
    if args.output_dir is not None:
        write_outputs(result, args.output_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
