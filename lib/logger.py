"""
Copyright (c) 2025. All rights reserved.
"""

"""
TensorBoard output for cross-validation runs.

The Logger class wraps a SummaryWriter rooted at ``<log_dir>/<run_name>``.
Each fold trains under its own run name, so TensorBoard shows one curve
per fold; fold summaries and confusion-matrix figures go to a shared
``summary`` run. Scalars are mirrored to the standard ``logging`` module
at DEBUG level.
"""

import logging
import os
from typing import Dict, Optional, Union

from matplotlib.figure import Figure
from torch.utils.tensorboard import SummaryWriter

logger = logging.getLogger(__name__)


class Logger:
    """
    SummaryWriter wrapper for one TensorBoard run.

    Usable as a context manager, which closes the writer on exit.

    Example:
        with Logger("logs/cv_run", "fold_A") as tb_logger:
            tb_logger.log_scalars({"val_loss": 0.4}, step=10)
    """

    def __init__(self, log_dir: str, run_name: Optional[str] = None):
        """
        Open a writer for the run.

        Args:
            log_dir (str): Base directory of the experiment's TensorBoard output
            run_name (str, optional): Sub-directory of this run, e.g. a fold name
        """
        self.log_dir = os.path.join(log_dir, run_name) if run_name else log_dir
        self.writer = SummaryWriter(self.log_dir)

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def log_scalars(self, scalar_dict: Dict[str, Union[int, float]], step: int = 0) -> None:
        """
        Write every metric of ``scalar_dict`` at the given step.

        Args:
            scalar_dict (dict): Metric tag to value
            step (int): Iteration or fold index on the TensorBoard x-axis
        """
        for tag, value in scalar_dict.items():
            self.writer.add_scalar(tag, value, step)

        logger.debug(
            f"[{os.path.basename(self.log_dir)}] step {step}: "
            + ", ".join(f"{tag}={value:.4g}" for tag, value in scalar_dict.items())
        )

    def log_figure(self, tag: str, fig: Figure, step: int = 0) -> None:
        """Attach a rendered matplotlib figure; the writer closes the figure."""
        self.writer.add_figure(tag, fig, step)

    def close(self) -> None:
        self.writer.flush()
        self.writer.close()
