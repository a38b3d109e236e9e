"""
Utility functions: confusion-matrix plotting and scoped seeding.
"""

import contextlib
from typing import Iterator, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import torch
from matplotlib.figure import Figure

from lib.logger import Logger


def make_confusion_figure(
    confusion: np.ndarray, class_names: Optional[Sequence[str]] = None, title: str = ""
) -> Figure:
    """Render a confusion matrix as an annotated heat map.

    Rows are true classes and columns predicted classes, matching the layout
    of the matrix itself.

    Args:
        confusion (np.ndarray): Square count matrix [num_classes, num_classes]
        class_names (Optional[Sequence[str]]): Tick labels, defaults to 1..num_classes
        title (str): Figure title

    Returns:
        Figure: Matplotlib figure; the caller closes it
    """
    num_classes = confusion.shape[0]
    if class_names is None:
        class_names = [str(i + 1) for i in range(num_classes)]

    fig, ax = plt.subplots(figsize=(1.0 + 0.6 * num_classes, 1.0 + 0.6 * num_classes))
    ax.imshow(confusion, cmap="Blues")
    ax.set_xticks(range(num_classes))
    ax.set_yticks(range(num_classes))
    ax.set_xticklabels(class_names)
    ax.set_yticklabels(class_names)
    ax.set_xlabel("predicted class")
    ax.set_ylabel("true class")
    ax.set_title(title)

    threshold = confusion.max() / 2.0 if confusion.size else 0.0
    for i in range(num_classes):
        for j in range(num_classes):
            ax.text(
                j,
                i,
                str(int(confusion[i, j])),
                ha="center",
                va="center",
                color="white" if confusion[i, j] > threshold else "black",
            )
    fig.tight_layout()
    return fig


def plot_confusion_matrix(
    confusion: np.ndarray,
    tensorboard_log_dir: str,
    run_name: str,
    tag: str = "confusion_matrix",
    step: int = 0,
) -> None:
    """Plot a confusion matrix and log the figure to TensorBoard.

    Args:
        confusion (np.ndarray): Square count matrix
        tensorboard_log_dir (str): Directory for TensorBoard logs
        run_name (str): Name for this visualization run
        tag (str): TensorBoard tag of the figure
        step (int): Global step number for TensorBoard timeline
    """
    fig = make_confusion_figure(confusion, title=tag)
    with Logger(log_dir=tensorboard_log_dir, run_name=run_name) as tb_logger:
        tb_logger.log_figure("plots/" + tag, fig, step)
    plt.close(fig)


@contextlib.contextmanager
def scoped_torch_seed(random_seed: int) -> Iterator[None]:
    """Seed torch's global RNG inside the block and restore it afterwards.

    Weight initialization draws from torch's global generator; wrapping model
    construction in this context makes it reproducible without leaking the
    seed into the caller's random state.

    Example:
        with scoped_torch_seed(7):
            model = torch.nn.Linear(4, 2)  # same weights every time
    """
    with torch.random.fork_rng(devices=[]):
        torch.manual_seed(random_seed)
        yield


def make_torch_generator(random_seed: int) -> torch.Generator:
    """Create an explicit CPU generator seeded with ``random_seed``."""
    generator = torch.Generator()
    generator.manual_seed(random_seed)
    return generator
