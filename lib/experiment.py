"""
Copyright (c) 2025. All rights reserved.
"""

"""
Experiment management base class.

This module provides the Experiment class that owns what every experiment
shares: its configuration, the logging directory and the run name used to
group TensorBoard output. Concrete experiments implement ``run``.
"""

import datetime
import os
from abc import ABC, abstractmethod
from typing import Any, Optional

from lib.configs import ExperimentConfig


class Experiment(ABC):
    """
    Base experiment orchestrator.

    Sets up the logging directory and a unique run name from the
    configuration; subclasses drive the actual pipeline in ``run``.
    """

    def __init__(self, config: ExperimentConfig) -> None:
        """
        Initialize experiment with given configuration.

        Args:
            config (ExperimentConfig): Complete experiment configuration
        """
        self.config = config

        # Create logging directory for TensorBoard outputs
        self.logs_dir: Optional[str] = config.log_dir
        if self.logs_dir is not None:
            os.makedirs(self.logs_dir, exist_ok=True)

        # Generate unique run name if not provided
        if self.config.name is None:
            timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
            train_config = self.config.train_config
            self.config.name = (
                f"cv_{train_config.optimizer}_{train_config.lr_scheduler}_"
                f"{train_config.max_epochs}_{timestamp}"
            )

    def run_dir(self, *parts: str) -> Optional[str]:
        """
        TensorBoard directory for a sub-run, or None when TensorBoard is disabled.

        Example:
            experiment.run_dir("fold_A")  # logs/<run name>/fold_A
        """
        if self.logs_dir is None:
            return None
        return os.path.join(self.logs_dir, self.config.name, *parts)

    @abstractmethod
    def run(self) -> Any:
        pass
