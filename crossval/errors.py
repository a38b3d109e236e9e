"""
Copyright (c) 2025. All rights reserved.
"""

"""
Error taxonomy of the cross-validation harness.

Every error is fatal to a run. Errors raised while a fold is being processed
carry the fold name so the failing fold and the failure kind can be read
from the message alone.
"""

from typing import Optional


class CrossValidationError(Exception):
    """Base class for all harness errors."""

    kind = "CrossValidationError"

    def __init__(self, message: str, fold: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.fold = fold

    def with_fold(self, fold: str) -> "CrossValidationError":
        """Attach the failing fold name unless one is already set."""
        if self.fold is None:
            self.fold = fold
        return self

    def __str__(self) -> str:
        if self.fold is None:
            return f"[{self.kind}] {self.message}"
        return f"[{self.kind}] fold '{self.fold}': {self.message}"


class ConfigurationError(CrossValidationError):
    """Missing or invalid training option, or train/test fold names that disagree."""

    kind = "ConfigurationError"


class ShapeError(CrossValidationError):
    """Sample arrays with inconsistent shapes, or a shape the architecture does not expect."""

    kind = "ShapeError"


class LabelSpaceError(CrossValidationError):
    """A true or predicted label outside ``[1, num_classes]``."""

    kind = "LabelSpaceError"


class DelegatedTrainingFailure(CrossValidationError):
    """The model backend raised while building, fitting or predicting."""

    kind = "DelegatedTrainingFailure"
