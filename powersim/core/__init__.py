"""
Core infrastructure for powersim.

This module provides shared abstractions and utilities used by the
regression and simulation submodules.

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute.timing: Section timer used by backends
"""

from powersim.core.result import Result
from powersim.core.exceptions import (
    PowerSimError,
    ValidationError,
    DimensionError,
    InvalidDesign,
    InvalidConfiguration,
    NumericalError,
    SingularMatrixError,
    FitFailure,
    ConvergenceError,
    SimulationCancelled,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "PowerSimError",
    "ValidationError",
    "DimensionError",
    "InvalidDesign",
    "InvalidConfiguration",
    "NumericalError",
    "SingularMatrixError",
    "FitFailure",
    "ConvergenceError",
    "SimulationCancelled",
]
