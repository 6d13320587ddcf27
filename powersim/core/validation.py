"""
Input validation utilities for powersim.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
    - The caller chooses the exception class, so the same check can
      signal InvalidDesign for a design and InvalidConfiguration for
      aggregation settings
"""

import numbers
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from powersim.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 numpy array.

    Rejects inputs that result in object dtype (mixed types) or any
    non-numeric dtype.

    Raises:
        ValidationError: If input cannot be converted to numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    return result.astype(np.float64)


def check_finite(
    array: NDArray[np.floating[Any]],
    name: str,
    error: type[ValidationError] = ValidationError,
) -> None:
    """Verify array contains no NaN or Inf values."""
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise error(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_ndim(array: NDArray[np.floating[Any]], ndim: int, name: str) -> None:
    """
    Verify array has exactly the specified number of dimensions.

    Raises:
        DimensionError: If array has wrong number of dimensions
    """
    if array.ndim != ndim:
        raise DimensionError(
            f"{name}: expected {ndim}D array, got {array.ndim}D with shape {array.shape}"
        )


def check_consistent_length(
    *arrays: NDArray[np.floating[Any]],
    names: tuple[str, ...]
) -> None:
    """
    Verify all arrays have the same length (first dimension).

    Raises:
        ValueError: If number of names doesn't match number of arrays
        DimensionError: If arrays have inconsistent lengths
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"Number of arrays ({len(arrays)}) must match number of names ({len(names)})"
        )

    lengths = [arr.shape[0] for arr in arrays]
    if len(set(lengths)) > 1:
        details = ", ".join(f"{name}={length}" for name, length in zip(names, lengths))
        raise DimensionError(f"Inconsistent lengths: {details}")


def check_positive_int(
    value: Any,
    name: str,
    error: type[ValidationError] = ValidationError,
    minimum: int = 1,
) -> int:
    """
    Verify value is an integer >= minimum and return it as a Python int.

    Booleans are rejected even though they subclass int.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise error(
            f"{name}: expected an integer, got {type(value).__name__} ({value!r})"
        )
    if value < minimum:
        raise error(f"{name}: must be >= {minimum}, got {value}")
    return int(value)


def check_open_unit_interval(
    value: Any,
    name: str,
    error: type[ValidationError] = ValidationError,
) -> float:
    """
    Verify value is a real number strictly between 0 and 1.

    Used for alpha, confidence levels and per-look thresholds.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise error(
            f"{name}: expected a number in (0, 1), got {type(value).__name__} ({value!r})"
        )
    value = float(value)
    if not 0.0 < value < 1.0:
        raise error(f"{name}: must be in (0, 1), got {value}")
    return value
