"""
Tests for input validation utilities.

Validates every function in core/validation.py, including the
caller-selected exception class used by the design validators.
"""

import numpy as np
import pytest

from powersim.core.exceptions import (
    DimensionError, InvalidConfiguration, InvalidDesign, ValidationError,
)
from powersim.core.validation import (
    check_array,
    check_consistent_length,
    check_finite,
    check_ndim,
    check_open_unit_interval,
    check_positive_int,
)


# ═══════════════════════════════════════════════════════════════════════
# check_array
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "X")
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_bool_array_is_rejected(self):
        with pytest.raises(ValidationError, match="non-numeric"):
            check_array(np.array([True, False]), "X")

    def test_mixed_types_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array([1, "a", None], "X")

    def test_strings_rejected(self):
        with pytest.raises(ValidationError):
            check_array(["a", "b"], "X")


# ═══════════════════════════════════════════════════════════════════════
# check_finite / check_ndim / check_consistent_length
# ═══════════════════════════════════════════════════════════════════════


class TestShapeAndFiniteness:

    def test_finite_passes(self):
        check_finite(np.array([0.1, 0.2]), "props")

    def test_nan_reported(self):
        with pytest.raises(ValidationError, match="1 NaN"):
            check_finite(np.array([0.1, np.nan]), "props")

    def test_custom_error_class(self):
        with pytest.raises(InvalidDesign):
            check_finite(np.array([np.inf]), "props", error=InvalidDesign)

    def test_ndim(self):
        check_ndim(np.zeros((3, 2)), 2, "X")
        with pytest.raises(DimensionError, match="expected 1D"):
            check_ndim(np.zeros((3, 2)), 1, "y")

    def test_consistent_length(self):
        check_consistent_length(np.zeros(3), np.zeros((3, 2)), names=("y", "X"))
        with pytest.raises(DimensionError, match="y=3, X=4"):
            check_consistent_length(np.zeros(3), np.zeros((4, 2)), names=("y", "X"))

    def test_names_must_match_arrays(self):
        with pytest.raises(ValueError):
            check_consistent_length(np.zeros(3), names=("a", "b"))


# ═══════════════════════════════════════════════════════════════════════
# Scalar validators
# ═══════════════════════════════════════════════════════════════════════


class TestCheckPositiveInt:

    def test_returns_python_int(self):
        value = check_positive_int(np.int64(5), "reps")
        assert value == 5
        assert type(value) is int

    @pytest.mark.parametrize("value", [0, -3])
    def test_below_minimum(self, value):
        with pytest.raises(InvalidConfiguration, match="must be >= 1"):
            check_positive_int(value, "reps", error=InvalidConfiguration)

    def test_minimum_zero(self):
        assert check_positive_int(0, "seed", minimum=0) == 0

    @pytest.mark.parametrize("value", [True, 2.0, "3", None])
    def test_non_integers_rejected(self, value):
        with pytest.raises(ValidationError, match="expected an integer"):
            check_positive_int(value, "n")


class TestCheckOpenUnitInterval:

    def test_accepts_interior(self):
        assert check_open_unit_interval(0.05, "alpha") == 0.05

    @pytest.mark.parametrize("value", [0.0, 1.0, -0.1, 1.5, float('nan')])
    def test_rejects_outside(self, value):
        with pytest.raises(InvalidConfiguration):
            check_open_unit_interval(value, "alpha", error=InvalidConfiguration)

    def test_rejects_bool(self):
        with pytest.raises(ValidationError):
            check_open_unit_interval(True, "alpha")
