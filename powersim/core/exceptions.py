"""
Exception hierarchy for powersim.

All exceptions inherit from PowerSimError to allow catching any
library-specific error. Domain-specific exceptions should inherit from
the appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information

Taxonomy used by the simulation engine:
    InvalidDesign         fatal, raised before any simulation starts
    InvalidConfiguration  fatal, raised at the aggregator boundary
    FitFailure            recovered per repetition / per look
    SimulationCancelled   raised when a caller cancels a running aggregation
"""


class PowerSimError(Exception):
    """Base exception for all powersim errors."""
    pass


class ValidationError(PowerSimError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent shapes.
    """
    pass


class InvalidDesign(ValidationError):
    """
    Data-generating design or look schedule is malformed.

    Raised for out-of-domain outcome parameters, fewer records than arms,
    or a non-monotonic look schedule.

    Attributes:
        parameter: Name of the offending parameter, if known
        value: The offending value, if known
    """

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        value: object = None,
    ):
        super().__init__(message)
        self.parameter = parameter
        self.value = value


class InvalidConfiguration(ValidationError):
    """
    Aggregation settings are unusable.

    Raised for reps < 1, an empty look schedule, or alpha / conf_level
    outside (0, 1).

    Attributes:
        parameter: Name of the offending setting, if known
        value: The offending value, if known
    """

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        value: object = None,
    ):
        super().__init__(message)
        self.parameter = parameter
        self.value = value


class NumericalError(PowerSimError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        rank: Numerical rank, if computed
        expected_rank: Expected rank (typically the number of columns)
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.rank = rank
        self.expected_rank = expected_rank


class FitFailure(NumericalError):
    """
    A single model fit could not produce a trustworthy estimate.

    Raised by fitting backends for separation, rank deficiency or
    non-finite standard errors. Analyzers convert it into a failed
    FitResult so one bad repetition never aborts an aggregation.

    Attributes:
        reason: Short machine-readable reason ('separation', 'rank_deficient',
            'not_converged', 'non_finite', ...)
    """

    def __init__(self, message: str, reason: str = 'fit_failure'):
        super().__init__(message)
        self.reason = reason


class ConvergenceError(FitFailure):
    """
    Iterative algorithm failed to converge.

    Raised when IRLS fails to meet its convergence criterion within the
    maximum number of iterations.

    Attributes:
        iterations: Number of iterations completed
        final_change: Final relative deviance change
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        threshold: float | None = None
    ):
        super().__init__(message, reason='not_converged')
        self.iterations = iterations
        self.final_change = final_change
        self.threshold = threshold


class SimulationCancelled(PowerSimError):
    """
    A running aggregation was cancelled through its cancel_check callback.

    No partial summary is produced; in-flight repetitions were allowed to
    finish before this was raised.

    Attributes:
        completed: Number of repetitions that finished
        total: Number of repetitions requested
    """

    def __init__(self, message: str, completed: int, total: int):
        super().__init__(message)
        self.completed = completed
        self.total = total
