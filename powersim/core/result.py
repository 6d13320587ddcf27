"""
Generic result container for all powersim computations.

The Result class provides a standardized envelope that every backend
returns. Solutions wrap it and expose domain-specific accessors, so
timing, warnings and backend identification are handled the same way for
single fits, power estimates and sequential simulations.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (seeds, worker counts, diagnostics)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for statistical computations.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Domain-specific payload (coefficients, power summary, ...)
        info: Structured metadata (base seed, reps, diagnostics)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=PowerParams(summary=summary, ...),
        ...     info={'base_seed': 42, 'reps': 1000},
        ...     timing={'total_seconds': 1.2, 'repetitions': 1.1},
        ...     backend_name='cpu_power'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
