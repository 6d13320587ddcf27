"""
QR least squares kernel.

Used by the IRLS backend for its inner weighted least squares solve and
for the unscaled covariance (R'R)^-1 that yields standard errors.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import solve_triangular

from powersim.core.exceptions import SingularMatrixError


@dataclass(frozen=True)
class QRResult:
    """
    Result of a reduced QR decomposition.

    Attributes:
        Q: Orthonormal columns (n x p)
        R: Upper triangular factor (p x p)
        rank: Numerical rank determined from the R diagonal
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    rank: int

    def unscaled_covariance(self) -> NDArray[np.floating[Any]]:
        """(X'X)^-1 = R^-1 R^-T for the decomposed matrix."""
        p = self.R.shape[1]
        R_inv = solve_triangular(self.R, np.eye(p), lower=False)
        return R_inv @ R_inv.T


def _numerical_rank(X: NDArray, R: NDArray) -> int:
    diag_R = np.abs(np.diag(R))
    if len(diag_R) == 0 or diag_R.max() == 0:
        return 0
    tol = max(X.shape) * np.finfo(X.dtype).eps * diag_R.max()
    return int(np.sum(diag_R > tol))


def qr_factor(X: NDArray[np.floating[Any]]) -> QRResult:
    """
    Reduced QR decomposition with a full-column-rank check.

    Raises:
        SingularMatrixError: If X has fewer rows than columns or is
            rank-deficient
    """
    n, p = X.shape
    if n < p:
        raise SingularMatrixError(
            f"Design matrix has fewer rows ({n}) than columns ({p})",
            matrix_name='X',
            rank=n,
            expected_rank=p,
        )

    Q, R = np.linalg.qr(X, mode='reduced')
    rank = _numerical_rank(X, R)
    if rank < p:
        raise SingularMatrixError(
            f"Design matrix is rank-deficient: rank={rank}, expected={p}",
            matrix_name='X',
            rank=rank,
            expected_rank=p,
        )
    return QRResult(Q=Q, R=R, rank=rank)


def qr_solve(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
) -> tuple[NDArray[np.floating[Any]], QRResult]:
    """
    Solve min_β ||y - Xβ||² via reduced QR decomposition.

    The solution is computed as β = R⁻¹ Q'y.

    Returns:
        (β, QRResult)

    Raises:
        SingularMatrixError: If X is rank-deficient
    """
    qr = qr_factor(X)
    beta = solve_triangular(qr.R, qr.Q.T @ y, lower=False)
    return beta, qr
