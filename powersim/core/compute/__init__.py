"""
Shared compute infrastructure for powersim.

IMPORTANT: This is NOT where domain-specific backends live. Those go in
{domain}/backends/. This module contains shared NUMERIC infrastructure.

Submodules:
    timing: Execution timing utilities
    linalg: QR least squares kernel used by IRLS
"""

from powersim.core.compute.timing import Timer
from powersim.core.compute.linalg import QRResult, qr_factor, qr_solve

__all__ = [
    "Timer",
    "QRResult",
    "qr_factor",
    "qr_solve",
]
