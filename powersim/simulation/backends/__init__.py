"""Computational backends for power simulation."""

from powersim.simulation.backends.cpu import CPUPowerBackend, CPUSequentialBackend

__all__ = ["CPUPowerBackend", "CPUSequentialBackend"]
