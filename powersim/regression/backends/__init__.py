"""Computational backends for GLM fitting."""

from powersim.regression.backends.cpu_glm import CPUIRLSBackend

__all__ = ["CPUIRLSBackend"]
