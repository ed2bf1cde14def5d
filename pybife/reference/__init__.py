"""
Reference implementation (dense NumPy) for validation.

Fits the same models with the explicit dummy-variable design matrix.
"""

from .glm import DummyGLM, GLMResult

__all__ = [
    "DummyGLM",
    "GLMResult",
]
