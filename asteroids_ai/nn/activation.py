"""
Activation functions used by dense layers.

Derivatives are expressed in terms of the cached layer *output*, which is all
a layer keeps around between forward and backward.
"""
from enum import Enum

import numpy as np


class Activation(Enum):
    """Element-wise activation applied after the affine transform."""

    LINEAR = "linear"
    RELU = "relu"
    TANH = "tanh"
    SIGMOID = "sigmoid"

    @classmethod
    def parse(cls, value) -> "Activation":
        """Accept an Activation or its (case-insensitive) name."""
        if isinstance(value, Activation):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown activation: {value}") from None

    def apply(self, x: np.ndarray) -> np.ndarray:
        if self is Activation.RELU:
            return np.maximum(x, 0.0)
        if self is Activation.TANH:
            return np.tanh(x)
        if self is Activation.SIGMOID:
            return sigmoid(x)
        return x

    def derivative(self, y: np.ndarray) -> np.ndarray:
        """Local derivative given the activation output y."""
        if self is Activation.RELU:
            return (y > 0).astype(y.dtype)
        if self is Activation.TANH:
            return 1.0 - y * y
        if self is Activation.SIGMOID:
            return y * (1.0 - y)
        return np.ones_like(y)


def sigmoid(x):
    """Logistic sigmoid that does not overflow for large |x|."""
    x = np.asarray(x)
    out = np.empty_like(x, dtype=np.result_type(x, np.float32))
    pos = x >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-x[pos]))
    ex = np.exp(x[~pos])
    out[~pos] = ex / (1.0 + ex)
    return out
