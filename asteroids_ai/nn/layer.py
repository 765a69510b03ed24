"""
Dense Layer - fully connected layer with hand-written forward/backward.

Structure:
    input[in_size] -> activation(W @ input + b) -> output[out_size]

The layer remembers the input and output of the most recent forward call so
that backward can compute gradients and apply a per-sample SGD update.
"""
from typing import Optional

import numpy as np

from .activation import Activation


class DenseLayer:
    """
    Fully connected layer.

    Weights are stored as a matrix of shape (out_size, in_size), biases as a
    vector of shape (out_size,).
    """

    def __init__(
        self,
        in_size: int,
        out_size: int,
        activation: Activation = Activation.RELU,
        rng: Optional[np.random.Generator] = None,
        init: str = "xavier",
    ):
        """
        Initialize the layer.

        Args:
            in_size: Number of inputs
            out_size: Number of outputs (neurons)
            activation: Activation applied to the affine output
            rng: Random generator used for weight initialization
            init: "xavier" (uniform Glorot) or "he" (Gaussian, fan-in scaled)
        """
        if in_size <= 0 or out_size <= 0:
            raise ValueError(f"Layer sizes must be positive, got {in_size}->{out_size}")

        self.in_size = in_size
        self.out_size = out_size
        self.activation = Activation.parse(activation)

        self.weights = np.zeros((out_size, in_size), dtype=np.float32)
        self.biases = np.zeros(out_size, dtype=np.float32)
        self._init_weights(rng or np.random.default_rng(), init)

        # Backprop cache
        self.last_input: Optional[np.ndarray] = None
        self.last_output: Optional[np.ndarray] = None

    def _init_weights(self, rng: np.random.Generator, init: str):
        """Initialize weights scaled by fan-in; biases start at zero."""
        if init == "xavier":
            limit = np.sqrt(6.0 / (self.in_size + self.out_size))
            values = rng.uniform(-limit, limit, size=self.weights.shape)
        elif init == "he":
            scale = np.sqrt(2.0 / self.in_size)
            values = rng.normal(0.0, scale, size=self.weights.shape)
        else:
            raise ValueError(f"Unknown weight init: {init}")
        self.weights[...] = values
        self.biases.fill(0.0)

    def forward(self, x: np.ndarray) -> np.ndarray:
        """
        Forward pass.

        Args:
            x: Input vector of shape (in_size,)

        Returns:
            Output vector of shape (out_size,)
        """
        x = np.asarray(x, dtype=np.float32)
        if x.shape != (self.in_size,):
            raise ValueError(f"Expected {self.in_size} inputs, got shape {x.shape}")

        y = self.activation.apply(self.weights @ x + self.biases).astype(np.float32)

        self.last_input = x.copy()
        self.last_output = y.copy()
        return y

    def backward(self, output_gradient: np.ndarray, learning_rate: float) -> np.ndarray:
        """
        Backward pass with an in-place SGD update.

        Args:
            output_gradient: dLoss/dOutput, shape (out_size,)
            learning_rate: Step size for the weight update

        Returns:
            dLoss/dInput, shape (in_size,)
        """
        if self.last_input is None or self.last_output is None:
            raise RuntimeError("backward() called before forward()")

        grad = np.asarray(output_gradient, dtype=np.float32)
        if grad.shape != (self.out_size,):
            raise ValueError(f"Expected {self.out_size} gradients, got shape {grad.shape}")

        delta = grad * self.activation.derivative(self.last_output)

        # Propagate with the weights used in the forward pass
        input_gradient = self.weights.T @ delta

        self.weights -= (learning_rate * np.outer(delta, self.last_input)).astype(np.float32)
        self.biases -= (learning_rate * delta).astype(np.float32)

        return input_gradient.astype(np.float32)

    @property
    def parameter_count(self) -> int:
        return self.out_size * self.in_size + self.out_size

    def get_parameters(self) -> np.ndarray:
        """Flat copy of all weight rows followed by all biases."""
        return np.concatenate([self.weights.ravel(), self.biases]).astype(np.float32)

    def set_parameters(self, params: np.ndarray):
        params = np.asarray(params, dtype=np.float32)
        if params.shape != (self.parameter_count,):
            raise ValueError(
                f"Expected {self.parameter_count} parameters, got shape {params.shape}"
            )
        split = self.out_size * self.in_size
        self.weights[...] = params[:split].reshape(self.out_size, self.in_size)
        self.biases[...] = params[split:]

    def __repr__(self) -> str:
        return f"DenseLayer({self.in_size}->{self.out_size}, {self.activation.value})"
