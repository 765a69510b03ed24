"""
Network - ordered stack of dense layers (multilayer perceptron).

Parameters flatten in a fixed order: layer by layer, and within a layer all
weight rows followed by all biases. Genome checkpoints depend on this order.
"""
from typing import List, Optional, Sequence, Union

import numpy as np

from .activation import Activation
from .layer import DenseLayer


ActivationLike = Union[Activation, str]


class Network:
    """
    Feed-forward network trained with per-sample SGD on an MSE loss.

    Example:
        net = Network.mlp(26, [32, 32], 6, seed=1234)
        q_values = net.forward(state)
        net.backward(target_q_values, learning_rate=0.0005)
    """

    def __init__(
        self,
        layer_sizes: Sequence[int],
        activations: Optional[Sequence[ActivationLike]] = None,
        seed: Optional[int] = None,
        init: str = "xavier",
    ):
        """
        Build a network from explicit layer sizes.

        Args:
            layer_sizes: [input, hidden..., output]
            activations: One activation per layer (len(layer_sizes) - 1).
                Defaults to ReLU hidden layers and a linear output layer.
            seed: Seed for weight initialization
            init: Weight initialization scheme ("xavier" or "he")
        """
        sizes = [int(s) for s in layer_sizes]
        if len(sizes) < 2:
            raise ValueError(f"Need at least input and output sizes, got {sizes}")
        if any(s <= 0 for s in sizes):
            raise ValueError(f"Layer sizes must be positive, got {sizes}")

        n_layers = len(sizes) - 1
        if activations is None:
            activations = [Activation.RELU] * (n_layers - 1) + [Activation.LINEAR]
        if len(activations) != n_layers:
            raise ValueError(
                f"Expected {n_layers} activations, got {len(activations)}"
            )

        rng = np.random.default_rng(seed)
        self.layers: List[DenseLayer] = [
            DenseLayer(sizes[i], sizes[i + 1], Activation.parse(activations[i]), rng, init)
            for i in range(n_layers)
        ]
        self._layer_outputs: List[np.ndarray] = []

    @classmethod
    def mlp(
        cls,
        input_size: int,
        hidden_sizes: Sequence[int],
        output_size: int,
        seed: Optional[int] = None,
        hidden_activation: ActivationLike = Activation.RELU,
        output_activation: ActivationLike = Activation.LINEAR,
    ) -> "Network":
        """Standard MLP: non-linear hidden layers, output bounded outside the network."""
        sizes = [input_size, *hidden_sizes, output_size]
        activations = [hidden_activation] * len(hidden_sizes) + [output_activation]
        return cls(sizes, activations, seed=seed)

    @classmethod
    def from_layers(cls, layers: Sequence[DenseLayer]) -> "Network":
        """Wrap existing layers, checking that consecutive sizes chain."""
        if not layers:
            raise ValueError("Network needs at least one layer")
        for prev, nxt in zip(layers, layers[1:]):
            if prev.out_size != nxt.in_size:
                raise ValueError(
                    f"Layer output {prev.out_size} does not match next input {nxt.in_size}"
                )
        net = cls.__new__(cls)
        net.layers = list(layers)
        net._layer_outputs = []
        return net

    @property
    def input_size(self) -> int:
        return self.layers[0].in_size

    @property
    def output_size(self) -> int:
        return self.layers[-1].out_size

    @property
    def layer_sizes(self) -> List[int]:
        return [self.input_size] + [layer.out_size for layer in self.layers]

    @property
    def activations(self) -> List[Activation]:
        return [layer.activation for layer in self.layers]

    @property
    def parameter_count(self) -> int:
        return sum(layer.parameter_count for layer in self.layers)

    def forward(self, x: np.ndarray) -> np.ndarray:
        """
        Forward pass through all layers.

        Args:
            x: Input vector of shape (input_size,)

        Returns:
            Output vector of shape (output_size,)
        """
        x = np.asarray(x, dtype=np.float32)
        if x.shape != (self.input_size,):
            raise ValueError(f"Expected {self.input_size} inputs, got shape {x.shape}")

        outputs = [x]
        for layer in self.layers:
            outputs.append(layer.forward(outputs[-1]))
        self._layer_outputs = outputs
        return outputs[-1].copy()

    def backward(self, target: np.ndarray, learning_rate: float) -> float:
        """
        Backpropagate an MSE loss against target for the most recent forward.

        Args:
            target: Desired output vector, shape (output_size,)
            learning_rate: SGD step size

        Returns:
            Mean squared error before the update
        """
        target = np.asarray(target, dtype=np.float32)
        if target.shape != (self.output_size,):
            raise ValueError(f"Expected {self.output_size} targets, got shape {target.shape}")
        if not self._layer_outputs:
            raise RuntimeError("backward() called before forward()")

        predicted = self._layer_outputs[-1]
        error = predicted - target
        grad = 2.0 * error / self.output_size

        for layer in reversed(self.layers):
            grad = layer.backward(grad, learning_rate)

        return float(np.mean(error * error))

    def get_parameters(self) -> np.ndarray:
        """All parameters as a new flat float32 vector (canonical order)."""
        return np.concatenate([layer.get_parameters() for layer in self.layers])

    def set_parameters(self, params: np.ndarray):
        """Load parameters from a flat vector; values are copied in."""
        params = np.asarray(params, dtype=np.float32)
        if params.shape != (self.parameter_count,):
            raise ValueError(
                f"Expected {self.parameter_count} parameters, got shape {params.shape}"
            )
        offset = 0
        for layer in self.layers:
            count = layer.parameter_count
            layer.set_parameters(params[offset:offset + count])
            offset += count

    def same_architecture(self, other: "Network") -> bool:
        return (
            self.layer_sizes == other.layer_sizes
            and self.activations == other.activations
        )

    def copy(self) -> "Network":
        """New network with the same architecture and value-copied parameters."""
        clone = Network(self.layer_sizes, self.activations)
        clone.set_parameters(self.get_parameters())
        return clone

    def summary(self) -> str:
        lines = [f"Input: {self.input_size} neurons"]
        for i, layer in enumerate(self.layers[:-1]):
            lines.append(f"Hidden[{i + 1}]: {layer.out_size} neurons ({layer.activation.value})")
        lines.append(f"Output: {self.output_size} neurons ({self.layers[-1].activation.value})")
        lines.append(f"Total parameters: {self.parameter_count}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        arch = "->".join(str(s) for s in self.layer_sizes)
        return f"Network({arch}, params={self.parameter_count})"
