"""Hand-written neural network primitives."""
from .activation import Activation, sigmoid
from .layer import DenseLayer
from .network import Network

__all__ = ["Activation", "sigmoid", "DenseLayer", "Network"]
