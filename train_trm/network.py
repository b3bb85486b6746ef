"""
Neural Network Layers
=====================

Dense layers with hand-written backpropagation.

The key components are:
- Activation: elementwise non-linearities and their derivatives
- Layer: affine transform + activation with a cached forward context
- Network: a strictly sequential stack of layers

Tensors are float32 ``torch.Tensor`` objects on the CPU. Gradients are
computed explicitly; autograd is never involved.
"""

import math
import torch
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from .utils import (
    ForwardStateError,
    ShapeMismatchError,
    as_matrix,
    check_shape,
)


class Activation(str, Enum):
    """Elementwise activation function.

    The value of each member is the tag stored in model snapshots.
    """

    RELU = "relu"
    TANH = "tanh"
    IDENTITY = "identity"

    def apply(self, x: torch.Tensor) -> torch.Tensor:
        """Apply the activation elementwise."""
        if self is Activation.RELU:
            return torch.clamp(x, min=0.0)
        if self is Activation.TANH:
            return torch.tanh(x)
        return x.clone()

    def derivative(self, x: torch.Tensor) -> torch.Tensor:
        """Derivative of the activation, evaluated at the pre-activation ``x``.

        The ReLU derivative at exactly zero is taken to be 0.
        """
        if self is Activation.RELU:
            return (x > 0).to(x.dtype)
        if self is Activation.TANH:
            t = torch.tanh(x)
            return 1.0 - t * t
        return torch.ones_like(x)


def _contains_bool(values: Any) -> bool:
    if isinstance(values, (list, tuple)):
        return any(_contains_bool(v) for v in values)
    return isinstance(values, bool)


def _parameter_tensor(what: str, values: Any) -> torch.Tensor:
    """Convert serialized parameters to float32, rejecting booleans and non-finite values."""
    if _contains_bool(values):
        raise ValueError(f"{what} must contain numbers, not booleans")
    tensor = torch.tensor(values, dtype=torch.float32)
    if not torch.isfinite(tensor).all():
        raise ValueError(f"{what} contain non-finite values (or overflow float32)")
    return tensor


class ForwardContext(NamedTuple):
    """Intermediates of the latest forward pass, needed by backward."""

    input: torch.Tensor
    linear: torch.Tensor


class Layer:
    """A single dense layer: ``activation(input @ weights.T + bias)``.

    Weights are drawn uniformly from ``±sqrt(2 / (in + out))``
    (Xavier/Glorot) and the bias starts at zero.

    Parameters
    ----------
    input_dim : int
        Number of input features
    output_dim : int
        Number of output features
    activation : Activation
        Activation applied to the affine output
    generator : torch.Generator, optional
        Random source for initialization (global RNG if None)

    Examples
    --------
    >>> layer = Layer(3, 2, Activation.RELU)
    >>> out = layer.forward(torch.ones(4, 3))
    >>> out.shape
    torch.Size([4, 2])
    """

    def __init__(
        self,
        input_dim: int,
        output_dim: int,
        activation: Activation = Activation.RELU,
        generator: Optional[torch.Generator] = None
    ):
        if input_dim < 1 or output_dim < 1:
            raise ValueError(
                f"Layer dimensions must be positive, got {input_dim}x{output_dim}"
            )
        scale = math.sqrt(2.0 / (input_dim + output_dim))
        self.weights = torch.empty(output_dim, input_dim, dtype=torch.float32)
        self.weights.uniform_(-scale, scale, generator=generator)
        self.bias = torch.zeros(output_dim, dtype=torch.float32)
        self.activation = Activation(activation)
        self._context: Optional[ForwardContext] = None

    @property
    def input_dim(self) -> int:
        return self.weights.shape[1]

    @property
    def output_dim(self) -> int:
        return self.weights.shape[0]

    @property
    def has_context(self) -> bool:
        """True if a forward pass has been cached for backward."""
        return self._context is not None

    def clear_context(self) -> None:
        """Drop the cached forward pass."""
        self._context = None

    def forward(self, input: torch.Tensor) -> torch.Tensor:
        """Forward pass through the layer.

        Parameters
        ----------
        input : torch.Tensor
            Input of shape [batch, input_dim]

        Returns
        -------
        torch.Tensor
            Output of shape [batch, output_dim]
        """
        input = as_matrix(input)
        check_shape("layer input", input, (None, self.input_dim))

        linear = input @ self.weights.T + self.bias

        # Last forward wins
        self._context = ForwardContext(input.clone(), linear)

        return self.activation.apply(linear)

    def backward(
        self, grad_output: torch.Tensor
    ) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """Backward pass through the layer.

        Parameters
        ----------
        grad_output : torch.Tensor
            Gradient of the loss w.r.t. this layer's output [batch, output_dim]

        Returns
        -------
        Tuple[Tensor, Tensor, Tensor]
            (grad_input, grad_weights, grad_bias)

        Raises
        ------
        ForwardStateError
            If ``forward`` has not been called on this layer
        """
        if self._context is None:
            raise ForwardStateError("Forward must be called before backward")

        input, linear = self._context
        grad_output = as_matrix(grad_output)
        check_shape("gradient", grad_output, tuple(linear.shape))

        grad_linear = grad_output * self.activation.derivative(linear)
        grad_weights = grad_linear.T @ input
        grad_bias = grad_linear.sum(dim=0)
        grad_input = grad_linear @ self.weights

        return grad_input, grad_weights, grad_bias

    def update(
        self,
        grad_weights: torch.Tensor,
        grad_bias: torch.Tensor,
        learning_rate: float
    ) -> None:
        """Plain gradient descent step on weights and bias."""
        check_shape("weight gradient", grad_weights, tuple(self.weights.shape))
        check_shape("bias gradient", grad_bias, tuple(self.bias.shape))
        self.weights -= learning_rate * grad_weights
        self.bias -= learning_rate * grad_bias

    def num_parameters(self) -> int:
        return self.weights.numel() + self.bias.numel()

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the parameters (no cached context)."""
        return {
            "activation": self.activation.value,
            "weights": self.weights.tolist(),
            "bias": self.bias.tolist(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Layer":
        """Rebuild a layer from :meth:`to_dict` output."""
        weights = _parameter_tensor("weights", d["weights"])
        bias = _parameter_tensor("bias", d["bias"])
        if weights.dim() != 2 or weights.numel() == 0:
            raise ShapeMismatchError("weights", (None, None), tuple(weights.shape))
        check_shape("bias", bias, (weights.shape[0],))

        layer = cls.__new__(cls)
        layer.weights = weights
        layer.bias = bias
        layer.activation = Activation(d["activation"])
        layer._context = None
        return layer

    def __repr__(self) -> str:
        return (
            f"Layer({self.input_dim} -> {self.output_dim}, "
            f"{self.activation.value})"
        )


class Network:
    """A strictly sequential stack of layers.

    The output of layer *i* is exactly the input of layer *i+1*.

    Parameters
    ----------
    layers : list of Layer
        Layers in forward order

    Examples
    --------
    >>> net = Network([Layer(10, 5, Activation.RELU), Layer(5, 2, Activation.TANH)])
    >>> net.num_parameters()
    67
    """

    def __init__(self, layers: List[Layer]):
        if not layers:
            raise ValueError("A network needs at least one layer")
        for prev, layer in zip(layers, layers[1:]):
            if layer.input_dim != prev.output_dim:
                raise ShapeMismatchError(
                    "layer weights",
                    (layer.output_dim, prev.output_dim),
                    tuple(layer.weights.shape),
                )
        self.layers = list(layers)

    @property
    def input_dim(self) -> int:
        return self.layers[0].input_dim

    @property
    def output_dim(self) -> int:
        return self.layers[-1].output_dim

    def __len__(self) -> int:
        return len(self.layers)

    def forward(self, input: torch.Tensor) -> torch.Tensor:
        """Forward pass through all layers."""
        x = input
        for layer in self.layers:
            x = layer.forward(x)
        return x

    def backward_and_update(
        self,
        grad_output: torch.Tensor,
        learning_rate: float
    ) -> None:
        """Backpropagate ``grad_output`` and take one gradient step.

        All gradients are computed before any weight changes, so every
        layer's gradient sees the weights used in the forward pass.
        """
        grad = grad_output
        gradients = []

        # Pass 1: gradients, last layer first
        for layer in reversed(self.layers):
            grad, grad_weights, grad_bias = layer.backward(grad)
            gradients.append((grad_weights, grad_bias))

        # Pass 2: updates, first layer first
        gradients.reverse()
        for layer, (grad_weights, grad_bias) in zip(self.layers, gradients):
            layer.update(grad_weights, grad_bias, learning_rate)

    def num_parameters(self) -> int:
        """Total number of weights and biases."""
        return sum(layer.num_parameters() for layer in self.layers)

    def to_dict(self) -> Dict[str, Any]:
        return {"layers": [layer.to_dict() for layer in self.layers]}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Network":
        return cls([Layer.from_dict(layer) for layer in d["layers"]])

    def __repr__(self) -> str:
        inner = ", ".join(repr(layer) for layer in self.layers)
        return f"Network([{inner}])"
