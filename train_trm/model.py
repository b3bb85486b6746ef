"""
Tiny Recursive Model Architecture
==================================

This module implements the TRM control loop on top of a single shared
:class:`~train_trm.network.Network`.

The recursion alternates two steps:
- think: z = net(x, y, z)   refines the latent state
- act:   y = net(y, z)      refines the answer (no x!)

Both steps reuse the same network. The shorter concatenation is
zero-padded to ``config.max_input_width`` and each step reads only the
slice of the network output it needs.
"""

import torch
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .config import TRMConfig
from .network import Activation, Layer, Network
from .utils import (
    SnapshotFormatError,
    as_matrix,
    check_shape,
    load_checkpoint,
    make_generator,
    save_checkpoint,
)


class TRMModel:
    """Complete Tiny Recursive Model.

    The network topology is fully determined by the config:
    ``max_input_width -> hidden_dim`` (ReLU), ``l_layers - 1`` hidden
    ``hidden_dim -> hidden_dim`` layers (ReLU), and a
    ``hidden_dim -> max_output_width`` output layer (Tanh).

    Parameters
    ----------
    config : TRMConfig
        Model configuration
    seed : int, optional
        Seed for weight initialization (unseeded if None)
    generator : torch.Generator, optional
        Random source for weight initialization; overrides ``seed``
    network : Network, optional
        Prebuilt network to adopt instead of drawing new weights. Its
        topology must match :meth:`layer_specs`.

    Examples
    --------
    >>> config = TRMConfig(input_dim=5, output_dim=3, hidden_dim=8, latent_dim=4)
    >>> model = TRMModel(config, seed=0)
    >>> y = model.forward(torch.zeros(2, 5))
    >>> y.shape
    torch.Size([2, 3])
    >>>
    >>> # One gradient step on the final act invocation
    >>> model.backward_and_update(y - target, learning_rate=0.01)
    """

    def __init__(
        self,
        config: TRMConfig,
        seed: Optional[int] = None,
        generator: Optional[torch.Generator] = None,
        network: Optional[Network] = None
    ):
        self.config = config
        if generator is None and network is None:
            generator = make_generator(seed)

        # Padding widths, derived once and shared by think, act and backward
        self.max_input_width = config.max_input_width
        self.max_output_width = config.max_output_width

        if network is None:
            network = Network([
                Layer(input_dim, output_dim, activation, generator)
                for input_dim, output_dim, activation in self.layer_specs(config)
            ])
        self.network = network

    @staticmethod
    def layer_specs(config: TRMConfig) -> List[Tuple[int, int, Activation]]:
        """(input_dim, output_dim, activation) of each layer the config describes."""
        specs = [(config.max_input_width, config.hidden_dim, Activation.RELU)]
        for _ in range(1, config.l_layers):
            specs.append((config.hidden_dim, config.hidden_dim, Activation.RELU))
        specs.append((config.hidden_dim, config.max_output_width, Activation.TANH))
        return specs

    def _pad(self, *parts: torch.Tensor) -> torch.Tensor:
        """Concatenate ``parts`` column-wise into a zero buffer of network width."""
        batch_size = parts[0].shape[0]
        buffer = torch.zeros(batch_size, self.max_input_width, dtype=torch.float32)
        offset = 0
        for part in parts:
            width = part.shape[1]
            buffer[:, offset:offset + width] = part
            offset += width
        return buffer

    def think(self, x: torch.Tensor, y: torch.Tensor, z: torch.Tensor) -> torch.Tensor:
        """Update the latent state from input, current answer and latent state.

        Returns
        -------
        torch.Tensor
            New latent state [batch, latent_dim]
        """
        output = self.network.forward(self._pad(x, y, z))
        return output[:, :self.config.latent_dim].clone()

    def act(self, y: torch.Tensor, z: torch.Tensor) -> torch.Tensor:
        """Update the answer from the current answer and latent state.

        Returns
        -------
        torch.Tensor
            New answer [batch, output_dim]
        """
        output = self.network.forward(self._pad(y, z))
        return output[:, :self.config.output_dim].clone()

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Recursive reasoning forward pass.

        ``y`` and ``z`` start at zero on every call, so the output depends
        only on ``x`` and the current weights.

        Parameters
        ----------
        x : torch.Tensor
            Input [batch, input_dim]

        Returns
        -------
        torch.Tensor
            Answer [batch, output_dim]
        """
        x = as_matrix(x)
        check_shape("model input", x, (None, self.config.input_dim))
        batch_size = x.shape[0]

        y = torch.zeros(batch_size, self.config.output_dim, dtype=torch.float32)
        z = torch.zeros(batch_size, self.config.latent_dim, dtype=torch.float32)

        for _ in range(self.config.h_cycles):
            # Think: refine latent state L times
            for _ in range(self.config.l_cycles):
                z = self.think(x, y, z)

            # Act: refine answer once
            y = self.act(y, z)

        return y

    __call__ = forward

    def backward_and_update(
        self,
        grad_output: torch.Tensor,
        learning_rate: float
    ) -> None:
        """Take one gradient step from the gradient of the answer.

        Only the final act invocation of the last ``forward`` is
        differentiated: the gradient is padded to the network output width
        and applied with a single ``Network.backward_and_update``. Earlier
        think/act steps receive no gradient.

        Parameters
        ----------
        grad_output : torch.Tensor
            Gradient of the loss w.r.t. the answer [batch, output_dim]
        learning_rate : float
            Gradient descent step size
        """
        grad_output = as_matrix(grad_output)
        check_shape("gradient", grad_output, (None, self.config.output_dim))

        batch_size = grad_output.shape[0]
        padded_grad = torch.zeros(batch_size, self.max_output_width, dtype=torch.float32)
        padded_grad[:, :self.config.output_dim] = grad_output

        self.network.backward_and_update(padded_grad, learning_rate)

    def num_parameters(self) -> int:
        """Return total number of parameters."""
        return self.network.num_parameters()

    def to_dict(self) -> dict:
        """Structured snapshot of config and weights."""
        return {
            "config": self.config.to_dict(),
            "network": self.network.to_dict(),
        }

    @classmethod
    def from_dict(cls, snapshot: dict) -> "TRMModel":
        """Rebuild a model from :meth:`to_dict` output.

        Raises
        ------
        SnapshotFormatError
            If the snapshot is malformed or its shapes do not match the
            network the config describes
        """
        try:
            config_dict = dict(snapshot["config"])
            expected_keys = set(TRMConfig().to_dict())
            if set(config_dict) != expected_keys:
                raise SnapshotFormatError(
                    f"Snapshot config keys {sorted(config_dict)} "
                    f"do not match {sorted(expected_keys)}"
                )
            config = TRMConfig.from_dict(config_dict)
            network = Network.from_dict(snapshot["network"])
        except SnapshotFormatError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotFormatError(f"Malformed snapshot: {exc!r}") from exc

        specs = cls.layer_specs(config)
        if len(network) != len(specs):
            raise SnapshotFormatError(
                f"Snapshot has {len(network)} layers, config requires {len(specs)}"
            )
        for i, (layer, (input_dim, output_dim, activation)) in enumerate(
            zip(network.layers, specs)
        ):
            if tuple(layer.weights.shape) != (output_dim, input_dim):
                raise SnapshotFormatError(
                    f"Layer {i} weights have shape {tuple(layer.weights.shape)}, "
                    f"expected {(output_dim, input_dim)}"
                )
            if layer.activation is not activation:
                raise SnapshotFormatError(
                    f"Layer {i} activation is {layer.activation.value}, "
                    f"expected {activation.value}"
                )

        return cls(config, network=network)

    def save(self, path: Union[str, Path]) -> None:
        """Save config and weights to a JSON snapshot.

        Raises
        ------
        SnapshotIOError
            If the file cannot be written
        """
        save_checkpoint(self.to_dict(), path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "TRMModel":
        """Load a model saved with :meth:`save`.

        Raises
        ------
        SnapshotIOError
            If the file cannot be read
        SnapshotFormatError
            If the snapshot is malformed or inconsistent
        """
        return cls.from_dict(load_checkpoint(path))

    def __repr__(self) -> str:
        return f"TRMModel({self.config}, params={self.num_parameters()})"
