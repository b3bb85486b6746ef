"""
Configuration Classes for TRM
=============================

This module contains all configuration dataclasses used by TRM.
"""

from dataclasses import dataclass, fields, asdict
from enum import Enum
from typing import Optional, Dict, Any
import json


class LossType(str, Enum):
    """Loss function used for evaluation and training."""

    MSE = "mse"
    MAE = "mae"


@dataclass(frozen=True)
class TRMConfig:
    """Configuration for Tiny Recursive Model architecture.

    The config is immutable once created and fully determines the
    topology of the shared network.

    Attributes
    ----------
    l_layers : int
        Number of ReLU layers before the output layer (at least 1)
    h_cycles : int
        Number of outer cycles (H), one act step each
    l_cycles : int
        Number of inner cycles (L), i.e. think steps per outer cycle
    hidden_dim : int
        Width of the hidden layers
    latent_dim : int
        Width of the latent state z
    input_dim : int
        Width of the problem input x
    output_dim : int
        Width of the answer y

    Examples
    --------
    >>> config = TRMConfig(input_dim=5, output_dim=3, latent_dim=4)
    >>> config.max_input_width
    12
    """

    # Architecture
    l_layers: int = 2
    hidden_dim: int = 64
    latent_dim: int = 64
    input_dim: int = 10
    output_dim: int = 10

    # Recursion
    h_cycles: int = 3
    l_cycles: int = 4

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(
                    f"{f.name} must be an integer, got {value!r}"
                )
            if value < 1:
                raise ValueError(f"{f.name} must be positive, got {value}")

    @property
    def think_input_dim(self) -> int:
        """Width of the think view: concat(x, y, z)."""
        return self.input_dim + self.output_dim + self.latent_dim

    @property
    def act_input_dim(self) -> int:
        """Width of the act view: concat(y, z)."""
        return self.output_dim + self.latent_dim

    @property
    def max_input_width(self) -> int:
        """Input width of the shared network."""
        return max(self.think_input_dim, self.act_input_dim)

    @property
    def max_output_width(self) -> int:
        """Output width of the shared network."""
        return max(self.latent_dim, self.output_dim)

    @property
    def effective_depth(self) -> int:
        """Number of layer applications in one forward pass.

        Returns h_cycles * (l_cycles + 1) * (l_layers + 1)
        """
        return self.h_cycles * (self.l_cycles + 1) * (self.l_layers + 1)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TRMConfig":
        """Create config from dictionary."""
        return cls(**d)

    def save(self, path: str) -> None:
        """Save config to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> "TRMConfig":
        """Load config from JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))


@dataclass
class TrainingConfig:
    """Configuration for training TRM.

    Attributes
    ----------
    learning_rate : float
        Step size of plain gradient descent
    epochs : int
        Number of passes over the training examples
    batch_size : int
        Kept for interface compatibility; examples are processed one at a time
    loss_type : LossType
        Loss used for evaluation and for the output gradient
    apply_updates : bool
        Whether each training step calls ``backward_and_update``
    log_interval : int
        Print the epoch loss every N epochs (0 to disable)
    seed : int, optional
        Random seed applied before training

    Examples
    --------
    >>> config = TrainingConfig(epochs=50, learning_rate=0.01)
    >>> print(f"Training for {config.epochs} epochs")
    """

    learning_rate: float = 0.001
    epochs: int = 100
    batch_size: int = 32
    loss_type: LossType = LossType.MSE

    # Policy
    apply_updates: bool = True

    # Logging
    log_interval: int = 10

    # Reproducibility
    seed: Optional[int] = None

    def __post_init__(self):
        self.loss_type = LossType(self.loss_type)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        d = asdict(self)
        d["loss_type"] = self.loss_type.value
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrainingConfig":
        """Create config from dictionary."""
        return cls(**d)

    def save(self, path: str) -> None:
        """Save config to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> "TrainingConfig":
        """Load config from JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))


# Preset configurations for the built-in tasks
COPY_CONFIG = TRMConfig(
    input_dim=5,
    output_dim=5,
    hidden_dim=16,
    latent_dim=16,
    l_layers=2,
    h_cycles=2,
    l_cycles=2,
)

SEQUENCE_CONFIG = TRMConfig(
    input_dim=5,
    output_dim=1,
    hidden_dim=32,
    latent_dim=16,
    l_layers=2,
    h_cycles=3,
    l_cycles=4,
)

MAZE_CONFIG = TRMConfig(
    input_dim=49,        # 7x7 grid
    output_dim=49,
    hidden_dim=128,
    latent_dim=64,
    l_layers=2,
    h_cycles=3,
    l_cycles=4,
)


def get_preset_config(task: str) -> TRMConfig:
    """Get preset model configuration for a task.

    Parameters
    ----------
    task : str
        Task name: 'copy', 'sequence', or 'maze'

    Returns
    -------
    TRMConfig
        Preset configuration for the task

    Examples
    --------
    >>> config = get_preset_config('copy')
    >>> print(config.input_dim)
    5
    """
    presets = {
        "copy": COPY_CONFIG,
        "sequence": SEQUENCE_CONFIG,
        "maze": MAZE_CONFIG,
    }

    if task not in presets:
        raise ValueError(
            f"Unknown task: {task}. Available: {list(presets.keys())}"
        )

    return presets[task]
