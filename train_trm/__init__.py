"""
Tiny Recursive Model (TRM)
==========================

A small recursive reasoning model with a hand-written backpropagation
engine. Instead of depth, TRM iterates a think step (refine latent state z)
and an act step (refine answer y) with one shared network.

Quick Start
-----------
>>> from train_trm import TRMModel, TRMConfig
>>>
>>> config = TRMConfig(input_dim=5, output_dim=3, hidden_dim=8, latent_dim=4)
>>> model = TRMModel(config)
>>>
>>> # Forward pass
>>> x = torch.zeros(2, 5)
>>> y = model.forward(x)
>>>
>>> # One gradient step, then save
>>> model.backward_and_update(y - target, learning_rate=0.01)
>>> model.save("model.trm")

For training, see :func:`train` or the CLI::

    train-trm train --task copy --epochs 100

"""

__version__ = "0.1.0"
__author__ = "TRM Contributors"

from .config import TRMConfig, TrainingConfig, LossType
from .network import Activation, Layer, Network
from .model import TRMModel
from .trainer import train, Trainer, TrainingMetrics
from .utils import (
    TRMError,
    ForwardStateError,
    ShapeMismatchError,
    SnapshotIOError,
    SnapshotFormatError,
    compute_loss,
    count_parameters,
    set_seed,
)

__all__ = [
    # Config
    "TRMConfig",
    "TrainingConfig",
    "LossType",
    # Model
    "Activation",
    "Layer",
    "Network",
    "TRMModel",
    # Training
    "train",
    "Trainer",
    "TrainingMetrics",
    "compute_loss",
    # Errors
    "TRMError",
    "ForwardStateError",
    "ShapeMismatchError",
    "SnapshotIOError",
    "SnapshotFormatError",
    # Utils
    "count_parameters",
    "set_seed",
]
