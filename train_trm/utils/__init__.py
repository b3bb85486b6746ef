"""
Utility Functions
=================

Errors, seeding, loss functions and snapshot file handling.
"""

import torch
import random
import numpy as np
import json
from pathlib import Path
from typing import Dict, Any, Optional, Sequence, Union

from ..config import LossType


class TRMError(Exception):
    """Base class for all errors raised by train_trm."""


class ForwardStateError(TRMError, RuntimeError):
    """Raised when a backward pass has no forward context to work from.

    This is a programming error: every ``backward`` must be preceded by a
    ``forward`` on the same layer.
    """


class ShapeMismatchError(TRMError, ValueError):
    """Raised when a tensor does not have the shape an operation requires.

    Parameters
    ----------
    what : str
        Name of the offending tensor
    expected : tuple
        Expected shape; ``None`` entries match any size
    actual : tuple
        Shape that was supplied
    """

    def __init__(self, what: str, expected: Sequence, actual: Sequence):
        self.what = what
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        shown = tuple("*" if d is None else d for d in self.expected)
        super().__init__(
            f"Invalid {what} shape: expected {shown}, got {self.actual}"
        )


class SnapshotIOError(TRMError, OSError):
    """Raised when a model snapshot cannot be read or written."""


class SnapshotFormatError(TRMError, ValueError):
    """Raised when a model snapshot is malformed or inconsistent."""


def check_shape(what: str, tensor: torch.Tensor, expected: Sequence) -> None:
    """Raise :class:`ShapeMismatchError` unless ``tensor`` matches ``expected``.

    ``None`` in ``expected`` matches any size along that axis.
    """
    actual = tuple(tensor.shape)
    if len(actual) != len(expected) or any(
        e is not None and e != a for e, a in zip(expected, actual)
    ):
        raise ShapeMismatchError(what, expected, actual)


def as_matrix(data: Any) -> torch.Tensor:
    """Return ``data`` as a float32 tensor without tracking gradients."""
    if isinstance(data, torch.Tensor):
        return data.detach().to(torch.float32)
    return torch.as_tensor(np.asarray(data, dtype=np.float32))


def count_parameters(model: Any) -> int:
    """Count the learnable parameters of a Layer, Network or TRMModel.

    Examples
    --------
    >>> model = TRMModel(config)
    >>> print(f"{count_parameters(model):,} parameters")
    """
    return model.num_parameters()


def set_seed(seed: int) -> None:
    """Set random seeds for reproducibility.

    Sets seeds for:
    - Python's random module
    - NumPy
    - PyTorch

    Parameters
    ----------
    seed : int
        Random seed

    Examples
    --------
    >>> set_seed(42)
    >>> # Now results are reproducible
    """
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


def make_generator(seed: Optional[int] = None) -> Optional[torch.Generator]:
    """Create a seeded CPU generator, or ``None`` to use the global one."""
    if seed is None:
        return None
    generator = torch.Generator()
    generator.manual_seed(seed)
    return generator


# ----------------------------------------------------------------------
# Losses
# ----------------------------------------------------------------------

def _check_pair(predictions: torch.Tensor, targets: torch.Tensor) -> None:
    if predictions.shape != targets.shape:
        raise ShapeMismatchError(
            "targets", tuple(predictions.shape), tuple(targets.shape)
        )


def mse_loss(predictions: torch.Tensor, targets: torch.Tensor) -> float:
    """Mean squared error over all elements."""
    _check_pair(predictions, targets)
    return torch.mean((predictions - targets) ** 2).item()


def mae_loss(predictions: torch.Tensor, targets: torch.Tensor) -> float:
    """Mean absolute error over all elements."""
    _check_pair(predictions, targets)
    return torch.mean(torch.abs(predictions - targets)).item()


def mse_gradient(predictions: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
    """Gradient of :func:`mse_loss` w.r.t. predictions: 2(p - t) / n."""
    _check_pair(predictions, targets)
    return (predictions - targets) * (2.0 / predictions.numel())


def mae_gradient(predictions: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
    """Gradient of :func:`mae_loss` w.r.t. predictions: sign(p - t) / n."""
    _check_pair(predictions, targets)
    return torch.sign(predictions - targets) / predictions.numel()


def compute_loss(
    predictions: torch.Tensor,
    targets: torch.Tensor,
    loss_type: LossType = LossType.MSE
) -> float:
    """Compute the loss between predictions and targets.

    Parameters
    ----------
    predictions : torch.Tensor
        Model outputs [batch, output_dim]
    targets : torch.Tensor
        Targets [batch, output_dim]
    loss_type : LossType
        Which loss to compute

    Returns
    -------
    float
        Scalar loss

    Examples
    --------
    >>> compute_loss(torch.tensor([[1.0], [2.0]]), torch.tensor([[2.0], [3.0]]))
    1.0
    """
    if LossType(loss_type) is LossType.MAE:
        return mae_loss(predictions, targets)
    return mse_loss(predictions, targets)


def loss_gradient(
    predictions: torch.Tensor,
    targets: torch.Tensor,
    loss_type: LossType = LossType.MSE
) -> torch.Tensor:
    """Gradient of :func:`compute_loss` w.r.t. predictions."""
    if LossType(loss_type) is LossType.MAE:
        return mae_gradient(predictions, targets)
    return mse_gradient(predictions, targets)


# ----------------------------------------------------------------------
# Snapshot files
# ----------------------------------------------------------------------

def save_checkpoint(
    snapshot: Dict[str, Any],
    path: Union[str, Path] = "model.trm"
) -> None:
    """Write a snapshot dictionary as JSON.

    Parent directories are created as needed.

    Parameters
    ----------
    snapshot : dict
        JSON-serializable snapshot
    path : str or Path
        Save path

    Raises
    ------
    SnapshotIOError
        If the file cannot be written
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(snapshot, f)
    except OSError as exc:
        raise SnapshotIOError(f"Cannot write snapshot {path}: {exc}") from exc


def load_checkpoint(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON snapshot dictionary.

    Parameters
    ----------
    path : str or Path
        Snapshot path

    Returns
    -------
    dict
        The decoded snapshot

    Raises
    ------
    SnapshotIOError
        If the file cannot be read
    SnapshotFormatError
        If the file is not a JSON object
    """
    path = Path(path)
    try:
        with open(path) as f:
            text = f.read()
    except OSError as exc:
        raise SnapshotIOError(f"Cannot read snapshot {path}: {exc}") from exc

    try:
        snapshot = json.loads(text)
    except ValueError as exc:
        raise SnapshotFormatError(f"Snapshot {path} is not valid JSON: {exc}") from exc

    if not isinstance(snapshot, dict):
        raise SnapshotFormatError(f"Snapshot {path} must contain a JSON object")
    return snapshot
