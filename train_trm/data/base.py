"""
Base Task Class
===============

Abstract base class for TRM tasks with common utilities.
"""

from abc import ABC, abstractmethod
from typing import List, NamedTuple, Tuple
import torch
from torch.utils.data import Dataset


class TrainingExample(NamedTuple):
    """An (input, target) pair with matching batch dimension.

    Attributes
    ----------
    input : torch.Tensor
        Input tensor [batch, input_dim]
    target : torch.Tensor
        Target tensor [batch, output_dim]
    """

    input: torch.Tensor
    target: torch.Tensor


class BaseTask(Dataset, ABC):
    """Abstract base class for TRM tasks.

    A task owns a list of :class:`TrainingExample` pairs. Extend this class
    to create new tasks.

    Required Methods
    ----------------
    input_dim : Width of each input row
    output_dim : Width of each target row
    validate_solution : Check a model output against a target

    Examples
    --------
    >>> class NegateTask(BaseTask):
    ...     def __init__(self, n_examples, dim):
    ...         self.dim = dim
    ...         self._examples = []
    ...         for _ in range(n_examples):
    ...             x = torch.rand(1, dim)
    ...             self._examples.append(TrainingExample(x, -x))
    ...
    ...     @property
    ...     def input_dim(self):
    ...         return self.dim
    ...
    ...     @property
    ...     def output_dim(self):
    ...         return self.dim
    ...
    ...     def validate_solution(self, output, target):
    ...         return torch.allclose(output, target, atol=0.1)
    """

    _examples: List[TrainingExample]

    def examples(self) -> List[TrainingExample]:
        """Return all examples."""
        return self._examples

    def __len__(self) -> int:
        """Return the number of examples in the task."""
        return len(self._examples)

    def __getitem__(self, idx: int) -> Tuple[torch.Tensor, torch.Tensor]:
        """Return (input, target) for an example."""
        return self._examples[idx]

    @property
    @abstractmethod
    def input_dim(self) -> int:
        """Width of each input row.

        This determines the model's input_dim config.
        """

    @property
    @abstractmethod
    def output_dim(self) -> int:
        """Width of each target row.

        This determines the model's output_dim config.
        """

    @abstractmethod
    def validate_solution(self, output: torch.Tensor, target: torch.Tensor) -> bool:
        """Return True if ``output`` counts as a correct answer for ``target``."""

    def split(self, train_ratio: float) -> Tuple[List[TrainingExample], List[TrainingExample]]:
        """Split examples into training and validation lists.

        Parameters
        ----------
        train_ratio : float
            Fraction of examples (rounded down) used for training

        Returns
        -------
        Tuple[list, list]
            (train_examples, val_examples)
        """
        train_size = int(len(self._examples) * train_ratio)
        return list(self._examples[:train_size]), list(self._examples[train_size:])

    def visualize(self, idx: int) -> str:
        """Create a string visualization of an example.

        Override for task-specific visualization.
        """
        x, y = self._examples[idx]
        return f"{x.tolist()} -> {y.tolist()}"
