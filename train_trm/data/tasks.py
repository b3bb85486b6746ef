"""
Synthetic Tasks for TRM
=======================

Small regression tasks for checking that the model and trainer work.

- CopyTask: reproduce the input vector
- SequenceTask: predict the next term of an arithmetic sequence

Usage:
    python -m train_trm.data.tasks  # Generate and print a few examples
"""

import torch
import numpy as np
from typing import Optional
from .base import BaseTask, TrainingExample


class CopyTask(BaseTask):
    """Copy the input to the output.

    Useful for testing whether the model can learn a basic mapping.
    Values are drawn uniformly from [-1, 1), inside the range of the
    model's Tanh output layer.

    Parameters
    ----------
    n_examples : int
        Number of examples to generate
    dim : int
        Width of input and target
    seed : int, optional
        Random seed

    Examples
    --------
    >>> task = CopyTask(n_examples=100, dim=5, seed=0)
    >>> x, y = task[0]
    >>> torch.equal(x, y)
    True
    """

    def __init__(self, n_examples: int = 100, dim: int = 5, seed: Optional[int] = None):
        rng = np.random.default_rng(seed)
        self.dim = dim
        self._examples = []

        for _ in range(n_examples):
            values = torch.from_numpy(
                rng.uniform(-1.0, 1.0, size=(1, dim)).astype(np.float32)
            )
            self._examples.append(TrainingExample(values, values.clone()))

    @property
    def input_dim(self) -> int:
        return self.dim

    @property
    def output_dim(self) -> int:
        return self.dim

    def validate_solution(self, output: torch.Tensor, target: torch.Tensor) -> bool:
        """Correct if the mean squared error is below 0.01."""
        return torch.mean((output - target) ** 2).item() < 0.01


class SequenceTask(BaseTask):
    """Predict the next element of an arithmetic sequence.

    Input: a, a+d, ..., a+(n-1)d
    Target: a+nd

    Starts are drawn from [-10, 10) and steps from [-2, 2).

    Parameters
    ----------
    n_examples : int
        Number of examples to generate
    sequence_length : int
        Number of terms in each input
    seed : int, optional
        Random seed

    Examples
    --------
    >>> task = SequenceTask(n_examples=10, sequence_length=5)
    >>> task.input_dim, task.output_dim
    (5, 1)
    """

    def __init__(
        self,
        n_examples: int = 100,
        sequence_length: int = 5,
        seed: Optional[int] = None
    ):
        rng = np.random.default_rng(seed)
        self.sequence_length = sequence_length
        self._examples = []

        for _ in range(n_examples):
            start = rng.uniform(-10.0, 10.0)
            step = rng.uniform(-2.0, 2.0)
            sequence = (start + step * np.arange(sequence_length + 1)).astype(np.float32)

            x = torch.from_numpy(sequence[:sequence_length].copy()).unsqueeze(0)
            y = torch.from_numpy(sequence[sequence_length:].copy()).unsqueeze(0)
            self._examples.append(TrainingExample(x, y))

    @property
    def input_dim(self) -> int:
        return self.sequence_length

    @property
    def output_dim(self) -> int:
        return 1

    def validate_solution(self, output: torch.Tensor, target: torch.Tensor) -> bool:
        """Correct if the error is below 10% of max(|target|, 1)."""
        error = abs(output[0, 0].item() - target[0, 0].item())
        return error / max(abs(target[0, 0].item()), 1.0) < 0.1


if __name__ == "__main__":
    print("=" * 60)
    print("Synthetic Task Test")
    print("=" * 60)

    copy = CopyTask(n_examples=5, dim=3, seed=42)
    print(f"\nCopy task: {len(copy)} examples, dim={copy.input_dim}")
    for i in range(3):
        print(f"  {copy.visualize(i)}")

    seq = SequenceTask(n_examples=5, sequence_length=4, seed=42)
    print(f"\nSequence task: {len(seq)} examples, length={seq.input_dim}")
    for i in range(3):
        print(f"  {seq.visualize(i)}")

    train, val = seq.split(0.8)
    print(f"\nSplit 0.8: {len(train)} train / {len(val)} val")
