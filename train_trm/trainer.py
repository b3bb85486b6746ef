"""
Training Module
===============

Per-example training and evaluation for TRM.

Each training step runs the full recursive forward pass, computes the
loss, and (if ``apply_updates`` is set) feeds the loss gradient to
``TRMModel.backward_and_update``. That update only reaches the final act
invocation of the recursion.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .config import TRMConfig, TrainingConfig, get_preset_config
from .data.base import TrainingExample
from .model import TRMModel
from .tasks import create_task
from .utils import compute_loss, count_parameters, loss_gradient, set_seed


@dataclass
class TrainingMetrics:
    """Loss history of a training run.

    Attributes
    ----------
    losses : list of float
        Initial loss followed by the mean training loss of each epoch
    initial_loss : float
        Loss before the first epoch
    final_loss : float
        Last entry of ``losses``
    val_losses : list of float
        Validation loss after each epoch (empty without validation data)
    """

    losses: List[float] = field(default_factory=list)
    initial_loss: float = 0.0
    final_loss: float = 0.0
    val_losses: List[float] = field(default_factory=list)


class Trainer:
    """Trainer for Tiny Recursive Model.

    Parameters
    ----------
    model : TRMModel
        Model to train
    train_config : TrainingConfig
        Training configuration

    Examples
    --------
    >>> model = TRMModel(model_config)
    >>> trainer = Trainer(model, TrainingConfig(epochs=50, learning_rate=0.01))
    >>> metrics = trainer.train(train_examples, val_examples)
    """

    def __init__(self, model: TRMModel, train_config: TrainingConfig):
        self.model = model
        self.config = train_config

    def train_step(self, example: TrainingExample) -> float:
        """Forward, loss and optional update for one example.

        Returns
        -------
        float
            Loss before the update
        """
        prediction = self.model.forward(example.input)
        loss = compute_loss(prediction, example.target, self.config.loss_type)

        if self.config.apply_updates:
            grad = loss_gradient(prediction, example.target, self.config.loss_type)
            self.model.backward_and_update(grad, self.config.learning_rate)

        return loss

    def train_epoch(self, examples: Sequence[TrainingExample]) -> float:
        """Run one pass over ``examples``.

        Returns
        -------
        float
            Mean pre-update loss over the epoch
        """
        if not examples:
            raise ValueError("Cannot train on an empty example list")

        total_loss = 0.0
        for example in examples:
            total_loss += self.train_step(example)
        return total_loss / len(examples)

    def evaluate(self, examples: Sequence[TrainingExample]) -> float:
        """Mean loss over ``examples``; weights are left untouched.

        Parameters
        ----------
        examples : sequence of TrainingExample
            Evaluation data

        Returns
        -------
        float
            Mean loss
        """
        if not examples:
            raise ValueError("Cannot evaluate on an empty example list")

        total_loss = 0.0
        for example in examples:
            prediction = self.model.forward(example.input)
            total_loss += compute_loss(prediction, example.target, self.config.loss_type)
        return total_loss / len(examples)

    def train(
        self,
        examples: Sequence[TrainingExample],
        val_examples: Optional[Sequence[TrainingExample]] = None
    ) -> TrainingMetrics:
        """Run the full training loop.

        Parameters
        ----------
        examples : sequence of TrainingExample
            Training data
        val_examples : sequence of TrainingExample, optional
            Validation data, evaluated after every epoch

        Returns
        -------
        TrainingMetrics
            Loss history
        """
        initial_loss = self.evaluate(examples)
        metrics = TrainingMetrics(losses=[initial_loss], initial_loss=initial_loss)

        print(f"Training for {self.config.epochs} epochs...")
        print(f"Parameters: {count_parameters(self.model):,}")
        print(f"Initial loss: {initial_loss:.6f}")

        for epoch in range(self.config.epochs):
            epoch_start = time.time()
            epoch_loss = self.train_epoch(examples)
            metrics.losses.append(epoch_loss)

            if val_examples:
                metrics.val_losses.append(self.evaluate(val_examples))

            if self.config.log_interval and epoch % self.config.log_interval == 0:
                line = f"Epoch {epoch}: loss = {epoch_loss:.6f}"
                if metrics.val_losses:
                    line += f" | val = {metrics.val_losses[-1]:.6f}"
                line += f" | {time.time() - epoch_start:.2f}s"
                print(line)

        metrics.final_loss = metrics.losses[-1]
        print(f"Final loss: {metrics.final_loss:.6f}")
        return metrics


def train(
    task: str = "copy",
    model_config: Optional[TRMConfig] = None,
    train_config: Optional[TrainingConfig] = None,
    n_examples: int = 100,
    train_ratio: float = 0.8,
    output: Optional[str] = None,
    **kwargs
) -> Dict[str, Any]:
    """High-level training function.

    Parameters
    ----------
    task : str
        Registered task name ('copy', 'sequence', 'maze')
    model_config : TRMConfig, optional
        Model configuration (uses preset if None)
    train_config : TrainingConfig, optional
        Training configuration (uses defaults if None)
    n_examples : int
        Number of examples to generate
    train_ratio : float
        Fraction of examples used for training
    output : str, optional
        Path to save the trained model snapshot
    **kwargs
        Override training config values

    Returns
    -------
    Dict[str, Any]
        Trained model, metrics and final validation loss

    Examples
    --------
    >>> results = train(task='copy', epochs=50, learning_rate=0.01)
    """
    # Get configs
    if model_config is None:
        model_config = get_preset_config(task)

    if train_config is None:
        train_config = TrainingConfig()

    # Apply kwargs overrides
    for key, value in kwargs.items():
        if hasattr(train_config, key):
            setattr(train_config, key, value)

    if train_config.seed is not None:
        set_seed(train_config.seed)

    # Create data
    dataset = create_task(task, n_examples, seed=train_config.seed)
    if (dataset.input_dim, dataset.output_dim) != (model_config.input_dim, model_config.output_dim):
        raise ValueError(
            f"Task '{task}' is {dataset.input_dim} -> {dataset.output_dim}, "
            f"model is {model_config.input_dim} -> {model_config.output_dim}"
        )
    train_examples, val_examples = dataset.split(train_ratio)

    print(f"Train examples: {len(train_examples)}")
    print(f"Validation examples: {len(val_examples)}")

    # Create model
    model = TRMModel(model_config, seed=train_config.seed)

    # Create trainer and train
    trainer = Trainer(model, train_config)
    metrics = trainer.train(train_examples, val_examples)

    val_loss = trainer.evaluate(val_examples) if val_examples else None
    if val_loss is not None:
        print(f"Final validation loss: {val_loss:.6f}")

    if output:
        model.save(output)
        print(f"Saved model to {output}")

    return {
        "model": model,
        "metrics": metrics,
        "val_loss": val_loss,
    }
