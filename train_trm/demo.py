"""
Demo Module
===========

Interactive demonstration of TRM architecture and capabilities.
"""

import torch
import time
from typing import Optional
from pathlib import Path

from .model import TRMModel
from .config import TRMConfig, TrainingConfig
from .data.tasks import CopyTask
from .data.maze import Maze
from .trainer import Trainer
from .utils import count_parameters


def print_header(text: str):
    """Print a formatted header."""
    print("\n" + "=" * 60)
    print(text)
    print("=" * 60)


def demo_architecture() -> TRMModel:
    """Demonstrate TRM architecture."""
    print_header("1. TRM Architecture Overview")

    config = TRMConfig(
        input_dim=5,
        output_dim=5,
        hidden_dim=16,
        latent_dim=16,
        l_layers=2,
        h_cycles=2,
        l_cycles=2,
    )

    model = TRMModel(config, seed=0)
    n_params = count_parameters(model)

    print(f"\nModel Configuration:")
    print(f"  Input dim: {config.input_dim}")
    print(f"  Output dim: {config.output_dim}")
    print(f"  Hidden dim: {config.hidden_dim}")
    print(f"  Latent dim: {config.latent_dim}")
    print(f"  Layers: {config.l_layers}")

    print(f"\nRecursion Parameters:")
    print(f"  H-cycles (outer): {config.h_cycles}")
    print(f"  L-cycles (inner): {config.l_cycles}")

    print(f"\nShared Network:")
    for i, layer in enumerate(model.network.layers):
        print(f"  Layer {i}: {layer.input_dim} -> {layer.output_dim} ({layer.activation.value})")
    print(f"  think input: x + y + z = {config.think_input_dim} columns")
    print(f"  act input:   y + z     = {config.act_input_dim} columns (zero-padded)")

    print(f"\nEffective depth: {config.effective_depth} layer applications per forward pass")
    print(f"Parameter Count: {n_params:,}")

    return model


def demo_forward_pass(model: TRMModel):
    """Demonstrate forward pass."""
    print_header("2. Forward Pass Demonstration")

    x = torch.linspace(-1.0, 1.0, model.config.input_dim).unsqueeze(0)
    print(f"\nInput: {[round(v, 3) for v in x[0].tolist()]}")

    y1 = model.forward(x)
    y2 = model.forward(x)
    print(f"Output: {[round(v, 3) for v in y1[0].tolist()]}")
    print(f"Deterministic across calls: {torch.equal(y1, y2)}")


def demo_training(model: TRMModel):
    """Train briefly on the copy task."""
    print_header("3. Training on the Copy Task")

    task = CopyTask(n_examples=100, dim=model.config.input_dim, seed=0)
    train_examples, val_examples = task.split(0.8)
    print(f"Training examples: {len(train_examples)}")
    print(f"Validation examples: {len(val_examples)}")

    trainer = Trainer(model, TrainingConfig(learning_rate=0.01, epochs=20, log_interval=5))

    start = time.time()
    metrics = trainer.train(train_examples, val_examples)
    elapsed = time.time() - start

    print(f"\nInitial loss: {metrics.initial_loss:.6f}")
    print(f"Final train loss: {metrics.final_loss:.6f}")
    print(f"Final validation loss: {metrics.val_losses[-1]:.6f}")
    print(f"Time: {elapsed:.1f}s")

    print("\nNote: updates only reach the final act step of the recursion,")
    print("so training improves the answer head more than the reasoning loop.")


def demo_maze():
    """Generate and solve a maze."""
    print_header("4. Maze Generation and Solving")

    maze = Maze.generate_random(11, 11, seed=0)
    maze.solve()
    print(f"\nSolution length: {len(maze.solution)} cells")
    print(maze.visualize())


def run_demo(checkpoint_path: Optional[str] = None):
    """Run the complete demo.

    Parameters
    ----------
    checkpoint_path : str, optional
        Path to a saved model snapshot
    """
    print("\n" + "=" * 60)
    print("   TINY RECURSIVE MODEL - DEMO")
    print("=" * 60)

    # Load or create model
    if checkpoint_path and Path(checkpoint_path).exists():
        print(f"\nLoading model from {checkpoint_path}...")
        model = TRMModel.load(checkpoint_path)
        print(f"Loaded model with {count_parameters(model):,} parameters")
        demo_forward_pass(model)
    else:
        model = demo_architecture()
        demo_forward_pass(model)
        demo_training(model)

    demo_maze()

    print_header("Demo Complete!")
    print("""
    Next Steps:
    ───────────
    1. Train: train-trm train --task copy --epochs 100
    2. Eval:  train-trm eval --model model.trm
    3. Read:  train_trm/model.py
    """)


if __name__ == "__main__":
    run_demo()
