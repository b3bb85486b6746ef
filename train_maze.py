#!/usr/bin/env python3
"""
Train TRM on Mazes
==================

Maze path-marking task: input is the encoded maze, target is the 0/1 mask
of the shortest path from S to G.

Usage:
    python train_maze.py
    python train_maze.py --size 9 --epochs 200 --n-train 300
"""

import argparse

from train_trm.model import TRMModel
from train_trm.config import TRMConfig, TrainingConfig
from train_trm.trainer import Trainer
from train_trm.data.maze import MazeTask
from train_trm.utils import set_seed, count_parameters


def main():
    parser = argparse.ArgumentParser(description="Train TRM on mazes")
    parser.add_argument("--epochs", type=int, default=100, help="Training epochs")
    parser.add_argument("--n-train", type=int, default=200, help="Number of mazes")
    parser.add_argument("--size", type=int, default=7, help="Maze width and height (odd)")
    parser.add_argument("--lr", type=float, default=0.01, help="Learning rate")
    parser.add_argument("--hidden-dim", type=int, default=128, help="Hidden dimension")
    parser.add_argument("--latent-dim", type=int, default=64, help="Latent dimension")
    parser.add_argument("--output", type=str, default="maze.trm", help="Output model path")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    set_seed(args.seed)

    # Create data
    print("\nCreating mazes...")
    task = MazeTask(n_mazes=args.n_train, width=args.size, height=args.size, seed=args.seed)
    train_examples, val_examples = task.split(0.8)

    print(f"Train mazes: {len(train_examples)}")
    print(f"Validation mazes: {len(val_examples)}")
    print("\nSample maze:")
    print(task.visualize(0))

    # Create model
    model_config = TRMConfig(
        input_dim=task.input_dim,
        output_dim=task.output_dim,
        hidden_dim=args.hidden_dim,
        latent_dim=args.latent_dim,
        l_layers=2,
        h_cycles=3,
        l_cycles=4,
    )
    model = TRMModel(model_config, seed=args.seed)
    print(f"\nModel parameters: {count_parameters(model):,}")

    # Train
    train_config = TrainingConfig(
        learning_rate=args.lr,
        epochs=args.epochs,
        log_interval=10,
        seed=args.seed
    )
    trainer = Trainer(model, train_config)
    trainer.train(train_examples, val_examples)

    # Solve rate on held-out mazes
    solved = 0
    for x, y in val_examples:
        solved += task.validate_solution(model.forward(x), y)
    print(f"\nSolved {solved}/{len(val_examples)} validation mazes")

    model.save(args.output)
    print(f"Saved model to {args.output}")


if __name__ == "__main__":
    main()
