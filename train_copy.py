#!/usr/bin/env python3
"""
Train TRM on the Copy Task
==========================

The simplest task: reproduce the input vector. Shows the full
train / evaluate / save / load cycle.

Usage:
    python train_copy.py
    python train_copy.py --epochs 200 --lr 0.02
"""

import argparse

import torch

from train_trm.model import TRMModel
from train_trm.config import TRMConfig, TrainingConfig
from train_trm.trainer import Trainer
from train_trm.data.tasks import CopyTask
from train_trm.utils import set_seed, count_parameters


def main():
    parser = argparse.ArgumentParser(description="Train TRM on the copy task")
    parser.add_argument("--epochs", type=int, default=50, help="Training epochs")
    parser.add_argument("--n-train", type=int, default=100, help="Number of examples")
    parser.add_argument("--dim", type=int, default=5, help="Vector width")
    parser.add_argument("--lr", type=float, default=0.01, help="Learning rate")
    parser.add_argument("--output", type=str, default="copy.trm", help="Output model path")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    set_seed(args.seed)

    print(f"Creating copy task with {args.n_train} examples (dim={args.dim})...")
    task = CopyTask(n_examples=args.n_train, dim=args.dim, seed=args.seed)
    train_examples, val_examples = task.split(0.8)
    print(f"Training examples: {len(train_examples)}")
    print(f"Validation examples: {len(val_examples)}")

    model_config = TRMConfig(
        input_dim=args.dim,
        output_dim=args.dim,
        hidden_dim=16,
        latent_dim=16,
        l_layers=2,
        h_cycles=2,
        l_cycles=2,
    )
    model = TRMModel(model_config, seed=args.seed)
    print(f"\nModel created with {count_parameters(model):,} parameters")

    trainer = Trainer(model, TrainingConfig(learning_rate=args.lr, epochs=args.epochs))

    print(f"Initial validation loss: {trainer.evaluate(val_examples):.6f}\n")
    metrics = trainer.train(train_examples)
    print(f"\nFinal validation loss: {trainer.evaluate(val_examples):.6f}")
    print(f"Train loss: {metrics.initial_loss:.6f} -> {metrics.final_loss:.6f}")

    # Round-trip through a snapshot
    model.save(args.output)
    restored = TRMModel.load(args.output)
    x = val_examples[0].input
    print(f"\nSaved to {args.output}; reload matches: "
          f"{torch.equal(model.forward(x), restored.forward(x))}")


if __name__ == "__main__":
    main()
