"""
Command Line Interface
======================

CLI for training and evaluating TRM models.

Usage:
    train-trm train --task copy --epochs 100 --output model.trm
    train-trm eval --model model.trm
    train-trm eval --model model.trm --input row.txt
    train-trm demo
"""

import argparse
import sys
from pathlib import Path

from .tasks import list_tasks


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="train-trm",
        description="Tiny Recursive Model training and inference"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Train command
    train_parser = subparsers.add_parser("train", help="Train a TRM model")
    train_parser.add_argument(
        "--task", type=str, default="copy",
        choices=list_tasks(),
        help="Task to train on"
    )
    train_parser.add_argument(
        "-l", "--layers", type=int, default=None,
        help="Number of hidden ReLU layers (default: task preset)"
    )
    train_parser.add_argument(
        "--h-cycles", type=int, default=None,
        help="Number of outer cycles H (default: task preset)"
    )
    train_parser.add_argument(
        "--l-cycles", type=int, default=None,
        help="Number of inner cycles L (default: task preset)"
    )
    train_parser.add_argument(
        "--hidden-dim", type=int, default=None,
        help="Hidden dimension (default: task preset)"
    )
    train_parser.add_argument(
        "--latent-dim", type=int, default=None,
        help="Latent dimension (default: task preset)"
    )
    train_parser.add_argument(
        "--lr", type=float, default=0.001,
        help="Learning rate"
    )
    train_parser.add_argument(
        "-e", "--epochs", type=int, default=100,
        help="Number of training epochs"
    )
    train_parser.add_argument(
        "--loss", type=str, default="mse",
        choices=["mse", "mae"],
        help="Loss function"
    )
    train_parser.add_argument(
        "--n-train", type=int, default=100,
        help="Number of examples to generate (80%% train, 20%% validation)"
    )
    train_parser.add_argument(
        "--no-update", action="store_true",
        help="Only run forward passes (no weight updates)"
    )
    train_parser.add_argument(
        "-o", "--output", type=str, default="model.trm",
        help="Output model path"
    )
    train_parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed"
    )

    # Eval command
    eval_parser = subparsers.add_parser("eval", help="Evaluate a trained model")
    eval_parser.add_argument(
        "-m", "--model", type=str, required=True,
        help="Model path"
    )
    eval_parser.add_argument(
        "-i", "--input", type=str, default=None,
        help="File with one input row per line (whitespace or comma separated)"
    )
    eval_parser.add_argument(
        "--task", type=str, default="copy",
        choices=list_tasks(),
        help="Task used for validation when no input file is given"
    )
    eval_parser.add_argument(
        "--n-eval", type=int, default=20,
        help="Number of validation examples"
    )
    eval_parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed"
    )

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run architecture demo")
    demo_parser.add_argument(
        "--checkpoint", type=str, default=None,
        help="Path to model snapshot"
    )

    return parser


def main(argv=None):
    """Main CLI entry point."""
    from .utils import TRMError

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "train": run_train,
        "eval": run_eval,
        "demo": run_demo,
    }

    try:
        commands[args.command](args)
    except (TRMError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def run_train(args):
    """Run training."""
    from dataclasses import replace
    from .trainer import train
    from .config import TrainingConfig, get_preset_config

    preset = get_preset_config(args.task)
    overrides = {
        "l_layers": args.layers,
        "h_cycles": args.h_cycles,
        "l_cycles": args.l_cycles,
        "hidden_dim": args.hidden_dim,
        "latent_dim": args.latent_dim,
    }
    model_config = replace(
        preset, **{k: v for k, v in overrides.items() if v is not None}
    )

    train_config = TrainingConfig(
        learning_rate=args.lr,
        epochs=args.epochs,
        loss_type=args.loss,
        apply_updates=not args.no_update,
        seed=args.seed
    )

    print("Training TRM model...")
    print(f"  Task: {args.task}")
    print(f"  Layers: {model_config.l_layers}")
    print(f"  H-cycles: {model_config.h_cycles}")
    print(f"  L-cycles: {model_config.l_cycles}")
    print(f"  Learning rate: {train_config.learning_rate}")
    print(f"  Epochs: {train_config.epochs}")
    print(f"  Output: {args.output}")

    train(
        task=args.task,
        model_config=model_config,
        train_config=train_config,
        n_examples=args.n_train,
        output=args.output
    )


def read_rows(path: str):
    """Parse one numeric row per non-empty line of a text file."""
    rows = []
    for line in Path(path).read_text().splitlines():
        line = line.replace(",", " ").strip()
        if line:
            rows.append([float(v) for v in line.split()])
    return rows


def run_eval(args):
    """Evaluate a model on an input file or on a generated task."""
    from .model import TRMModel
    from .tasks import create_task
    from .trainer import Trainer
    from .config import TrainingConfig

    print(f"Evaluating model: {args.model}")
    model = TRMModel.load(args.model)
    print(f"  Parameters: {model.num_parameters():,}")

    if args.input:
        print(f"  Input: {args.input}")
        output = model.forward(read_rows(args.input))
        print("Prediction:")
        for row in output.tolist():
            print("  " + " ".join(f"{v:.4f}" for v in row))
        return

    task = create_task(args.task, args.n_eval, seed=args.seed)
    trainer = Trainer(model, TrainingConfig())
    loss = trainer.evaluate(task.examples())
    solved = sum(
        task.validate_solution(model.forward(x), y) for x, y in task.examples()
    )
    print(f"  Task: {args.task}")
    print(f"  Loss: {loss:.6f}")
    print(f"  Solved: {solved}/{len(task)}")


def run_demo(args):
    """Run demo."""
    from .demo import run_demo as demo_main
    demo_main(checkpoint_path=args.checkpoint)


if __name__ == "__main__":
    sys.exit(main())
