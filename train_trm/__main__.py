"""
Main entry point for running TRM as a module.

Usage:
    python -m train_trm demo      # Run demo
    python -m train_trm train     # Train model
    python -m train_trm eval      # Evaluate a saved model
    python -m train_trm --help    # Show help
"""

import sys

from .cli import main


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Tiny Recursive Model")
        print("=" * 40)
        print("\nUsage:")
        print("  python -m train_trm demo     Run interactive demo")
        print("  python -m train_trm train    Train a model")
        print("  python -m train_trm eval     Evaluate a saved model")
        print("\nFor training options:")
        print("  python -m train_trm train --help")
        sys.exit(0)

    sys.exit(main(sys.argv[1:]))
