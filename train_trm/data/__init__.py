"""
Data Module
===========

Example containers and task implementations.

Tasks:
- Copy: reproduce the input vector
- Sequence: predict the next term of an arithmetic sequence
- Maze: mark the shortest path through a generated maze
"""

from .base import BaseTask, TrainingExample
from .tasks import CopyTask, SequenceTask
from .maze import Cell, Direction, Maze, MazeTask

__all__ = [
    "BaseTask",
    "TrainingExample",
    # Synthetic
    "CopyTask",
    "SequenceTask",
    # Maze
    "Cell",
    "Direction",
    "Maze",
    "MazeTask",
]
