"""
Maze Task for TRM
=================

Perfect mazes carved by recursive backtracking, solved with BFS.

Task: Given a maze with start (S) and goal (G), mark the cells of the
shortest path.

Grid encoding (model input):
- 0.00: Wall
- 0.25: Open cell
- 0.50: Start (S)
- 1.00: Goal (G)

Target: 1.0 on every cell of the solution path (start and goal included),
0.0 elsewhere.

Usage:
    python -m train_trm.data.maze  # Generate and print a maze
"""

import torch
import numpy as np
from collections import deque
from enum import Enum
from typing import Dict, List, Optional, Tuple
from .base import BaseTask, TrainingExample


Position = Tuple[int, int]


class Cell(Enum):
    """Cell type, valued by its numeric encoding."""

    WALL = 0.0
    PATH = 0.25
    START = 0.5
    GOAL = 1.0

    @classmethod
    def from_value(cls, value: float) -> "Cell":
        """Decode a (possibly noisy) numeric value to the nearest cell type."""
        if value < 0.125:
            return cls.WALL
        if value < 0.375:
            return cls.PATH
        if value < 0.75:
            return cls.START
        return cls.GOAL


class Direction(Enum):
    """Move between neighbouring cells, valued by (row, col) delta."""

    UP = (-1, 0)
    DOWN = (1, 0)
    LEFT = (0, -1)
    RIGHT = (0, 1)


class Maze:
    """A rectangular maze grid.

    A new maze is all walls; use :meth:`generate_random` to carve one.
    Start sits at (1, 1) and goal at (height - 2, width - 2).

    Parameters
    ----------
    width : int
        Number of columns (odd, at least 5)
    height : int
        Number of rows (odd, at least 5)

    Examples
    --------
    >>> maze = Maze.generate_random(11, 11, seed=0)
    >>> maze.solve()
    True
    >>> maze.solution[0] == maze.start
    True
    """

    def __init__(self, width: int, height: int):
        if width < 5 or height < 5 or width % 2 == 0 or height % 2 == 0:
            raise ValueError(
                f"Maze dimensions must be odd and at least 5, got {width}x{height}"
            )
        self.width = width
        self.height = height
        self.grid = [[Cell.WALL] * width for _ in range(height)]
        self.start: Position = (1, 1)
        self.goal: Position = (height - 2, width - 2)
        self.solution: Optional[List[Position]] = None

    @classmethod
    def generate_random(
        cls,
        width: int,
        height: int,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None
    ) -> "Maze":
        """Carve a perfect maze with depth-first recursive backtracking.

        The recursion is run on an explicit stack, so large mazes do not
        hit the interpreter's recursion limit.
        """
        rng = rng if rng is not None else np.random.default_rng(seed)
        maze = cls(width, height)

        maze.grid[1][1] = Cell.PATH
        stack = [(1, 1)]
        while stack:
            r, c = stack[-1]
            candidates = []
            for direction in Direction:
                dr, dc = direction.value
                nr, nc = r + 2 * dr, c + 2 * dc
                if 0 < nr < height - 1 and 0 < nc < width - 1 and maze.grid[nr][nc] is Cell.WALL:
                    candidates.append((nr, nc, r + dr, c + dc))

            if not candidates:
                stack.pop()
                continue

            nr, nc, mr, mc = candidates[rng.integers(len(candidates))]
            maze.grid[mr][mc] = Cell.PATH
            maze.grid[nr][nc] = Cell.PATH
            stack.append((nr, nc))

        maze.grid[maze.start[0]][maze.start[1]] = Cell.START
        maze.grid[maze.goal[0]][maze.goal[1]] = Cell.GOAL
        return maze

    def solve(self) -> bool:
        """Find the shortest start-to-goal path using BFS.

        Stores the path (start and goal included) in ``self.solution``.

        Returns
        -------
        bool
            True if the goal is reachable
        """
        queue = deque([self.start])
        parent: Dict[Position, Optional[Position]] = {self.start: None}

        while queue:
            r, c = queue.popleft()

            if (r, c) == self.goal:
                path = []
                current: Optional[Position] = self.goal
                while current is not None:
                    path.append(current)
                    current = parent[current]
                path.reverse()
                self.solution = path
                return True

            # Check neighbors (4-connected)
            for direction in Direction:
                dr, dc = direction.value
                nr, nc = r + dr, c + dc
                if 0 <= nr < self.height and 0 <= nc < self.width:
                    if (nr, nc) not in parent and self.grid[nr][nc] is not Cell.WALL:
                        parent[(nr, nc)] = (r, c)
                        queue.append((nr, nc))

        self.solution = None
        return False

    def to_array(self) -> np.ndarray:
        """Flattened numeric encoding of the grid, row-major."""
        return np.array(
            [cell.value for row in self.grid for cell in row], dtype=np.float32
        )

    def solution_mask(self) -> np.ndarray:
        """Flattened 0/1 mask of the solution path, row-major."""
        if self.solution is None:
            raise ValueError("Maze has not been solved")
        mask = np.zeros((self.height, self.width), dtype=np.float32)
        for r, c in self.solution:
            mask[r, c] = 1.0
        return mask.flatten()

    def solution_to_directions(self) -> Optional[List[Direction]]:
        """Moves along the solution path, or None if unsolved."""
        if self.solution is None:
            return None
        moves = {d.value: d for d in Direction}
        return [
            moves[(r2 - r1, c2 - c1)]
            for (r1, c1), (r2, c2) in zip(self.solution, self.solution[1:])
        ]

    def visualize(self) -> str:
        """ASCII rendering; solution cells are shown as '·'."""
        chars = {
            Cell.WALL: '█',
            Cell.PATH: ' ',
            Cell.START: 'S',
            Cell.GOAL: 'G',
        }
        on_path = set(self.solution or [])
        lines = []
        for r, row in enumerate(self.grid):
            lines.append(''.join(
                '·' if (r, c) in on_path and cell is Cell.PATH else chars[cell]
                for c, cell in enumerate(row)
            ))
        return '\n'.join(lines)


class MazeTask(BaseTask):
    """Maze solving task.

    Each example maps a maze encoding [1, width*height] to its solution
    mask [1, width*height].

    Parameters
    ----------
    n_mazes : int
        Number of mazes to generate
    width : int
        Maze width (odd, at least 5)
    height : int
        Maze height (odd, at least 5)
    seed : int, optional
        Random seed

    Examples
    --------
    >>> task = MazeTask(n_mazes=10, width=7, height=7, seed=0)
    >>> x, y = task[0]
    >>> x.shape, y.shape
    (torch.Size([1, 49]), torch.Size([1, 49]))
    """

    def __init__(
        self,
        n_mazes: int = 100,
        width: int = 7,
        height: int = 7,
        seed: Optional[int] = None
    ):
        rng = np.random.default_rng(seed)
        self.width = width
        self.height = height
        self.mazes: List[Maze] = []
        self._examples = []

        for _ in range(n_mazes):
            maze = Maze.generate_random(width, height, rng=rng)
            maze.solve()
            self.mazes.append(maze)
            self._examples.append(TrainingExample(
                torch.from_numpy(maze.to_array()).unsqueeze(0),
                torch.from_numpy(maze.solution_mask()).unsqueeze(0),
            ))

    @property
    def input_dim(self) -> int:
        return self.width * self.height

    @property
    def output_dim(self) -> int:
        return self.width * self.height

    def validate_solution(self, output: torch.Tensor, target: torch.Tensor) -> bool:
        """Correct if thresholding the output at 0.5 gives the exact path mask."""
        return torch.equal((output > 0.5).to(target.dtype), target)

    def visualize(self, idx: int) -> str:
        maze = self.mazes[idx]
        return (
            f"Maze (path length: {len(maze.solution)}):\n"
            f"{maze.visualize()}"
        )


if __name__ == "__main__":
    print("=" * 60)
    print("Maze Task Test")
    print("=" * 60)

    task = MazeTask(n_mazes=3, width=11, height=11, seed=42)
    print(f"Task size: {len(task)}")
    print(f"Input dim: {task.input_dim}")

    print("\nSample maze:")
    print(task.visualize(0))

    x, y = task[0]
    print(f"\nTensor shapes: input={tuple(x.shape)}, target={tuple(y.shape)}")
