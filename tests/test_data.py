"""
Tests for tasks and the task registry
=====================================

Run with: pytest tests/
"""

import pytest
import torch
import numpy as np

from train_trm.config import get_preset_config
from train_trm.data import (
    BaseTask,
    Cell,
    CopyTask,
    Direction,
    Maze,
    MazeTask,
    SequenceTask,
    TrainingExample,
)
from train_trm.tasks import create_task, get_task, list_tasks, register_task


class TestCopyTask:
    """Tests for CopyTask."""

    def test_size_and_shapes(self):
        task = CopyTask(n_examples=12, dim=4, seed=0)
        assert len(task) == 12
        assert task.input_dim == 4
        assert task.output_dim == 4
        x, y = task[0]
        assert x.shape == (1, 4)
        assert y.shape == (1, 4)
        assert x.dtype == torch.float32

    def test_target_is_input(self):
        task = CopyTask(n_examples=5, dim=3, seed=1)
        for x, y in task.examples():
            assert torch.equal(x, y)
            assert x is not y

    def test_value_range(self):
        task = CopyTask(n_examples=50, dim=5, seed=2)
        values = torch.cat([x for x, _ in task.examples()])
        assert values.min().item() >= -1.0
        assert values.max().item() <= 1.0

    def test_seeded(self):
        a = CopyTask(n_examples=5, seed=7)
        b = CopyTask(n_examples=5, seed=7)
        for (xa, _), (xb, _) in zip(a.examples(), b.examples()):
            assert torch.equal(xa, xb)

    def test_validate_solution(self):
        task = CopyTask(n_examples=1, dim=3, seed=0)
        x, y = task[0]
        assert task.validate_solution(y, y)
        assert task.validate_solution(y + 0.05, y)
        assert not task.validate_solution(y + 0.5, y)

    def test_split(self):
        task = CopyTask(n_examples=100, seed=0)
        train, val = task.split(0.8)
        assert len(train) == 80
        assert len(val) == 20
        assert torch.equal(train[0].input, task[0].input)
        assert torch.equal(val[0].input, task[80].input)

    def test_split_rounds_down(self):
        task = CopyTask(n_examples=9, seed=0)
        train, val = task.split(0.5)
        assert len(train) == 4
        assert len(val) == 5

    def test_is_dataset(self):
        task = CopyTask(n_examples=3)
        assert isinstance(task, BaseTask)
        assert isinstance(task[0], TrainingExample)


class TestSequenceTask:
    """Tests for SequenceTask."""

    def test_shapes(self):
        task = SequenceTask(n_examples=10, sequence_length=4, seed=0)
        assert task.input_dim == 4
        assert task.output_dim == 1
        x, y = task[0]
        assert x.shape == (1, 4)
        assert y.shape == (1, 1)

    def test_arithmetic(self):
        task = SequenceTask(n_examples=20, sequence_length=5, seed=0)
        for x, y in task.examples():
            steps = x[0, 1:] - x[0, :-1]
            assert torch.allclose(steps, steps[0].expand_as(steps), atol=1e-4)
            assert y[0, 0].item() == pytest.approx(x[0, -1].item() + steps[0].item(), abs=1e-4)

    def test_validate_solution(self):
        task = SequenceTask(n_examples=1)
        target = torch.tensor([[10.0]])
        assert task.validate_solution(torch.tensor([[10.5]]), target)
        assert not task.validate_solution(torch.tensor([[12.0]]), target)
        # Small targets are judged on an absolute scale
        assert task.validate_solution(torch.tensor([[0.05]]), torch.tensor([[0.0]]))


class TestMaze:
    """Tests for maze generation and solving."""

    def test_rejects_even_or_small(self):
        with pytest.raises(ValueError):
            Maze(6, 7)
        with pytest.raises(ValueError):
            Maze(3, 3)

    def test_new_maze_is_walls(self):
        maze = Maze(5, 5)
        assert all(cell is Cell.WALL for row in maze.grid for cell in row)
        assert not maze.solve()
        assert maze.solution is None
        assert maze.solution_to_directions() is None

    @pytest.mark.parametrize("size", [5, 7, 11, 21])
    def test_generated_maze_is_solvable(self, size):
        maze = Maze.generate_random(size, size, seed=size)
        assert maze.grid[1][1] is Cell.START
        assert maze.grid[size - 2][size - 2] is Cell.GOAL
        assert maze.solve()
        assert maze.solution[0] == maze.start
        assert maze.solution[-1] == maze.goal

    def test_border_is_wall(self):
        maze = Maze.generate_random(9, 7, seed=0)
        for c in range(maze.width):
            assert maze.grid[0][c] is Cell.WALL
            assert maze.grid[maze.height - 1][c] is Cell.WALL
        for r in range(maze.height):
            assert maze.grid[r][0] is Cell.WALL
            assert maze.grid[r][maze.width - 1] is Cell.WALL

    def test_every_odd_cell_carved(self):
        maze = Maze.generate_random(11, 9, seed=1)
        for r in range(1, maze.height, 2):
            for c in range(1, maze.width, 2):
                assert maze.grid[r][c] is not Cell.WALL

    def test_solution_path_is_connected(self):
        maze = Maze.generate_random(15, 15, seed=3)
        maze.solve()
        for (r1, c1), (r2, c2) in zip(maze.solution, maze.solution[1:]):
            assert abs(r1 - r2) + abs(c1 - c2) == 1
            assert maze.grid[r2][c2] is not Cell.WALL
        assert len(set(maze.solution)) == len(maze.solution)

    def test_directions(self):
        maze = Maze.generate_random(11, 11, seed=4)
        maze.solve()
        moves = maze.solution_to_directions()
        assert len(moves) == len(maze.solution) - 1
        r, c = maze.start
        for move in moves:
            dr, dc = move.value
            r, c = r + dr, c + dc
        assert (r, c) == maze.goal
        assert all(isinstance(m, Direction) for m in moves)

    def test_encoding(self):
        maze = Maze.generate_random(7, 7, seed=0)
        encoded = maze.to_array()
        assert encoded.shape == (49,)
        assert encoded.dtype == np.float32
        assert encoded[1 * 7 + 1] == 0.5
        assert encoded[5 * 7 + 5] == 1.0
        assert set(encoded.tolist()) <= {0.0, 0.25, 0.5, 1.0}

    def test_solution_mask(self):
        maze = Maze.generate_random(7, 7, seed=0)
        with pytest.raises(ValueError):
            maze.solution_mask()
        maze.solve()
        mask = maze.solution_mask()
        assert mask.sum() == len(maze.solution)
        for r, c in maze.solution:
            assert mask[r * maze.width + c] == 1.0

    def test_cell_from_value(self):
        for cell in Cell:
            assert Cell.from_value(cell.value) is cell
        assert Cell.from_value(0.3) is Cell.PATH
        assert Cell.from_value(0.9) is Cell.GOAL

    def test_visualize(self):
        maze = Maze.generate_random(7, 7, seed=0)
        maze.solve()
        lines = maze.visualize().splitlines()
        assert len(lines) == 7
        assert all(len(line) == 7 for line in lines)
        assert lines[1][1] == "S"
        assert lines[5][5] == "G"
        assert "·" in maze.visualize()


class TestMazeTask:
    """Tests for MazeTask."""

    def test_shapes(self):
        task = MazeTask(n_mazes=4, width=7, height=7, seed=0)
        assert len(task) == 4
        assert task.input_dim == 49
        assert task.output_dim == 49
        x, y = task[0]
        assert x.shape == (1, 49)
        assert y.shape == (1, 49)

    def test_target_marks_path(self):
        task = MazeTask(n_mazes=3, width=9, height=9, seed=1)
        for maze, (x, y) in zip(task.mazes, task.examples()):
            assert y.sum().item() == len(maze.solution)
            # Path cells are never walls
            assert torch.all(x[y == 1.0] > 0.0)

    def test_validate_solution(self):
        task = MazeTask(n_mazes=1, seed=0)
        _, y = task[0]
        assert task.validate_solution(y, y)
        assert task.validate_solution(y * 0.9 + 0.05, y)
        assert not task.validate_solution(torch.zeros_like(y), y)

    def test_seeded(self):
        a = MazeTask(n_mazes=3, seed=5)
        b = MazeTask(n_mazes=3, seed=5)
        for (xa, _), (xb, _) in zip(a.examples(), b.examples()):
            assert torch.equal(xa, xb)

    def test_visualize(self):
        task = MazeTask(n_mazes=1, seed=0)
        assert "path length" in task.visualize(0)


class TestRegistry:
    """Tests for the task registry."""

    def test_builtin_tasks(self):
        assert {"copy", "sequence", "maze"} <= set(list_tasks())

    @pytest.mark.parametrize("name", ["copy", "sequence", "maze"])
    def test_task_matches_preset(self, name):
        task = create_task(name, 4, seed=0)
        config = get_preset_config(name)
        assert len(task) == 4
        assert task.input_dim == config.input_dim
        assert task.output_dim == config.output_dim

    def test_unknown_task(self):
        with pytest.raises(ValueError):
            get_task("sudoku")

    def test_register_task(self):
        @register_task("test-negate")
        def create_negate(n_examples, seed=None):
            return CopyTask(n_examples=n_examples, dim=2, seed=seed)

        assert "test-negate" in list_tasks()
        assert len(create_task("test-negate", 3)) == 3
