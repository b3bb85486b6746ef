"""
Maze Demo
=========

Generate mazes of several sizes, solve them with BFS and print the grid,
the solution and the numeric encoding fed to the model.

Usage:
    python examples/maze_demo.py
"""

from train_trm.data.maze import Maze


def print_numerical_matrix(maze: Maze):
    encoded = maze.to_array().reshape(maze.height, maze.width)
    for row in encoded:
        print(" ".join(f"{v:.2f}" for v in row))


def main():
    print("=== TRM Maze Solving Demonstration ===\n")

    for width, height in [(11, 11), (15, 15), (21, 21)]:
        print(f"Generating maze {width}x{height}...")
        maze = Maze.generate_random(width, height)

        if not maze.solve():
            print("No solution found!\n")
            continue

        print(f"Solution found! Path length: {len(maze.solution)}")
        moves = maze.solution_to_directions()
        print(f"First moves: {[m.name for m in moves[:8]]}\n")

        print("Maze (S=start, G=goal, ·=solution path):")
        print("=" * width)
        print(maze.visualize())
        print("=" * width)

        if width == 11:
            print("\nNumerical representation:")
            print_numerical_matrix(maze)

        print("\n" + "=" * 60 + "\n")


if __name__ == "__main__":
    main()
