"""
Task Registry
=============

Registry for task factories.
Allows easy extension to new tasks.
"""

from typing import Callable, Dict, Optional

from ..data.base import BaseTask

# Global registry
_TASK_REGISTRY: Dict[str, Callable] = {}


def register_task(name: str):
    """Decorator to register a task factory function.

    A factory takes ``(n_examples, seed)`` and returns a :class:`BaseTask`
    whose dimensions match the task's preset config.

    Parameters
    ----------
    name : str
        Task name for CLI and API

    Examples
    --------
    >>> @register_task("negate")
    ... def create_negate_task(n_examples, seed=None):
    ...     return NegateTask(n_examples, dim=5, seed=seed)
    """
    def decorator(func: Callable) -> Callable:
        _TASK_REGISTRY[name] = func
        return func
    return decorator


def get_task(name: str) -> Callable:
    """Get a registered task factory.

    Parameters
    ----------
    name : str
        Task name

    Returns
    -------
    Callable
        Factory function that returns a task
    """
    if name not in _TASK_REGISTRY:
        raise ValueError(
            f"Unknown task: {name}. "
            f"Available: {list(_TASK_REGISTRY.keys())}"
        )
    return _TASK_REGISTRY[name]


def list_tasks() -> list:
    """List all registered tasks."""
    return list(_TASK_REGISTRY.keys())


def create_task(name: str, n_examples: int, seed: Optional[int] = None) -> BaseTask:
    """Build a registered task."""
    return get_task(name)(n_examples, seed=seed)


# Register built-in tasks
@register_task("copy")
def create_copy_task(n_examples: int, seed: Optional[int] = None) -> BaseTask:
    """Create a 5-wide copy task."""
    from ..data.tasks import CopyTask
    return CopyTask(n_examples=n_examples, dim=5, seed=seed)


@register_task("sequence")
def create_sequence_task(n_examples: int, seed: Optional[int] = None) -> BaseTask:
    """Create a length-5 arithmetic sequence task."""
    from ..data.tasks import SequenceTask
    return SequenceTask(n_examples=n_examples, sequence_length=5, seed=seed)


@register_task("maze")
def create_maze_task(n_examples: int, seed: Optional[int] = None) -> BaseTask:
    """Create a 7x7 maze task."""
    from ..data.maze import MazeTask
    return MazeTask(n_mazes=n_examples, width=7, height=7, seed=seed)
