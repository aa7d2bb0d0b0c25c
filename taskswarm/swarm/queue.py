"""
Task queue for the swarm.

Provides:
- Strict priority ordering with FIFO inside a tier
- Dependency-gated selection against the result store
"""

from loguru import logger

from taskswarm.swarm.models import Task
from taskswarm.swarm.results import ResultStore


class TaskQueue:
    """
    Ordered collection of pending tasks.

    Insertion places a task before the first queued task of a strictly
    lower tier, so equal-priority tasks keep arrival order. Selection
    returns the first task whose dependencies have all succeeded; blocked
    tasks keep their position.
    """

    def __init__(self, results: ResultStore):
        self._results = results
        self._tasks: list[Task] = []

    def enqueue(self, task: Task) -> None:
        rank = task.priority.rank
        index = next(
            (i for i, queued in enumerate(self._tasks) if queued.priority.rank > rank),
            None,
        )
        if index is None:
            self._tasks.append(task)
        else:
            self._tasks.insert(index, task)
        logger.debug(
            f"Queued {task.id} ({task.priority.value}, attempt {task.attempt}) "
            f"at position {len(self._tasks) - 1 if index is None else index}"
        )

    def is_ready(self, task: Task) -> bool:
        return all(self._results.is_satisfied(dep) for dep in task.dependencies)

    def select_ready(self) -> Task | None:
        """Remove and return the first ready task, or None."""
        for i, task in enumerate(self._tasks):
            if self.is_ready(task):
                return self._tasks.pop(i)
        return None

    def has_ready(self) -> bool:
        return any(self.is_ready(task) for task in self._tasks)

    def remove(self, task_id: str) -> bool:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                del self._tasks[i]
                return True
        return False

    def peek_all(self) -> list[Task]:
        return list(self._tasks)

    def clear(self) -> None:
        self._tasks.clear()

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return any(task.id == task_id for task in self._tasks)
