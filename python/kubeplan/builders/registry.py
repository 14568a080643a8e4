"""
kubeplan/builders/registry.py

TaskRegistry collects the tasks of one compile pass.

Tasks are keyed by '<kind>/<name>', so two kinds may share a name (the bastion
security group and the bastion load balancer are both 'bastion.<cluster>').
Within a kind, names are unique:
  - add(task): registers a task; re-adding an identical task is a no-op, a
    different task under the same key raises DuplicateTaskError.
  - ensure(task): for tasks several builders legitimately share (e.g. the
    etcd client CA). Returns the registered task. Builders sharing a task must
    agree on its exact shape; a differing definition raises DuplicateTaskError
    rather than silently keeping whichever came first.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, TypeVar

import yaml

from kubeplan.errors import DuplicateTaskError
from kubeplan.models.tasks import Task

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Task)


class TaskRegistry:
    def __init__(self) -> None:
        self._tasks: Dict[str, Task] = {}

    def add(self, task: T) -> T:
        existing = self._tasks.get(task.key)
        if existing is not None:
            if existing != task:
                raise DuplicateTaskError(task.key)
            return task
        logger.debug("Adding task %s", task.key)
        self._tasks[task.key] = task
        return task

    def ensure(self, task: T) -> T:
        existing = self._tasks.get(task.key)
        if existing is None:
            logger.debug("Adding task %s", task.key)
            self._tasks[task.key] = task
            return task
        if existing != task:
            raise DuplicateTaskError(task.key)
        logger.debug("Reusing task %s", task.key)
        return existing  # type: ignore[return-value]

    def get(self, key: str) -> Task:
        return self._tasks[key]

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks())

    def tasks(self) -> List[Task]:
        """All tasks, sorted by key."""
        return [self._tasks[key] for key in sorted(self._tasks)]

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """
        Plain-data view of the plan: key -> task fields (plus 'kind').
        """
        return {
            task.key: {"kind": task.kind, **task.model_dump(mode="json")}
            for task in self.tasks()
        }

    def to_yaml(self) -> str:
        """
        Serialize the plan to YAML with sorted keys; identical registries
        always produce identical text.
        """
        return yaml.safe_dump(self.to_dict(), sort_keys=True)
