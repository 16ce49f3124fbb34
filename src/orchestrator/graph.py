"""Containers for the per-item task chains of a run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .core import Task, check_graph


@dataclass
class Chain:
    """Ordered tasks for one input item; the last one is terminal."""

    name: str
    tasks: list[Task] = field(default_factory=list)

    def add(self, task: Task) -> Task:
        task.position = len(self.tasks)
        self.tasks.append(task)
        return task

    @property
    def terminal(self) -> Task:
        if not self.tasks:
            raise ValueError(f"Chain {self.name} has no tasks")
        return self.tasks[-1]

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)


@dataclass
class WorkflowSet:
    chains: list[Chain] = field(default_factory=list)

    def add(self, chain: Chain) -> Chain:
        if any(c.name == chain.name for c in self.chains):
            raise ValueError(f"Duplicate chain: {chain.name}")
        self.chains.append(chain)
        return chain

    def tasks(self) -> list[Task]:
        return [t for c in self.chains for t in c.tasks]

    def validate(self) -> list[str]:
        return check_graph(self.tasks())

    def __iter__(self) -> Iterator[Chain]:
        return iter(self.chains)

    def __len__(self) -> int:
        return len(self.chains)
