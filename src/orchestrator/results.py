from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .core import TaskState, UpstreamFailure
from .graph import Chain


@dataclass(frozen=True)
class ChainFailure:
    chain: str
    task: str
    cause: BaseException

    @property
    def root_cause(self) -> BaseException:
        if isinstance(self.cause, UpstreamFailure):
            return self.cause.root_cause
        return self.cause

    @property
    def failed_step(self) -> str:
        """Name of the task that actually raised, not the one that inherited it."""
        cause = self.cause
        step = self.task
        while isinstance(cause, UpstreamFailure):
            step = cause.dependency
            cause = cause.cause
        return step

    def describe(self) -> str:
        root = self.root_cause
        return f"{self.chain}: {self.failed_step} failed: {type(root).__name__}: {root}"


@dataclass(frozen=True)
class AggregateOutcome:
    failures: tuple[ChainFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures

    def message(self) -> str:
        if self.ok:
            return "Everything has been imported successfully."
        return "\n".join(f.describe() for f in self.failures)

    def raise_for_failures(self) -> None:
        if not self.ok:
            raise AggregateFailure(self)


class AggregateFailure(Exception):
    def __init__(self, outcome: AggregateOutcome):
        super().__init__(outcome.message())
        self.outcome = outcome


def collect(chains: Iterable[Chain]) -> AggregateOutcome:
    """Partition terminal tasks into successes and failures.

    Only terminal tasks are inspected, so an early failure in a chain is
    reported once, through the propagated cause of its last task.
    """
    failures: list[ChainFailure] = []
    for chain in chains:
        terminal = chain.terminal
        state = terminal.state
        if state is TaskState.FAILED:
            failures.append(
                ChainFailure(chain=chain.name, task=terminal.name, cause=terminal.error)
            )
        elif state is not TaskState.SUCCEEDED:
            raise RuntimeError(
                f"Chain {chain.name} not finished: {terminal.name} is {state.value}"
            )
    return AggregateOutcome(failures=tuple(failures))
