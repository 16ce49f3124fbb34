"""Dependency-ordered task engine.

Provides the Task primitive, per-item chains, a thread-pool Executor and the
result collector used by the importer.
"""

from .core import Executor, Task, TaskState, UpstreamFailure  # re-export for convenience
from .graph import Chain, WorkflowSet
from .results import AggregateFailure, AggregateOutcome, ChainFailure, collect

__all__ = [
    "AggregateFailure",
    "AggregateOutcome",
    "Chain",
    "ChainFailure",
    "Executor",
    "Task",
    "TaskState",
    "UpstreamFailure",
    "WorkflowSet",
    "collect",
]
