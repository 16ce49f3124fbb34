from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from .logging import get_logger


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = frozenset({TaskState.SUCCEEDED, TaskState.FAILED})


class UpstreamFailure(Exception):
    """Raised in place of a task whose dependency failed.

    Not a root cause: `cause` is the dependency's own error, and
    `root_cause` walks through nested propagation to the original one.
    """

    def __init__(self, task: str, dependency: str, cause: BaseException):
        super().__init__(f"{task} skipped: dependency {dependency} failed")
        self.task = task
        self.dependency = dependency
        self.cause = cause

    @property
    def root_cause(self) -> BaseException:
        cause: BaseException = self
        while isinstance(cause, UpstreamFailure):
            cause = cause.cause
        return cause


class Task:
    """A deferred unit of work with explicit upstream dependencies.

    `fn` receives the results of `depends_on` positionally, in declared order.
    The result/error slot is written exactly once.
    """

    def __init__(
        self,
        name: str,
        fn: Callable[..., Any],
        depends_on: Sequence["Task"] = (),
        position: int = 0,
    ):
        self.name = name
        self.fn = fn
        self.depends_on = tuple(depends_on)
        self.position = position
        self._state = TaskState.PENDING
        self._value: Any = None
        self._error: BaseException | None = None
        self._cond = threading.Condition()

    def __repr__(self) -> str:
        return f"Task({self.name!r}, state={self._state.value})"

    @property
    def state(self) -> TaskState:
        with self._cond:
            return self._state

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def error(self) -> BaseException | None:
        with self._cond:
            return self._error

    def wait(self, timeout: float | None = None) -> bool:
        """Block until terminal. Returns False if `timeout` elapsed first."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._state in TERMINAL_STATES, timeout=timeout
            )

    def result(self, timeout: float | None = None) -> Any:
        if not self.wait(timeout):
            raise TimeoutError(f"Task {self.name} did not finish in {timeout}s")
        with self._cond:
            if self._error is not None:
                raise self._error
            return self._value

    # Transitions below are driven by the Executor only.

    def _start(self) -> None:
        with self._cond:
            if self._state is not TaskState.PENDING:
                raise RuntimeError(f"Task {self.name} already {self._state.value}")
            self._state = TaskState.RUNNING

    def _finish(self, value: Any = None, error: BaseException | None = None) -> None:
        with self._cond:
            if self._state in TERMINAL_STATES:
                raise RuntimeError(f"Task {self.name} already {self._state.value}")
            if error is None:
                self._value = value
                self._state = TaskState.SUCCEEDED
            else:
                self._error = error
                self._state = TaskState.FAILED
            self._cond.notify_all()

    def _run(self) -> None:
        self._start()
        args = [dep.result() for dep in self.depends_on]
        try:
            value = self.fn(*args)
        except Exception as e:  # noqa: BLE001
            self._finish(error=e)
        else:
            self._finish(value=value)


def topo_sort(nodes: Iterable[str], edges: Iterable[tuple[str, str]]) -> list[str]:
    nodes = list(nodes)
    incoming: dict[str, set[str]] = {n: set() for n in nodes}
    outgoing: dict[str, set[str]] = {n: set() for n in nodes}
    for u, v in edges:
        if u not in incoming or v not in incoming:
            raise ValueError(f"Edge references unknown node: {(u, v)}")
        outgoing[u].add(v)
        incoming[v].add(u)
    ordered: list[str] = []
    roots = [n for n in nodes if not incoming[n]]
    while roots:
        n = roots.pop()
        ordered.append(n)
        for m in list(outgoing[n]):
            incoming[m].discard(n)
            outgoing[n].discard(m)
            if not incoming[m]:
                roots.append(m)
    stuck = [n for n in nodes if incoming[n]]
    if stuck:
        raise ValueError(f"Cycle detected in DAG: {', '.join(sorted(stuck))}")
    return ordered


def check_graph(tasks: Sequence[Task]) -> list[str]:
    """Validate that `tasks` is closed under dependencies and acyclic.

    Returns task names in a valid execution order.
    """
    names = [t.name for t in tasks]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ValueError(f"Duplicate task names: {', '.join(dupes)}")
    known = {id(t) for t in tasks}
    edges = []
    for t in tasks:
        for dep in t.depends_on:
            if id(dep) not in known:
                raise ValueError(f"Task {t.name} depends on unscheduled task {dep.name}")
            edges.append((dep.name, t.name))
    return topo_sort(names, edges)


class Executor:
    """Runs a task graph on a thread pool, honouring dependencies.

    A task is dispatched once every dependency is terminal. If one of them
    failed, the task is failed with `UpstreamFailure` without running, and
    the failure cascades to its own dependents.
    """

    def __init__(self, max_workers: int | None = None, name: str = "executor"):
        self.max_workers = max_workers
        self.logger = get_logger(f"orchestrator.{name}")

    def run(self, tasks: Iterable[Task]) -> None:
        tasks = list(tasks)
        check_graph(tasks)
        started = [t.name for t in tasks if t.state is not TaskState.PENDING]
        if started:
            raise ValueError(f"Tasks already scheduled: {', '.join(started)}")
        if not tasks:
            return

        dependents: dict[int, list[Task]] = {id(t): [] for t in tasks}
        pending = {id(t): len(t.depends_on) for t in tasks}
        for t in tasks:
            for dep in t.depends_on:
                dependents[id(dep)].append(t)

        lock = threading.Lock()
        finished = threading.Event()
        remaining = len(tasks)
        fatal: list[BaseException] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:

            def settle(task: Task) -> None:
                # Caller holds `lock`.
                nonlocal remaining
                stack = [task]
                while stack:
                    done = stack.pop()
                    remaining -= 1
                    for child in dependents[id(done)]:
                        pending[id(child)] -= 1
                        if pending[id(child)] == 0:
                            if dispatch(child):
                                stack.append(child)
                if remaining == 0:
                    finished.set()

            def dispatch(task: Task) -> bool:
                """Submit `task`, or fail it in place. True if it failed in place."""
                failed = next(
                    (d for d in task.depends_on if d.state is TaskState.FAILED), None
                )
                if failed is not None:
                    self.logger.warning(
                        "Skip (upstream failed): %s <- %s", task.name, failed.name
                    )
                    task._finish(error=UpstreamFailure(task.name, failed.name, failed.error))
                    return True
                self.logger.debug("Dispatch: %s", task.name)
                pool.submit(execute, task)
                return False

            def execute(task: Task) -> None:
                self.logger.info("Run: %s", task.name)
                try:
                    task._run()
                except BaseException as e:
                    # Not caught by the task itself (e.g. SystemExit); re-raised by run()
                    if not task.done:
                        task._finish(error=e)
                    fatal.append(e)
                if task.state is TaskState.FAILED:
                    self.logger.error("Task failed (%s): %s", task.name, task.error)
                else:
                    self.logger.info("Done: %s", task.name)
                with lock:
                    try:
                        settle(task)
                    except BaseException as e:
                        fatal.append(e)
                        finished.set()

            with lock:
                roots = [t for t in tasks if not t.depends_on]
                self.logger.info(
                    "Scheduling %d tasks (%d ready)", len(tasks), len(roots)
                )
                for t in roots:
                    dispatch(t)

            finished.wait()

        if fatal:
            raise fatal[0]
