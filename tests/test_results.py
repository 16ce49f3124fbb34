import pytest

from orchestrator import (
    AggregateFailure,
    Chain,
    Executor,
    Task,
    WorkflowSet,
    collect,
)
from gtfs_importer.errors import RemoteError


def _chain(name, fail_at=None):
    chain = Chain(name=name)
    prev = None
    for step in ("create", "analyze", "publish", "share"):
        def fn(*_, step=step):
            if step == fail_at:
                raise RemoteError(f"{step} refused", code=400)
            return f"{name}:{step}"
        prev = chain.add(Task(f"{name}:{step}", fn, depends_on=[prev] if prev else []))
    return chain


def _run(*chains):
    workflows = WorkflowSet()
    for c in chains:
        workflows.add(c)
    Executor().run(workflows.tasks())
    return workflows


def test_all_chains_succeed():
    workflows = _run(_chain("stops.txt"), _chain("routes.txt"))
    outcome = collect(workflows)
    assert outcome.ok
    assert outcome.failures == ()
    assert workflows.chains[0].terminal.result() == "stops.txt:share"
    outcome.raise_for_failures()


def test_one_failure_recorded_per_chain():
    workflows = _run(_chain("stops.txt", fail_at="analyze"), _chain("routes.txt"))
    outcome = collect(workflows)

    assert not outcome.ok
    assert len(outcome.failures) == 1
    failure = outcome.failures[0]
    assert failure.chain == "stops.txt"
    assert failure.task == "stops.txt:share"
    assert failure.failed_step == "stops.txt:analyze"
    assert isinstance(failure.root_cause, RemoteError)
    assert outcome.message() == (
        "stops.txt: stops.txt:analyze failed: RemoteError: [400] analyze refused"
    )


def test_failures_keep_chain_order():
    workflows = _run(
        _chain("a.txt", fail_at="create"),
        _chain("b.txt"),
        _chain("c.txt", fail_at="share"),
    )
    outcome = collect(workflows)
    assert [f.chain for f in outcome.failures] == ["a.txt", "c.txt"]
    with pytest.raises(AggregateFailure) as exc:
        outcome.raise_for_failures()
    assert exc.value.outcome is outcome


def test_collect_is_idempotent():
    workflows = _run(_chain("a.txt", fail_at="publish"), _chain("b.txt"))
    assert collect(workflows) == collect(workflows)


def test_collect_rejects_unfinished_chains():
    workflows = WorkflowSet()
    workflows.add(_chain("a.txt"))
    with pytest.raises(RuntimeError, match="not finished"):
        collect(workflows)


def test_duplicate_chain_names_are_rejected():
    workflows = WorkflowSet()
    workflows.add(Chain(name="a.txt"))
    with pytest.raises(ValueError):
        workflows.add(Chain(name="a.txt"))
