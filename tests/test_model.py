"""Run options and status aggregation."""

from __future__ import annotations

import threading

import pytest

from monorun.errors import ScriptExitNonZero, ScriptSpawnFailure
from monorun.model import RunOptions, RunState, Status, aggregate_status

S = Status


@pytest.mark.parametrize(
    "statuses, expected",
    [
        ([S.RUNNING, S.ERROR, S.SUCCESS], S.RUNNING),
        ([S.SUCCESS, S.RUNNING], S.RUNNING),
        ([S.ERROR, S.SUCCESS], S.ERROR),
        ([S.ERROR, S.SKIP], S.ERROR),
        ([S.SUCCESS, S.SUCCESS, S.SUCCESS], S.SUCCESS),
        ([S.SUCCESS, S.NOT_STARTED], None),
        ([S.SKIP], None),
        ([], None),
    ],
)
def test_aggregate_status(statuses, expected):
    assert aggregate_status(statuses) is expected


def test_no_flags_means_every_phase():
    assert RunOptions.from_flags() == RunOptions.from_flags(build=True, lint=True, test=True)
    assert RunOptions.from_flags(build=None, lint=None, test=None) == RunOptions()


def test_explicit_false_flags_run_nothing():
    options = RunOptions.from_flags(build=False, lint=False, test=False)
    assert (options.build, options.lint, options.test) == (False, False, False)
    assert options.verify_scripts == []


def test_explicit_flags_select_phases():
    options = RunOptions.from_flags(test=True)
    assert (options.build, options.lint, options.test) == (False, False, True)
    assert options.verify_scripts == ["test"]


def test_test_args_only_apply_to_test():
    options = RunOptions()
    assert options.script_args("test") == ["--run", "--passWithNoTests"]
    assert options.script_args("lint") == []


def test_unknown_dependency_policy_rejected():
    with pytest.raises(ValueError):
        RunOptions(on_dependency_failure="abort")


def test_run_state_tracks_failures_per_script():
    state = RunState(["a", "b"])
    spawn = ScriptSpawnFailure(package="b", script="lint", output="no yarn")
    state.update("a", "build", S.SUCCESS)
    state.update("a", "test", S.ERROR, "1 failed")
    state.update("b", "lint", S.ERROR, "no yarn", spawn)

    failures = state.failures()
    assert [(f.package, f.script) for f in failures] == [("a", "test"), ("b", "lint")]
    assert isinstance(failures[0], ScriptExitNonZero)
    assert failures[0].output == "1 failed"
    assert failures[1] is spawn
    assert state.has_failures
    assert state.status("a", "lint") is S.NOT_STARTED
    assert state.package_status("a") is S.ERROR


def test_run_state_concurrent_updates():
    state = RunState()

    def work(i):
        for script in ("build", "lint", "test"):
            state.update(f"p{i}", script, S.RUNNING)
            state.update(f"p{i}", script, S.SUCCESS)

    threads = [threading.Thread(target=work, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snapshot = state.snapshot()
    assert len(snapshot) == 20
    assert all(state.package_status(p) is S.SUCCESS for p in snapshot)
