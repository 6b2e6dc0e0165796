import os

import pytest

from gitman.core import (
    ActionExecutor,
    ActionKind,
    BatchState,
    ItemStatus,
    plan_actions,
)
from gitman.errors import WorkingRootError


class Recorder:
    """Fake pull/clone operations that log calls and fail on demand."""

    def __init__(self, failing=(), raising=()):
        self.calls = []
        self.failing = set(failing)
        self.raising = set(raising)

    def _run(self, kind, record, root):
        self.calls.append((kind, record.name))
        if record.name in self.raising:
            raise RuntimeError(f"{record.name} exploded")
        if record.name in self.failing:
            return False, f"{kind} of {record.name} failed"
        return True, f"{kind} ok"

    def pull(self, record, root):
        return self._run("pull", record, root)

    def clone(self, record, root):
        return self._run("clone", record, root)


class ProgressLog:
    def __init__(self):
        self.events = []

    def on_start(self, action, record):
        self.events.append(("start", action, record.name))

    def on_finish(self, result):
        self.events.append(("finish", result.action, result.name, result.status))


def test_failed_pull_does_not_stop_the_batch(tmp_path, make_local, make_remote):
    fake = Recorder(failing={"p2"})
    plan = plan_actions([make_local("p1"), make_local("p2"), make_local("p3"), make_remote("c1")])

    report = ActionExecutor(fake.pull, fake.clone).run(plan, tmp_path)

    statuses = {r.name: r.status for r in report.results}
    assert statuses == {
        "p1": ItemStatus.SUCCEEDED,
        "p2": ItemStatus.FAILED,
        "p3": ItemStatus.SUCCEEDED,
        "c1": ItemStatus.SUCCEEDED,
    }
    assert fake.calls == [("pull", "p1"), ("pull", "p2"), ("pull", "p3"), ("clone", "c1")]
    assert report.failed[0].error == "pull of p2 failed"
    assert report.state == BatchState.COMPLETED
    assert report.exit_code == 1


def test_pulls_run_before_clones(tmp_path, make_local, make_remote):
    fake = Recorder()
    plan = plan_actions([make_remote("c1"), make_local("p1"), make_remote("c2")])

    report = ActionExecutor(fake.pull, fake.clone).run(plan, tmp_path)

    assert fake.calls == [("pull", "p1"), ("clone", "c1"), ("clone", "c2")]
    assert [r.action for r in report.results] == [ActionKind.PULL, ActionKind.CLONE, ActionKind.CLONE]
    assert report.exit_code == 0


def test_exception_in_operation_is_an_item_failure(tmp_path, make_local):
    fake = Recorder(raising={"p1"})
    plan = plan_actions([make_local("p1"), make_local("p2")])

    report = ActionExecutor(fake.pull, fake.clone).run(plan, tmp_path)

    assert report.results[0].status == ItemStatus.FAILED
    assert "exploded" in report.results[0].error
    assert report.results[1].status == ItemStatus.SUCCEEDED


def test_clone_into_existing_directory_fails_without_calling_git(tmp_path, make_remote):
    (tmp_path / "taken").mkdir()
    fake = Recorder()
    plan = plan_actions([make_remote("taken"), make_remote("free")])

    report = ActionExecutor(fake.pull, fake.clone).run(plan, tmp_path)

    assert fake.calls == [("clone", "free")]
    assert report.results[0].status == ItemStatus.FAILED
    assert "already exists" in report.results[0].error


def test_skipped_names_are_reported(tmp_path, make_local):
    fake = Recorder()
    plan = plan_actions([make_local("p1")], skipped=["ghost"])

    report = ActionExecutor(fake.pull, fake.clone).run(plan, tmp_path)

    assert [r.name for r in report.skipped] == ["ghost"]
    assert report.skipped[0].action is None
    assert report.exit_code == 0


def test_missing_root_is_fatal_before_any_item(tmp_path, make_local):
    fake = Recorder()
    plan = plan_actions([make_local("p1")])

    with pytest.raises(WorkingRootError):
        ActionExecutor(fake.pull, fake.clone).run(plan, tmp_path / "missing")
    assert fake.calls == []


@pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
def test_unwritable_root_is_fatal(tmp_path, make_local):
    root = tmp_path / "locked"
    root.mkdir()
    root.chmod(0o500)
    fake = Recorder()
    try:
        with pytest.raises(WorkingRootError):
            ActionExecutor(fake.pull, fake.clone).run(plan_actions([make_local("p1")]), root)
    finally:
        root.chmod(0o700)
    assert fake.calls == []


def test_dry_run_has_no_side_effects(tmp_path, make_local, make_remote):
    fake = Recorder()
    plan = plan_actions([make_local("p1"), make_remote("c1")])

    report = ActionExecutor(fake.pull, fake.clone).run(plan, tmp_path, dry_run=True)

    assert fake.calls == []
    assert [r.message for r in report.results] == [
        "Would pull (dry-run)",
        "Would clone (dry-run)",
    ]


def test_dry_run_predicts_clone_into_existing_directory(tmp_path, make_remote):
    (tmp_path / "taken").mkdir()
    fake = Recorder()
    plan = plan_actions([make_remote("taken"), make_remote("free")])

    report = ActionExecutor(fake.pull, fake.clone).run(plan, tmp_path, dry_run=True)

    assert fake.calls == []
    assert [r.status for r in report.results] == [ItemStatus.FAILED, ItemStatus.SUCCEEDED]
    assert "already exists" in report.results[0].error
    assert report.exit_code == 1


def test_progress_is_reported_one_item_at_a_time(tmp_path, make_local, make_remote):
    fake = Recorder(failing={"c1"})
    progress = ProgressLog()
    plan = plan_actions([make_local("p1"), make_remote("c1")])

    ActionExecutor(fake.pull, fake.clone, progress=progress).run(plan, tmp_path)

    assert progress.events == [
        ("start", ActionKind.PULL, "p1"),
        ("finish", ActionKind.PULL, "p1", ItemStatus.SUCCEEDED),
        ("start", ActionKind.CLONE, "c1"),
        ("finish", ActionKind.CLONE, "c1", ItemStatus.FAILED),
    ]


def test_empty_plan_completes(tmp_path):
    report = ActionExecutor().run(plan_actions([]), tmp_path)
    assert report.results == []
    assert report.state == BatchState.COMPLETED
    assert report.exit_code == 0
