"""Tests for the build check runner."""

from pretested.core.model import BuildVerdict, Commit
from pretested.runner.check import CheckRunner, attempt_label

FIRST = Commit(id="1" * 40)
LAST = Commit(id="2" * 40)


def test_attempt_label_names_cycle_and_range():
    assert attempt_label(3, [FIRST, LAST]) == "cycle-3-111111111111..222222222222"
    assert attempt_label(4, [LAST]) == "cycle-4-222222222222"
    assert attempt_label(5, []) == "cycle-5"


def test_all_checks_pass(tmp_path):
    runner = CheckRunner(tmp_path, tmp_path / "logs", timeout=5)

    verdict = runner.build("cycle-1", {"unit": "true", "lint": "true"})

    assert verdict is BuildVerdict.SUCCESS
    assert [o.name for o in runner.outcomes] == ["unit", "lint"]


def test_first_failure_fails_the_build_and_stops(tmp_path):
    runner = CheckRunner(tmp_path, tmp_path / "logs", timeout=5)

    verdict = runner.build("cycle-1", {
        "first": "false",
        "second": "touch second-ran",
    })

    assert verdict is BuildVerdict.FAILURE
    assert [o.name for o in runner.outcomes] == ["first"]
    assert not (tmp_path / "second-ran").exists()


def test_no_checks_is_a_passing_build(tmp_path):
    runner = CheckRunner(tmp_path, tmp_path / "logs")

    assert runner.build("cycle-1", {}) is BuildVerdict.SUCCESS
    assert runner.outcomes == []


def test_log_named_after_attempt_and_check(tmp_path):
    label = attempt_label(2, [FIRST, LAST])
    runner = CheckRunner(tmp_path, tmp_path / "nested" / "logs", timeout=5)

    runner.build(label, {"greet": "echo 'Hello from the workspace'"})

    log = tmp_path / "nested" / "logs" / f"{label}-greet.log"
    assert runner.outcomes[0].log_file == log
    assert "Hello from the workspace" in log.read_text()


def test_checks_run_in_workspace(tmp_path):
    (tmp_path / "marker.txt").write_text("present")
    runner = CheckRunner(tmp_path, tmp_path / "logs", timeout=5)

    assert runner.build("cycle-1", {"cat": "cat marker.txt"}) is (
        BuildVerdict.SUCCESS
    )
    assert "present" in runner.outcomes[0].log_file.read_text()


def test_timed_out_check_fails_the_build(tmp_path):
    runner = CheckRunner(tmp_path, tmp_path / "logs", timeout=1)

    verdict = runner.build("cycle-1", {"slow": "sleep 10"})

    assert verdict is BuildVerdict.FAILURE
    assert runner.outcomes[0].timed_out
    assert not runner.outcomes[0].passed


def test_outcomes_reset_between_builds(tmp_path):
    runner = CheckRunner(tmp_path, tmp_path / "logs", timeout=5)
    runner.build("cycle-1", {"a": "true"})

    runner.build("cycle-2", {"b": "true"})

    assert [o.name for o in runner.outcomes] == ["b"]
    assert (tmp_path / "logs" / "cycle-1-a.log").exists()
