"""Tests for BuildOutcomeHandler."""

import pytest

from pretested.core.errors import PushError
from pretested.core.model import BuildVerdict, IntegrationAttempt, JobRecord
from pretested.integration.outcome import BuildOutcomeHandler
from pretested.integration.preparer import WorkspacePreparer
from pretested.strategy import FastForwardStrategy


@pytest.fixture
def attempt(repo, ready):
    candidates = list(ready)
    prepared = WorkspacePreparer(repo).prepare(
        "master", FastForwardStrategy(), candidates
    )
    return IntegrationAttempt(
        candidates=candidates,
        strategy=prepared.strategy,
        prepared=prepared,
        ready_head=candidates[-1].id,
    )


@pytest.fixture
def record():
    return JobRecord(target_branch="master")


def test_success_pushes_and_records(repo, store, attempt, record):
    handler = BuildOutcomeHandler(repo, FastForwardStrategy(), store=store)

    result = handler.finalize(attempt, BuildVerdict.SUCCESS, record)

    assert result.integrated is True
    assert result.new_head == attempt.last_candidate.id
    assert result.record.last_integrated == attempt.last_candidate.id
    assert store.load("default", "master").last_integrated == (
        attempt.last_candidate.id
    )
    assert repo.branches["master"] == attempt.last_candidate.id


def test_failure_rolls_back(repo, store, attempt, record):
    master = repo.branches["master"]
    handler = BuildOutcomeHandler(repo, FastForwardStrategy(), store=store)

    result = handler.finalize(attempt, BuildVerdict.FAILURE, record)

    assert result.integrated is False
    assert result.record is record
    assert repo.branches["master"] == master
    assert not store.path_for("default").exists()


def test_push_failure_records_nothing(repo, store, attempt, record):
    repo.push_error = PushError("permission denied")
    handler = BuildOutcomeHandler(repo, FastForwardStrategy(), store=store)

    with pytest.raises(PushError) as exc_info:
        handler.finalize(attempt, BuildVerdict.SUCCESS, record)

    assert exc_info.value.commits == attempt.candidates
    assert not store.path_for("default").exists()


@pytest.mark.parametrize("verdict,unstable_is_success,expected", [
    (BuildVerdict.SUCCESS, False, True),
    (BuildVerdict.FAILURE, True, False),
    (BuildVerdict.UNSTABLE, False, False),
    (BuildVerdict.UNSTABLE, True, True),
])
def test_is_success(repo, verdict, unstable_is_success, expected):
    handler = BuildOutcomeHandler(
        repo, FastForwardStrategy(), unstable_is_success=unstable_is_success
    )

    assert handler.is_success(verdict) is expected
