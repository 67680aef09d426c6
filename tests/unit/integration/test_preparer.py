"""Tests for WorkspacePreparer."""

import pytest

from pretested.core.errors import ConflictError, RepositoryError
from pretested.core.model import StrategyKind
from pretested.integration.preparer import WorkspacePreparer
from pretested.strategy import AccumulateStrategy, FastForwardStrategy


def test_prepare_records_target_and_base(repo, ready):
    x, y = ready
    base = repo.branches["master"]

    prepared = WorkspacePreparer(repo).prepare(
        "master", FastForwardStrategy(), [x, y]
    )

    assert prepared.strategy is StrategyKind.FAST_FORWARD
    assert prepared.target_branch == "master"
    assert prepared.base == base
    assert prepared.head == y.id
    assert repo.head() == y.id


def test_missing_target_branch(repo, ready):
    with pytest.raises(RepositoryError, match="does not exist"):
        WorkspacePreparer(repo).prepare(
            "main", FastForwardStrategy(), list(ready)
        )


def test_conflict_discards_workspace(repo, ready):
    x, y = ready
    repo.conflicts.add(y.id)
    discards = repo.discards

    with pytest.raises(ConflictError) as exc_info:
        WorkspacePreparer(repo).prepare(
            "master", AccumulateStrategy(), [x, y]
        )

    assert repo.discards > discards
    assert exc_info.value.files == ["conflict.txt"]
    assert exc_info.value.commits


def test_prepare_again_after_interruption(repo, ready):
    x, y = ready
    preparer = WorkspacePreparer(repo)
    preparer.prepare("master", AccumulateStrategy(), [x, y])

    prepared = preparer.prepare("master", AccumulateStrategy(), [x, y])

    assert repo.commits[prepared.head].parents == (prepared.created[0],)
    assert repo.commits[prepared.created[0]].parents == (prepared.base,)
