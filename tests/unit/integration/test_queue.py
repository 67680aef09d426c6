"""Tests for CommitQueue candidate selection."""

import pytest

from pretested.core.errors import HistoryDivergedError
from pretested.integration.queue import CommitQueue


def test_candidates_oldest_first(repo, ready):
    x, y = ready
    queue = CommitQueue(repo)

    candidates = queue.compute_candidates(y.id, None,
                                          repo.branches["master"])

    assert [c.id for c in candidates] == [x.id, y.id]


def test_marker_is_exclusive(repo, ready):
    x, y = ready
    queue = CommitQueue(repo)

    assert [c.id for c in queue.compute_candidates(y.id, x.id)] == [y.id]


def test_no_work_when_ready_at_marker(repo, ready):
    x, y = ready

    assert CommitQueue(repo).compute_candidates(y.id, y.id) == []


def test_no_work_without_ready_branch(repo):
    assert CommitQueue(repo).compute_candidates(None, None) == []


def test_rewound_ready_branch_is_reported(repo, ready):
    x, y = ready
    orphan = repo.make_commit("other", "Unrelated root")

    with pytest.raises(HistoryDivergedError) as exc_info:
        CommitQueue(repo).compute_candidates(y.id, orphan.id)

    error = exc_info.value
    assert error.marker == orphan.id
    assert error.ready_head == y.id
    assert orphan.short_id in str(error)


def test_without_marker_or_baseline_everything_is_pending(repo, ready):
    candidates = CommitQueue(repo).compute_candidates(ready[1].id, None)

    # The initial commit plus X and Y
    assert len(candidates) == 3


def test_side_branch_merged_after_marker_contributes_only_its_merge(
    repo, ready
):
    x, y = ready
    repo.create_branch("side", "master")
    repo.make_commit("side", "Side work forked before the marker")
    merge = repo.make_merge("ready", "side", "Merge side into ready")

    candidates = CommitQueue(repo).compute_candidates(merge.id, y.id)

    assert [c.id for c in candidates] == [merge.id]
