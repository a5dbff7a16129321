from __future__ import annotations

import threading

import pytest

from git_stats.errors import BuildCancelled, CorruptHistory
from git_stats.models import CommitRecord, Signature
from git_stats.stats_walk import collect_ancestors, parse_range, walk_commits


class FakeRepo:
    """In-memory history: sha -> (parents, committer timestamp)."""

    def __init__(self, graph: dict[str, tuple[list[str], int]]) -> None:
        self.graph = graph
        self.reads: list[str] = []

    def read_commit(self, sha: str) -> CommitRecord:
        if sha not in self.graph:
            raise CorruptHistory(f"object not in repository: {sha}")
        self.reads.append(sha)
        parents, ts = self.graph[sha]
        sig = Signature(name="A", email="a@x.com", timestamp=ts)
        return CommitRecord(sha=sha, author=sig, committer=sig, parents=tuple(parents), message=sha)


def _shas(repo: FakeRepo, start: str, **kwargs: object) -> list[str]:
    return [c.sha for c in walk_commits(repo, start, **kwargs)]  # type: ignore[arg-type]


def _assert_children_first(repo: FakeRepo, order: list[str]) -> None:
    pos = {sha: i for i, sha in enumerate(order)}
    for sha in order:
        for parent in repo.graph[sha][0]:
            if parent in pos:
                assert pos[sha] < pos[parent], f"{parent} emitted before its child {sha}"


def test_linear_history_newest_first() -> None:
    repo = FakeRepo({"c": (["b"], 3), "b": (["a"], 2), "a": ([], 1)})
    assert _shas(repo, "c") == ["c", "b", "a"]


def test_merge_fan_in_visits_each_commit_once() -> None:
    repo = FakeRepo(
        {
            "e": (["d", "c"], 5),
            "d": (["b"], 4),
            "c": (["b"], 3),
            "b": (["a"], 2),
            "a": ([], 1),
        }
    )
    order = _shas(repo, "e")
    assert order == ["e", "d", "c", "b", "a"]
    assert sorted(repo.reads) == sorted(set(repo.reads))
    _assert_children_first(repo, order)


def test_topology_wins_over_skewed_timestamps() -> None:
    # "c" claims to be newer than its child "d"; it must still come after "d".
    repo = FakeRepo(
        {
            "d": (["b", "c"], 5),
            "c": (["a"], 50),
            "b": (["a"], 4),
            "a": ([], 100),
        }
    )
    order = _shas(repo, "d")
    assert order[0] == "d"
    assert order[-1] == "a"
    assert set(order) == {"a", "b", "c", "d"}
    _assert_children_first(repo, order)


def test_duplicate_parent_entries_are_walked_once() -> None:
    repo = FakeRepo({"b": (["a", "a"], 2), "a": ([], 1)})
    assert _shas(repo, "b") == ["b", "a"]


def test_cycle_is_reported_as_corrupt_history() -> None:
    repo = FakeRepo({"c": (["b"], 3), "b": (["a"], 2), "a": (["b"], 1)})
    with pytest.raises(CorruptHistory):
        _shas(repo, "c")


def test_self_parent_is_reported_as_corrupt_history() -> None:
    repo = FakeRepo({"a": (["a"], 1)})
    with pytest.raises(CorruptHistory):
        _shas(repo, "a")


def test_date_filter_still_walks_filtered_commits() -> None:
    repo = FakeRepo({"d": (["c"], 40), "c": (["b"], 30), "b": (["a"], 20), "a": ([], 10)})
    assert _shas(repo, "d", since=20, until=40) == ["c", "b"]
    assert _shas(repo, "d", since=35) == ["d"]
    assert _shas(repo, "d", until=11) == ["a"]


def test_hidden_history_is_not_emitted() -> None:
    repo = FakeRepo(
        {
            "e": (["d", "c"], 5),
            "d": (["b"], 4),
            "c": (["a"], 3),
            "b": (["a"], 2),
            "a": ([], 1),
        }
    )
    assert _shas(repo, "e", hide_sha="b") == ["e", "d", "c"]
    assert _shas(repo, "b", hide_sha="d") == []


def test_visited_set_is_owned_by_the_caller() -> None:
    repo = FakeRepo({"b": (["a"], 2), "a": ([], 1)})
    assert _shas(repo, "b") == ["b", "a"]
    assert _shas(repo, "b") == ["b", "a"]

    visited: set[str] = set()
    assert _shas(repo, "b", visited=visited) == ["b", "a"]
    assert visited == {"a", "b"}
    assert _shas(repo, "b", visited=visited) == []


def test_collect_ancestors() -> None:
    repo = FakeRepo({"c": (["b", "a"], 3), "b": (["a"], 2), "a": ([], 1)})
    assert collect_ancestors(repo, "b", visited=set()) == {"a", "b"}


def test_missing_commit_propagates() -> None:
    repo = FakeRepo({"b": (["gone"], 2)})
    with pytest.raises(CorruptHistory):
        _shas(repo, "b")


def test_cancellation_between_commits() -> None:
    repo = FakeRepo({"c": (["b"], 3), "b": (["a"], 2), "a": ([], 1)})
    cancel = threading.Event()
    walker = walk_commits(repo, "c", cancel=cancel)
    assert next(walker).sha == "c"
    cancel.set()
    with pytest.raises(BuildCancelled):
        next(walker)


def test_parse_range() -> None:
    assert parse_range("") == ("HEAD", None)
    assert parse_range("main") == ("main", None)
    assert parse_range("v1.0..main") == ("main", "v1.0")
    assert parse_range("v1.0..") == ("HEAD", "v1.0")
    assert parse_range("..main") == ("main", None)
    with pytest.raises(ValueError):
        parse_range("a...b")
