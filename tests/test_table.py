from __future__ import annotations

import pytest

from git_stats.models import AuthorIdentity, BuildScope, CommitRecord, FileStat, Signature
from git_stats.stats_aggregate import CreditAggregator
from git_stats.stats_table import StatisticsTable, sort_records

ALICE = AuthorIdentity(key="alice@x.com", name="Alice")
BOB = AuthorIdentity(key="bob@x.com", name="Bob")
CAROL = AuthorIdentity(key="carol@x.com", name="Carol Jones")
DAVE = AuthorIdentity(key="dave@x.com", name="Dave")


def _commit(sha: str, ts: int) -> CommitRecord:
    sig = Signature(name="x", email="x@x.com", timestamp=ts)
    return CommitRecord(sha=sha, author=sig, committer=sig, parents=(), message="m")


def _table() -> StatisticsTable:
    agg = CreditAggregator()
    agg.fold(_commit("1" * 40, 1), [ALICE], [FileStat("src/app/main.py", 10, 2), FileStat("README.md", 1, 0)])
    agg.fold(_commit("2" * 40, 2), [BOB], [FileStat("src/app/main.py", 5, 5)])
    agg.fold(_commit("3" * 40, 3), [BOB], [FileStat("src/lib/util.py", 6, 0)])
    agg.fold(_commit("4" * 40, 4), [CAROL, DAVE], [FileStat("docs/guide.md", 4, 0)])
    agg.fold(_commit("5" * 40, 5), [DAVE], [FileStat("assets/logo.png", binary=True)])
    return agg.to_table(BuildScope(start="HEAD", start_sha="f" * 40))


def test_authors_sorted_with_key_tie_break() -> None:
    table = _table()
    # commits: alice 1, bob 2, carol 1, dave 2
    assert [r.key for r in table.authors("commits")] == ["bob@x.com", "dave@x.com", "alice@x.com", "carol@x.com"]
    assert [r.key for r in table.authors("commits", descending=False)] == [
        "alice@x.com",
        "carol@x.com",
        "bob@x.com",
        "dave@x.com",
    ]
    assert [r.key for r in table.authors("insertions")] == ["alice@x.com", "bob@x.com", "carol@x.com", "dave@x.com"]
    assert [r.key for r in table.authors("deletions")][:2] == ["bob@x.com", "alice@x.com"]
    assert [r.key for r in table.authors("files")][:2] == ["alice@x.com", "bob@x.com"]


def test_resorting_does_not_touch_totals() -> None:
    table = _table()
    before = table.to_dict()
    table.authors("insertions")
    table.authors("deletions", descending=False)
    table.search("o")
    assert table.to_dict() == before


def test_unknown_sort_key() -> None:
    with pytest.raises(ValueError):
        _table().authors("name")


def test_search_is_case_insensitive_on_name_and_key() -> None:
    table = _table()
    assert [r.key for r in table.search("JONES")] == ["carol@x.com"]
    assert [r.key for r in table.search("bob@")] == ["bob@x.com"]
    assert len(table.search("")) == len(table)


def test_author_files() -> None:
    table = _table()
    assert [f.path for f in table.author_files("alice@x.com")] == ["src/app/main.py", "README.md"]
    with pytest.raises(KeyError):
        table.author_files("nobody@x.com")


def test_path_breakdown() -> None:
    table = _table()
    rows = table.path_breakdown("src")
    assert [(r.key, r.insertions, r.deletions, r.files_touched) for r in rows] == [
        ("bob@x.com", 11, 5, 2),
        ("alice@x.com", 10, 2, 1),
    ]
    assert [r.key for r in table.path_breakdown("src/lib")] == ["bob@x.com"]
    assert table.path_breakdown("nowhere") == []


def test_hot_paths() -> None:
    table = _table()
    hot = table.hot_paths("bob@x.com", depth=2)
    assert [(h.path, h.files_touched, h.changed) for h in hot] == [
        ("src", 2, 16),
        ("src/app", 1, 10),
        ("src/lib", 1, 6),
    ]
    root = table.hot_paths("alice@x.com", depth=1)
    assert [h.path for h in root] == ["src", "(root)"]


def test_pairings_and_totals() -> None:
    table = _table()
    [(partner, name, counts)] = table.pairings_for("carol@x.com")
    assert (partner, name, counts.as_driver, counts.total) == ("dave@x.com", "Dave", 1, 1)
    assert table.solo_commits("dave@x.com") == 1
    assert table.totals() == {"authors": 4, "commits": 5, "insertions": 26, "deletions": 7, "files": 5}


def test_read_only_views() -> None:
    table = _table()
    with pytest.raises(TypeError):
        table.contributions["eve@x.com"] = table.author("alice@x.com")  # type: ignore[index]
    assert "alice@x.com" in table
    assert "eve@x.com" not in table


def test_sort_records_generic() -> None:
    table = _table()
    files = sort_records(table.file_records.values(), "insertions", tie_key="path")
    assert files[0].path == "src/app/main.py"
