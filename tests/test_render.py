from __future__ import annotations

from git_stats.models import AuthorIdentity, BuildScope, CommitRecord, FileStat, Signature
from git_stats.stats_aggregate import CreditAggregator
from git_stats.stats_render import bar, fmt_int, render_author_detail, render_authors, render_path_breakdown, trunc

ALICE = AuthorIdentity(key="alice@x.com", name="Alice")
BOB = AuthorIdentity(key="bob@x.com", name="Bob")


def _commit(sha: str, ts: int) -> CommitRecord:
    sig = Signature(name="x", email="x@x.com", timestamp=ts)
    return CommitRecord(sha=sha, author=sig, committer=sig, parents=(), message="m")


def _table():
    agg = CreditAggregator()
    agg.fold(_commit("1" * 40, 1704067200), [ALICE, BOB], [FileStat("src/app/main.py", 1200, 10)])
    agg.fold(_commit("2" * 40, 1704153600), [BOB], [FileStat("docs/a.md", 3, 1), FileStat("logo.png", binary=True)])
    agg.add_excluded(FileStat("vendor/x.c", 50, 0))
    return agg.to_table(BuildScope(start="HEAD", start_sha="a" * 40, path_prefix="", exclude_path_prefixes=("vendor",)))


def test_fmt_int_trunc_bar() -> None:
    assert fmt_int(1234567) == "1,234,567"
    assert trunc("abcdef", 4) == "abc…"
    assert trunc("abc", 4) == "abc"
    assert bar(5, 10, width=4) == "[##--]"
    assert bar(1, 0, width=3) == "[---]"


def test_render_authors_lists_totals_and_rows() -> None:
    out = render_authors(_table(), sort_by="insertions")
    assert "Start: HEAD (aaaaaaaaaaaa)" in out
    assert "Insertions: 1,203" in out
    assert "Excluded: 1 file changes (+50 -0)" in out
    assert "Path excludes: vendor" in out
    rows = [line for line in out.splitlines() if line.strip().startswith(("1 ", "2 "))]
    assert "Bob <bob@x.com>" in rows[0]
    assert "Alice <alice@x.com>" in rows[1]


def test_render_authors_top_and_search() -> None:
    out = render_authors(_table(), top_n=1)
    assert "... 1 more" in out
    out = render_authors(_table(), search="ali")
    assert "Alice" in out
    assert "Bob <bob@x.com>" not in out


def test_render_author_detail() -> None:
    out = render_author_detail(_table(), "bob@x.com", hot_path_depth=2)
    assert out.startswith("Bob <bob@x.com>\n")
    assert "binary" in out
    assert "Paired with (solo commits: 1)" in out
    assert "Alice" in out and "as driver" in out
    assert "Hot paths (depth 2)" in out
    assert "src/app" in out


def test_render_path_breakdown() -> None:
    out = render_path_breakdown(_table(), "docs")
    assert "Authors under docs" in out
    assert "Bob" in out
    assert "Alice" not in out
    assert "(no changes)" in render_path_breakdown(_table(), "nowhere")
