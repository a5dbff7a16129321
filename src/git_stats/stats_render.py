from __future__ import annotations

from .models import ContributionRecord
from .stats_periods import format_timestamp
from .stats_table import StatisticsTable


def fmt_int(n: int) -> str:
    return f"{int(n):,}"


def trunc(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    if max_len <= 1:
        return s[:max_len]
    return s[: max_len - 1] + "…"


def bar(value: int, max_value: int, width: int = 22) -> str:
    if max_value <= 0:
        filled = 0
    else:
        filled = int(round((value / max_value) * width))
    filled = max(0, min(width, filled))
    return "[" + ("#" * filled) + ("-" * (width - filled)) + "]"


def _sort_column(rec: ContributionRecord, sort_by: str) -> int:
    if sort_by == "files":
        return rec.files_touched
    return int(getattr(rec, sort_by))


def render_scope(table: StatisticsTable) -> list[str]:
    s = table.scope
    lines = [f"Start: {s.start} ({s.start_sha[:12]})"]
    if s.hide_sha:
        lines.append(f"Excluding history of: {s.hide_sha[:12]}")
    if s.since is not None or s.until is not None:
        lines.append(f"Dates: {format_timestamp(s.since) or '-'} -> {format_timestamp(s.until) or '-'} (exclusive end)")
    if s.path_prefix:
        lines.append(f"Path: {s.path_prefix}/")
    if s.exclude_path_prefixes or s.exclude_path_globs:
        lines.append("Path excludes: " + ", ".join([*s.exclude_path_prefixes, *s.exclude_path_globs]))
    lines.append(f"Merges: {'included (diffed against first parent)' if s.include_merges else 'skipped'}")
    return lines


def render_authors(
    table: StatisticsTable,
    *,
    sort_by: str = "commits",
    descending: bool = True,
    top_n: int = 25,
    search: str = "",
) -> str:
    rows = table.search(search, sort_by, descending=descending) if search else table.authors(sort_by, descending=descending)
    totals = table.totals()
    lines = render_scope(table)
    lines.append("")
    lines.append(
        f"Commits: {fmt_int(totals['commits'])}  Authors: {fmt_int(totals['authors'])}  "
        f"Insertions: {fmt_int(totals['insertions'])}  Deletions: {fmt_int(totals['deletions'])}  Files: {fmt_int(totals['files'])}"
    )
    excluded = table.excluded
    if int(excluded.get("excluded_files", 0)) > 0:
        lines.append(
            f"Excluded: {fmt_int(excluded['excluded_files'])} file changes "
            f"(+{fmt_int(excluded['excluded_insertions'])} -{fmt_int(excluded['excluded_deletions'])})"
        )
    lines.append("")
    lines.append(f"Authors by {sort_by}" + ("" if descending else " (ascending)") + (f" matching {search!r}" if search else ""))
    lines.append("-" * 110)
    lines.append(f"{'#':>3}  {'Author':<34} {'Commits':>8} {'Insertions':>11} {'Deletions':>10} {'Files':>7}  Last commit")
    shown = rows[:top_n] if top_n > 0 else rows
    max_value = max((_sort_column(r, sort_by) for r in shown), default=0)
    for i, rec in enumerate(shown, start=1):
        label = trunc(f"{rec.name} <{rec.key}>" if "@" in rec.key else rec.name, 34)
        lines.append(
            f"{i:>3}  {label:<34} {fmt_int(rec.commits):>8} {fmt_int(rec.insertions):>11} {fmt_int(rec.deletions):>10} "
            f"{fmt_int(rec.files_touched):>7}  {format_timestamp(rec.last_timestamp)[:10]}  "
            f"{bar(_sort_column(rec, sort_by), max_value, width=16)}"
        )
    if len(rows) > len(shown):
        lines.append(f"... {len(rows) - len(shown)} more")
    return "\n".join(lines) + "\n"


def render_author_detail(
    table: StatisticsTable,
    key: str,
    *,
    sort_by: str = "changed",
    top_n: int = 25,
    hot_path_depth: int = 0,
) -> str:
    rec = table.author(key)
    lines = [
        f"{rec.name} <{rec.key}>",
        f"Commits: {fmt_int(rec.commits)}  Insertions: {fmt_int(rec.insertions)}  Deletions: {fmt_int(rec.deletions)}  "
        f"Files: {fmt_int(rec.files_touched)}",
        f"Active: {format_timestamp(rec.first_timestamp)} -> {format_timestamp(rec.last_timestamp)}",
        "",
        f"Files by {sort_by}",
        "-" * 80,
    ]
    files = table.author_files(key, "changed" if sort_by == "files" else sort_by)
    shown = files[:top_n] if top_n > 0 else files
    for frec in shown:
        counts = "binary" if frec.binary and frec.changed == 0 else f"+{fmt_int(frec.insertions)} -{fmt_int(frec.deletions)}"
        lines.append(f"  {trunc(frec.path, 56):<56} {counts:>16} ({fmt_int(frec.commits)})")
    if len(files) > len(shown):
        lines.append(f"  ... {len(files) - len(shown)} more")

    pairs = table.pairings_for(key)
    lines.append("")
    lines.append(f"Paired with (solo commits: {fmt_int(table.solo_commits(key))})")
    lines.append("-" * 80)
    if not pairs:
        lines.append("  (nobody)")
    for partner_key, partner_name, counts in pairs:
        lines.append(
            f"  {trunc(partner_name, 40):<40} total {fmt_int(counts.total):>6}  as driver {fmt_int(counts.as_driver):>6}  ({partner_key})"
        )

    if hot_path_depth > 0:
        lines.append("")
        lines.append(f"Hot paths (depth {hot_path_depth})")
        lines.append("-" * 80)
        for hp in table.hot_paths(key, hot_path_depth)[: top_n if top_n > 0 else None]:
            lines.append(
                f"  {trunc(hp.path, 48):<48} files {fmt_int(hp.files_touched):>5}  +{fmt_int(hp.insertions)} -{fmt_int(hp.deletions)}"
            )
    return "\n".join(lines) + "\n"


def render_path_breakdown(table: StatisticsTable, prefix: str, *, sort_by: str = "changed", top_n: int = 25) -> str:
    rows = table.path_breakdown(prefix, "changed" if sort_by == "commits" else sort_by)
    lines = [f"Authors under {prefix or '(root)'}", "-" * 80]
    for rec in rows[:top_n] if top_n > 0 else rows:
        lines.append(
            f"  {trunc(rec.name, 40):<40} +{fmt_int(rec.insertions):>9} -{fmt_int(rec.deletions):>9}  files {fmt_int(rec.files_touched):>5}"
        )
    if not rows:
        lines.append("  (no changes)")
    return "\n".join(lines) + "\n"
