from __future__ import annotations

import argparse
import json
import sys
import threading
from pathlib import Path

from .config import config_aliases, config_bool, config_int, config_list, load_config
from .errors import BuildCancelled, GitStatsError
from .stats_build import BuildOptions, build_statistics, default_jobs
from .stats_periods import parse_period, parse_timestamp
from .stats_render import render_author_detail, render_authors, render_path_breakdown
from .stats_table import SORT_KEYS, StatisticsTable


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-stats",
        description="Summarize who wrote how much code in a git repository, crediting Co-authored-by trailers.",
    )
    parser.add_argument("-r", "--repository", type=Path, default=Path("."), help="Path to the git repository.")
    parser.add_argument("--start", type=str, default="HEAD", help="Start reference or range (e.g. main, v1.0..main).")
    parser.add_argument("--since", type=str, default="", help="Only commits at or after this date (YYYY-MM-DD or ISO datetime).")
    parser.add_argument("--until", type=str, default="", help="Only commits before this date (exclusive).")
    parser.add_argument("--period", type=str, default="", help="Shortcut for --since/--until: YYYY, YYYYH1 or YYYYH2.")
    parser.add_argument("--path", type=str, default="", help="Only count changes under this path prefix.")
    parser.add_argument("--exclude-path", action="append", default=[], help="Path prefix to leave out (repeatable).")
    parser.add_argument("--exclude-glob", action="append", default=[], help="Path glob to leave out (repeatable).")
    parser.add_argument("--no-merges", action="store_true", help="Do not credit merge commits.")
    parser.add_argument("--no-transliterate", action="store_true", help="Keep umlauts in author names as-is.")
    parser.add_argument("--sort", choices=list(SORT_KEYS), default="commits", help="Column to sort authors by.")
    parser.add_argument("--ascending", action="store_true", help="Sort ascending instead of descending.")
    parser.add_argument("--top", type=int, default=25, help="Rows to show (0 = all).")
    parser.add_argument("--search", type=str, default="", help="Only show authors whose name or email contains this text.")
    parser.add_argument("--author", type=str, default="", help="Show files, pairings and hot paths for one author (email or name).")
    parser.add_argument("--hot-paths", type=int, default=0, help="With --author: directory depth for the hot path listing.")
    parser.add_argument("--breakdown", type=str, default=None, help="Show per-author totals for files under this directory.")
    parser.add_argument("--jobs", type=int, default=None, help="Parallel diff workers.")
    parser.add_argument("--timeout", type=float, default=0.0, help="Give up after this many seconds (0 = no limit).")
    parser.add_argument("--json", action="store_true", help="Print the whole table as JSON instead of text.")
    parser.add_argument("--config", type=Path, default=Path("config.json"), help="Path to config.json.")
    return parser


def _date_bounds(args: argparse.Namespace) -> tuple[int | None, int | None]:
    since: int | None = None
    until: int | None = None
    if str(args.period).strip():
        since, until = parse_period(args.period).bounds()
    if str(args.since).strip():
        since = parse_timestamp(args.since)
    if str(args.until).strip():
        until = parse_timestamp(args.until)
    return since, until


def _build_options(args: argparse.Namespace, config: dict) -> BuildOptions:
    since, until = _date_bounds(args)
    jobs = args.jobs if args.jobs is not None else config_int(config, "jobs", default_jobs())
    return BuildOptions(
        start=str(args.start or "HEAD"),
        since=since,
        until=until,
        path_prefix=str(args.path or ""),
        include_merges=config_bool(config, "include_merges", True) and not args.no_merges,
        exclude_path_prefixes=tuple(config_list(config, "exclude_path_prefixes") + list(args.exclude_path)),
        exclude_path_globs=tuple(config_list(config, "exclude_path_globs") + list(args.exclude_glob)),
        aliases=config_aliases(config),
        transliterate=config_bool(config, "transliterate", True) and not args.no_transliterate,
        jobs=max(1, int(jobs)),
    )


def _find_author(table: StatisticsTable, needle: str) -> str | None:
    if needle in table:
        return needle
    lowered = needle.strip().lower()
    if lowered in table:
        return lowered
    matches = table.search(needle)
    if len(matches) == 1:
        return matches[0].key
    exact = [r for r in matches if r.name.casefold() == needle.strip().casefold()]
    if len(exact) == 1:
        return exact[0].key
    return None


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        options = _build_options(args, config)
    except (ValueError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    cancel = threading.Event()
    timer: threading.Timer | None = None
    if args.timeout and args.timeout > 0:
        timer = threading.Timer(args.timeout, cancel.set)
        timer.daemon = True
        timer.start()

    print(f"Reading history of {args.repository.resolve()} ({options.start}, jobs={options.jobs})...", file=sys.stderr)
    try:
        table = build_statistics(args.repository, options, cancel=cancel)
    except BuildCancelled:
        print("Cancelled: no statistics were produced.", file=sys.stderr)
        return 130
    except KeyboardInterrupt:
        print("Interrupted: no statistics were produced.", file=sys.stderr)
        return 130
    except GitStatsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    finally:
        if timer is not None:
            timer.cancel()

    for w in table.warnings:
        print(f"Warning: {w}", file=sys.stderr)

    if args.json:
        print(json.dumps(table.to_dict(), indent=2, sort_keys=True))
        return 0

    if args.author:
        key = _find_author(table, args.author)
        if key is None:
            print(f"No single author matches {args.author!r}.", file=sys.stderr)
            return 1
        sys.stdout.write(render_author_detail(table, key, sort_by=args.sort, top_n=args.top, hot_path_depth=args.hot_paths))
        return 0

    if args.breakdown is not None:
        sys.stdout.write(render_path_breakdown(table, args.breakdown, sort_by=args.sort, top_n=args.top))
        return 0

    sys.stdout.write(render_authors(table, sort_by=args.sort, descending=not args.ascending, top_n=args.top, search=args.search))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
