from __future__ import annotations

import dataclasses
import os
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Mapping

from .errors import DiffUnavailable, RepositoryNotFound
from .git import GitRepository
from .identity import IdentityResolver
from .models import BuildScope, CommitRecord, FileStat
from .stats_aggregate import CreditAggregator
from .stats_paths import clean_prefix, path_in_scope, should_exclude_path
from .stats_table import StatisticsTable
from .stats_walk import check_cancelled, parse_range, walk_commits


def default_jobs() -> int:
    return max(1, min(8, (os.cpu_count() or 4)))


@dataclasses.dataclass(frozen=True)
class BuildOptions:
    start: str = "HEAD"  # ref or `A..B` range
    since: int | None = None
    until: int | None = None
    path_prefix: str = ""
    include_merges: bool = True
    exclude_path_prefixes: tuple[str, ...] = ()
    exclude_path_globs: tuple[str, ...] = ()
    aliases: Mapping[str, str] = dataclasses.field(default_factory=dict)
    transliterate: bool = True
    jobs: int = dataclasses.field(default_factory=default_jobs)


def _scope_files(files: list[FileStat], options: BuildOptions, aggregator: CreditAggregator) -> tuple[list[FileStat], bool]:
    """Drop out-of-scope and excluded files; the flag tells whether anything was in scope."""
    kept: list[FileStat] = []
    in_scope = False
    for stat in files:
        if not path_in_scope(stat.path, options.path_prefix):
            continue
        in_scope = True
        if should_exclude_path(stat.path, options.exclude_path_prefixes, options.exclude_path_globs):
            aggregator.add_excluded(stat)
            continue
        kept.append(stat)
    return kept, in_scope


def _fold_next(
    pending: deque[tuple[CommitRecord, Future[list[FileStat]]]],
    *,
    options: BuildOptions,
    resolver: IdentityResolver,
    aggregator: CreditAggregator,
) -> None:
    commit, fut = pending.popleft()
    warning = ""
    files: list[FileStat] | None
    try:
        files = fut.result()
    except DiffUnavailable as e:
        files = None
        warning = str(e)

    if files is not None:
        files, in_scope = _scope_files(files, options, aggregator)
        if options.path_prefix and not in_scope:
            return

    aggregator.fold(commit, resolver.resolve_commit(commit), files, warning=warning)


def build_statistics(
    repo: GitRepository | Path | str,
    options: BuildOptions | None = None,
    *,
    cancel: object | None = None,
    progress: Callable[[int], None] | None = None,
) -> StatisticsTable:
    """
    Walk the history selected by `options` and return its StatisticsTable.

    Diffs are computed on a thread pool (`options.jobs` workers) while commits
    are folded strictly in walk order. `cancel` is any object with `is_set()`
    (e.g. threading.Event), checked between commits; a set signal raises
    BuildCancelled. RepositoryNotFound / CorruptHistory / BuildCancelled abort
    the build and nothing is returned. A commit whose diff cannot be computed
    keeps its commit credit and adds a warning to the table.

    `progress`, if given, is called with the number of commits folded so far.
    """
    if not isinstance(repo, GitRepository):
        with GitRepository(Path(repo)) as git_repo:
            return build_statistics(git_repo, options, cancel=cancel, progress=progress)

    options = options or BuildOptions()
    try:
        start_ref, hide_ref = parse_range(options.start)
    except ValueError as e:
        raise RepositoryNotFound(str(e)) from e
    start_sha = repo.resolve_start(start_ref)
    hide_sha = repo.resolve_start(hide_ref) if hide_ref else None
    check_cancelled(cancel)

    prefix = clean_prefix(options.path_prefix)
    scope = BuildScope(
        start=options.start,
        start_sha=start_sha,
        hide_sha=hide_sha,
        since=options.since,
        until=options.until,
        path_prefix=prefix,
        include_merges=options.include_merges,
        exclude_path_prefixes=tuple(options.exclude_path_prefixes),
        exclude_path_globs=tuple(options.exclude_path_globs),
    )
    resolver = IdentityResolver(dict(options.aliases), transliterate_names=options.transliterate)
    aggregator = CreditAggregator()
    diff_paths = [prefix] if prefix else None

    def compute_diff(sha: str) -> list[FileStat]:
        return repo.diff_against_parent(sha, 0, diff_paths)

    jobs = max(1, int(options.jobs))
    window = jobs * 4
    pending: deque[tuple[CommitRecord, Future[list[FileStat]]]] = deque()
    ex = ThreadPoolExecutor(max_workers=jobs)
    try:
        for commit in walk_commits(
            repo,
            start_sha,
            hide_sha=hide_sha,
            since=options.since,
            until=options.until,
            cancel=cancel,
        ):
            if commit.is_merge and not options.include_merges:
                continue
            pending.append((commit, ex.submit(compute_diff, commit.sha)))
            while len(pending) >= window:
                _fold_next(pending, options=options, resolver=resolver, aggregator=aggregator)
                if progress is not None:
                    progress(aggregator.commits_folded)
        while pending:
            check_cancelled(cancel)
            _fold_next(pending, options=options, resolver=resolver, aggregator=aggregator)
            if progress is not None:
                progress(aggregator.commits_folded)
    finally:
        ex.shutdown(wait=True, cancel_futures=True)

    return aggregator.to_table(scope)
