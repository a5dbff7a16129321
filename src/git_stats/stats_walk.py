from __future__ import annotations

from heapq import heapify, heappop, heappush
from typing import Iterator, Optional

from .errors import BuildCancelled, CorruptHistory
from .models import CommitRecord


def check_cancelled(cancel: object | None) -> None:
    # Any object with an `is_set()` method works (threading.Event, asyncio.Event, ...).
    if cancel is not None and cancel.is_set():  # type: ignore[attr-defined]
        raise BuildCancelled("build cancelled")


def parse_range(spec: str) -> tuple[str, Optional[str]]:
    """
    Split a start reference into (start, hide):
      - `main`        -> ("main", None)
      - `v1.0..main`  -> ("main", "v1.0")
      - `v1.0..`      -> ("HEAD", "v1.0")
    """
    s = (spec or "").strip()
    if "..." in s:
        raise ValueError(f"symmetric ranges are not supported: {spec!r}")
    if ".." not in s:
        return (s or "HEAD"), None
    left, right = s.split("..", 1)
    return (right.strip() or "HEAD"), (left.strip() or None)


def _unique_parents(commit: CommitRecord) -> list[str]:
    return list(dict.fromkeys(commit.parents))


def collect_ancestors(repo, tip: str, *, visited: set[str], cancel: object | None = None) -> set[str]:
    """Add `tip` and everything reachable from it to `visited`; returns `visited`."""
    stack = [tip]
    while stack:
        check_cancelled(cancel)
        sha = stack.pop()
        if sha in visited:
            continue
        visited.add(sha)
        for parent in _unique_parents(repo.read_commit(sha)):
            if parent not in visited:
                stack.append(parent)
    return visited


def walk_commits(
    repo,
    start_sha: str,
    *,
    hide_sha: str | None = None,
    since: int | None = None,
    until: int | None = None,
    cancel: object | None = None,
    visited: set[str] | None = None,
) -> Iterator[CommitRecord]:
    """
    Yield commits reachable from `start_sha` (minus those reachable from
    `hide_sha`) newest first, never emitting a commit before all of its
    children. `repo` needs a `read_commit(sha) -> CommitRecord` method.

    `since` (inclusive) and `until` (exclusive) filter on the committer
    timestamp; filtered commits are still traversed. `visited` is the
    traversal's own seen-set; pass one in to share it across calls, by
    default a fresh set is used per walk.

    A parent graph that is not acyclic raises CorruptHistory once the
    remaining commits can no longer be ordered.
    """
    if visited is None:
        visited = set()
    hidden: set[str] = set()
    if hide_sha:
        collect_ancestors(repo, hide_sha, visited=hidden, cancel=cancel)
    if start_sha in hidden:
        return

    commits: dict[str, CommitRecord] = {}
    pending_children: dict[str, int] = {}
    stack = [start_sha]
    while stack:
        check_cancelled(cancel)
        sha = stack.pop()
        if sha in visited:
            continue
        visited.add(sha)
        commit = repo.read_commit(sha)
        commits[sha] = commit
        pending_children.setdefault(sha, 0)
        for parent in _unique_parents(commit):
            if parent in hidden:
                continue
            pending_children[parent] = pending_children.get(parent, 0) + 1
            if parent not in visited:
                stack.append(parent)

    ready = [(-commits[sha].timestamp, sha) for sha, n in pending_children.items() if n == 0 and sha in commits]
    heapify(ready)
    emitted = 0
    while ready:
        check_cancelled(cancel)
        _, sha = heappop(ready)
        commit = commits[sha]
        emitted += 1
        for parent in _unique_parents(commit):
            if parent in hidden or parent not in commits:
                continue
            pending_children[parent] -= 1
            if pending_children[parent] == 0:
                heappush(ready, (-commits[parent].timestamp, parent))
        if since is not None and commit.timestamp < since:
            continue
        if until is not None and commit.timestamp >= until:
            continue
        yield commit

    if emitted != len(commits):
        stuck = sorted(sha for sha, n in pending_children.items() if n > 0 and sha in commits)
        raise CorruptHistory(f"cycle in commit graph involving {len(stuck)} commits (e.g. {stuck[0][:12]})")
