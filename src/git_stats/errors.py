from __future__ import annotations


class GitStatsError(Exception):
    pass


class RepositoryNotFound(GitStatsError):
    """Bad repository path or unknown reference, found before traversal starts."""


class CorruptHistory(GitStatsError):
    """A cycle in the commit graph, or an object that is missing or cannot be decoded."""


class DiffUnavailable(GitStatsError):
    def __init__(self, sha: str, reason: str) -> None:
        super().__init__(f"diff unavailable for {sha[:12]}: {reason}")
        self.sha = sha
        self.reason = reason


class BuildCancelled(GitStatsError):
    pass
