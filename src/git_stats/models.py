from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class Signature:
    name: str
    email: str
    timestamp: int  # unix seconds
    tz_offset: str = "+0000"


@dataclasses.dataclass(frozen=True)
class CommitRecord:
    sha: str
    author: Signature
    committer: Signature
    parents: tuple[str, ...]
    message: str

    @property
    def timestamp(self) -> int:
        return self.committer.timestamp

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()


@dataclasses.dataclass(frozen=True)
class FileStat:
    path: str
    insertions: int = 0
    deletions: int = 0
    binary: bool = False

    @property
    def changed(self) -> int:
        return self.insertions + self.deletions


@dataclasses.dataclass(frozen=True)
class AuthorIdentity:
    key: str  # canonical key
    name: str  # first display name observed


@dataclasses.dataclass
class ContributionRecord:
    key: str
    name: str
    commits: int = 0
    insertions: int = 0
    deletions: int = 0
    files: set[str] = dataclasses.field(default_factory=set)
    first_timestamp: int | None = None
    last_timestamp: int | None = None

    @property
    def changed(self) -> int:
        return self.insertions + self.deletions

    @property
    def files_touched(self) -> int:
        return len(self.files)

    def see(self, timestamp: int) -> None:
        if self.first_timestamp is None or timestamp < self.first_timestamp:
            self.first_timestamp = timestamp
        if self.last_timestamp is None or timestamp > self.last_timestamp:
            self.last_timestamp = timestamp


@dataclasses.dataclass
class FileContributionRecord:
    path: str
    key: str
    commits: int = 0
    insertions: int = 0
    deletions: int = 0
    binary: bool = False

    @property
    def changed(self) -> int:
        return self.insertions + self.deletions

    @property
    def files_touched(self) -> int:
        return 1


@dataclasses.dataclass
class PairedWith:
    as_driver: int = 0
    total: int = 0


@dataclasses.dataclass
class PairingCounts:
    solo: int = 0
    partners: dict[str, PairedWith] = dataclasses.field(default_factory=dict)

    def paired_with(self, key: str) -> PairedWith:
        cur = self.partners.get(key)
        if cur is None:
            cur = PairedWith()
            self.partners[key] = cur
        return cur


@dataclasses.dataclass(frozen=True)
class BuildScope:
    start: str
    start_sha: str
    hide_sha: str | None = None
    since: int | None = None  # inclusive
    until: int | None = None  # exclusive
    path_prefix: str = ""
    include_merges: bool = True
    exclude_path_prefixes: tuple[str, ...] = ()
    exclude_path_globs: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class AuthorPathTotals:
    key: str
    name: str
    insertions: int
    deletions: int
    files_touched: int

    @property
    def changed(self) -> int:
        return self.insertions + self.deletions


@dataclasses.dataclass(frozen=True)
class HotPath:
    path: str
    files_touched: int
    insertions: int
    deletions: int

    @property
    def changed(self) -> int:
        return self.insertions + self.deletions
