from __future__ import annotations

import dataclasses
from collections import defaultdict
from types import MappingProxyType
from typing import Iterable, Mapping, TypeVar

from .models import (
    AuthorPathTotals,
    BuildScope,
    ContributionRecord,
    FileContributionRecord,
    HotPath,
    PairedWith,
    PairingCounts,
)
from .stats_paths import dir_ancestors, path_in_scope

SORT_KEYS = ("commits", "insertions", "deletions", "files", "changed")

T = TypeVar("T")


def _sort_value(rec: object, sort_by: str) -> int:
    attr = "files_touched" if sort_by == "files" else sort_by
    if sort_by not in SORT_KEYS or not hasattr(rec, attr):
        raise ValueError(f"cannot sort by {sort_by!r} (expected one of: {', '.join(SORT_KEYS)})")
    return int(getattr(rec, attr))


def sort_records(records: Iterable[T], sort_by: str, *, descending: bool = True, tie_key: str = "key") -> list[T]:
    """Sort on one numeric column; ties are always broken by `tie_key` ascending."""
    sign = -1 if descending else 1
    return sorted(records, key=lambda r: (sign * _sort_value(r, sort_by), getattr(r, tie_key)))


class StatisticsTable:
    """
    The aggregate of one traversal. Queries never touch the repository and
    never change the totals; sorting and filtering return new lists.
    Returned records are shared with the table and must be treated as
    read-only.
    """

    def __init__(
        self,
        *,
        scope: BuildScope,
        contributions: dict[str, ContributionRecord],
        file_records: dict[tuple[str, str], FileContributionRecord],
        pairings: dict[str, PairingCounts],
        excluded: dict[str, int],
        warnings: list[str],
        commits_folded: int,
        insertions_total: int,
        deletions_total: int,
    ) -> None:
        self.scope = scope
        self._contributions = contributions
        self._file_records = file_records
        self._pairings = pairings
        self._excluded = excluded
        self._warnings = tuple(warnings)
        self.commits_folded = commits_folded
        self.insertions_total = insertions_total
        self.deletions_total = deletions_total

        files_by_author: dict[str, list[FileContributionRecord]] = defaultdict(list)
        for (_path, key), rec in file_records.items():
            files_by_author[key].append(rec)
        self._files_by_author = dict(files_by_author)

    def __len__(self) -> int:
        return len(self._contributions)

    def __contains__(self, key: object) -> bool:
        return key in self._contributions

    @property
    def contributions(self) -> Mapping[str, ContributionRecord]:
        return MappingProxyType(self._contributions)

    @property
    def file_records(self) -> Mapping[tuple[str, str], FileContributionRecord]:
        return MappingProxyType(self._file_records)

    @property
    def excluded(self) -> Mapping[str, int]:
        return MappingProxyType(self._excluded)

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._warnings

    def author(self, key: str) -> ContributionRecord:
        return self._contributions[key]

    def authors(self, sort_by: str = "commits", *, descending: bool = True) -> list[ContributionRecord]:
        return sort_records(self._contributions.values(), sort_by, descending=descending)

    def search(self, text: str, sort_by: str = "commits", *, descending: bool = True) -> list[ContributionRecord]:
        needle = (text or "").strip().casefold()
        if not needle:
            return self.authors(sort_by, descending=descending)
        matches = [r for r in self._contributions.values() if needle in r.name.casefold() or needle in r.key.casefold()]
        return sort_records(matches, sort_by, descending=descending)

    def author_files(self, key: str, sort_by: str = "changed", *, descending: bool = True) -> list[FileContributionRecord]:
        if key not in self._contributions:
            raise KeyError(key)
        return sort_records(self._files_by_author.get(key, []), sort_by, descending=descending, tie_key="path")

    def path_breakdown(self, prefix: str, sort_by: str = "changed", *, descending: bool = True) -> list[AuthorPathTotals]:
        """Per-author insertions/deletions restricted to files under `prefix`."""
        acc: dict[str, list[int]] = defaultdict(lambda: [0, 0, 0])
        for (path, key), rec in self._file_records.items():
            if not path_in_scope(path, prefix):
                continue
            cur = acc[key]
            cur[0] += rec.insertions
            cur[1] += rec.deletions
            cur[2] += 1
        rows = [
            AuthorPathTotals(key=key, name=self._contributions[key].name, insertions=ins, deletions=dele, files_touched=n)
            for key, (ins, dele, n) in acc.items()
        ]
        return sort_records(rows, sort_by, descending=descending)

    def hot_paths(self, key: str, depth: int = 4) -> list[HotPath]:
        """Directories (up to `depth` levels) holding the files `key` touched, most changed lines first."""
        if key not in self._contributions:
            raise KeyError(key)
        acc: dict[str, list[int]] = defaultdict(lambda: [0, 0, 0])
        for rec in self._files_by_author.get(key, []):
            for d in dir_ancestors(rec.path, depth):
                cur = acc[d]
                cur[0] += 1
                cur[1] += rec.insertions
                cur[2] += rec.deletions
        rows = [HotPath(path=d, files_touched=n, insertions=ins, deletions=dele) for d, (n, ins, dele) in acc.items()]
        return sort_records(rows, "changed", tie_key="path")

    def pairings_for(self, key: str) -> list[tuple[str, str, PairedWith]]:
        """(partner key, partner name, counts) for everyone `key` shared a commit with."""
        counts = self._pairings.get(key)
        if counts is None:
            return []
        rows = [(pk, self._contributions[pk].name, pw) for pk, pw in counts.partners.items()]
        rows.sort(key=lambda t: (-t[2].total, t[0]))
        return rows

    def solo_commits(self, key: str) -> int:
        counts = self._pairings.get(key)
        return counts.solo if counts is not None else 0

    def totals(self) -> dict[str, int]:
        return {
            "authors": len(self._contributions),
            "commits": self.commits_folded,
            "insertions": self.insertions_total,
            "deletions": self.deletions_total,
            "files": len({path for path, _key in self._file_records}),
        }

    def to_dict(self) -> dict[str, object]:
        """Deterministic plain-data view (sorted keys and lists) of the whole table."""
        authors = []
        for key in sorted(self._contributions):
            rec = self._contributions[key]
            authors.append(
                {
                    "key": rec.key,
                    "name": rec.name,
                    "commits": rec.commits,
                    "insertions": rec.insertions,
                    "deletions": rec.deletions,
                    "files": sorted(rec.files),
                    "first_timestamp": rec.first_timestamp,
                    "last_timestamp": rec.last_timestamp,
                }
            )
        files = [dataclasses.asdict(self._file_records[k]) for k in sorted(self._file_records)]
        pairings = {
            key: {
                "solo": counts.solo,
                "partners": {pk: dataclasses.asdict(counts.partners[pk]) for pk in sorted(counts.partners)},
            }
            for key, counts in sorted(self._pairings.items())
        }
        return {
            "scope": dataclasses.asdict(self.scope),
            "totals": self.totals(),
            "authors": authors,
            "files": files,
            "pairings": pairings,
            "excluded": dict(sorted(self._excluded.items())),
            "warnings": sorted(self._warnings),
        }
