from __future__ import annotations

import copy

from .models import (
    AuthorIdentity,
    BuildScope,
    CommitRecord,
    ContributionRecord,
    FileContributionRecord,
    FileStat,
    PairingCounts,
)
from .stats_table import StatisticsTable


def split_credit(total: int, n: int) -> list[int]:
    """floor(total / n) for everyone, the remainder goes to the first share."""
    if n <= 0:
        raise ValueError("cannot split credit among zero identities")
    share, rest = divmod(int(total), n)
    return [share + rest] + [share] * (n - 1)


class CreditAggregator:
    """
    Folds per-commit diff stats into per-author and per-(file, author) totals.

    Every update is a plain addition that depends only on the commit being
    folded, so folding the same commits in any order gives the same result.
    """

    def __init__(self) -> None:
        self.contributions: dict[str, ContributionRecord] = {}
        self.file_records: dict[tuple[str, str], FileContributionRecord] = {}
        self.pairings: dict[str, PairingCounts] = {}
        self.excluded: dict[str, int] = {"excluded_files": 0, "excluded_insertions": 0, "excluded_deletions": 0}
        self.warnings: list[str] = []
        self.commits_folded = 0
        self.insertions_total = 0
        self.deletions_total = 0

    def _record(self, ident: AuthorIdentity) -> ContributionRecord:
        rec = self.contributions.get(ident.key)
        if rec is None:
            rec = ContributionRecord(key=ident.key, name=ident.name)
            self.contributions[ident.key] = rec
        return rec

    def _file_record(self, path: str, key: str) -> FileContributionRecord:
        rec = self.file_records.get((path, key))
        if rec is None:
            rec = FileContributionRecord(path=path, key=key)
            self.file_records[(path, key)] = rec
        return rec

    def _pairing(self, key: str) -> PairingCounts:
        cur = self.pairings.get(key)
        if cur is None:
            cur = PairingCounts()
            self.pairings[key] = cur
        return cur

    def add_excluded(self, stat: FileStat) -> None:
        self.excluded["excluded_files"] += 1
        self.excluded["excluded_insertions"] += stat.insertions
        self.excluded["excluded_deletions"] += stat.deletions

    def fold(
        self,
        commit: CommitRecord,
        identities: list[AuthorIdentity],
        files: list[FileStat] | None,
        *,
        warning: str = "",
    ) -> None:
        """
        Credit one commit. `identities` is the resolved list with the primary
        author first. `files` is None when the diff could not be computed: the
        commit still counts for everyone, with no line credit, and `warning`
        is recorded.
        """
        if not identities:
            raise ValueError(f"commit {commit.sha} has no resolved identities")
        n = len(identities)
        records = [self._record(ident) for ident in identities]

        self.commits_folded += 1
        for rec in records:
            rec.commits += 1
            rec.see(commit.timestamp)

        primary = identities[0].key
        if n == 1:
            self._pairing(primary).solo += 1
        for ident in identities[1:]:
            fwd = self._pairing(primary).paired_with(ident.key)
            fwd.as_driver += 1
            fwd.total += 1
            self._pairing(ident.key).paired_with(primary).total += 1

        if files is None:
            if warning:
                self.warnings.append(warning)
            return

        insertions = sum(f.insertions for f in files)
        deletions = sum(f.deletions for f in files)
        self.insertions_total += insertions
        self.deletions_total += deletions
        for rec, ins, dele in zip(records, split_credit(insertions, n), split_credit(deletions, n)):
            rec.insertions += ins
            rec.deletions += dele

        for stat in files:
            ins_shares = split_credit(stat.insertions, n)
            del_shares = split_credit(stat.deletions, n)
            for rec, ins, dele in zip(records, ins_shares, del_shares):
                if not stat.binary and ins == 0 and dele == 0:
                    continue
                rec.files.add(stat.path)
                frec = self._file_record(stat.path, rec.key)
                frec.commits += 1
                frec.insertions += ins
                frec.deletions += dele
                frec.binary = frec.binary or stat.binary

    def to_table(self, scope: BuildScope) -> StatisticsTable:
        """Snapshot the current totals; later folds do not affect the returned table."""
        return StatisticsTable(
            scope=scope,
            contributions=copy.deepcopy(self.contributions),
            file_records=copy.deepcopy(self.file_records),
            pairings=copy.deepcopy(self.pairings),
            excluded=dict(self.excluded),
            warnings=list(self.warnings),
            commits_folded=self.commits_folded,
            insertions_total=self.insertions_total,
            deletions_total=self.deletions_total,
        )
