from __future__ import annotations

import dataclasses
import re
import subprocess
import threading
from pathlib import Path
from typing import Optional

from .errors import CorruptHistory, DiffUnavailable, RepositoryNotFound
from .models import CommitRecord, FileStat, Signature

_OBJECT_ID_RE = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$")
_SIGNATURE_RE = re.compile(r"^(?P<name>.*?) ?<(?P<email>[^<>]*)> (?P<ts>-?\d+)(?: (?P<tz>[+-]\d{4}))?$")


def run_git(args: list[str], cwd: Path, timeout_s: int = 300) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


def get_repo_toplevel(candidate: Path) -> Optional[Path]:
    if not candidate.is_dir():
        return None
    code, out, _ = run_git(["rev-parse", "--show-toplevel"], cwd=candidate)
    if code != 0 or not out.strip():
        return None
    try:
        return Path(out.strip()).resolve()
    except OSError:
        return None


def is_object_id(value: str) -> bool:
    return bool(_OBJECT_ID_RE.match(value or ""))


def parse_signature(text: str) -> Signature:
    m = _SIGNATURE_RE.match(text.strip())
    if m is None:
        raise CorruptHistory(f"malformed signature line: {text.strip()[:200]!r}")
    return Signature(
        name=m.group("name").strip(),
        email=m.group("email").strip(),
        timestamp=int(m.group("ts")),
        tz_offset=m.group("tz") or "+0000",
    )


def _header_encoding(header: bytes) -> str:
    for line in header.split(b"\n"):
        if line.startswith(b"encoding "):
            return line[len(b"encoding ") :].decode("ascii", errors="replace").strip() or "utf-8"
    return "utf-8"


def _decode(data: bytes, encoding: str) -> str:
    try:
        return data.decode(encoding, errors="replace")
    except LookupError:
        return data.decode("utf-8", errors="replace")


def parse_commit_object(sha: str, raw: bytes) -> CommitRecord:
    """
    Decode a raw commit object as printed by `git cat-file commit`:

        tree <id>
        parent <id>          (zero or more)
        author <sig>
        committer <sig>
        [encoding <name>]
        [gpgsig ... / mergetag ... with space-indented continuation lines]

        <message>
    """
    header_b, _, message_b = raw.partition(b"\n\n")
    encoding = _header_encoding(header_b)
    header = _decode(header_b, encoding)

    tree = ""
    parents: list[str] = []
    author: Signature | None = None
    committer: Signature | None = None
    for line in header.split("\n"):
        if not line or line.startswith(" "):
            continue
        key, _, value = line.partition(" ")
        if key == "tree":
            tree = value.strip()
        elif key == "parent":
            parent = value.strip()
            if not is_object_id(parent):
                raise CorruptHistory(f"commit {sha} has a malformed parent id: {parent!r}")
            parents.append(parent)
        elif key == "author":
            author = parse_signature(value)
        elif key == "committer":
            committer = parse_signature(value)

    if not tree or author is None or committer is None:
        raise CorruptHistory(f"commit {sha} is missing tree/author/committer headers")

    message = _decode(message_b, encoding)

    return CommitRecord(
        sha=sha,
        author=author,
        committer=committer,
        parents=tuple(parents),
        message=message.rstrip("\n"),
    )


def parse_numstat_z(out: str) -> list[FileStat]:
    """
    Parse `git diff-tree --numstat -z` output. Plain entries are
    `ins<TAB>del<TAB>path<NUL>`; detected renames leave the path empty and
    append `old<NUL>new<NUL>`. Binary files report `-` for both counts.
    """
    tokens = out.split("\0")
    stats: list[FileStat] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        i += 1
        if not tok:
            continue
        parts = tok.split("\t", 2)
        if len(parts) != 3:
            continue
        added_s, deleted_s, path = parts
        if not path:
            if i + 1 >= len(tokens):
                break
            path = tokens[i + 1]
            i += 2
        if added_s == "-" or deleted_s == "-":
            stats.append(FileStat(path=path, binary=True))
            continue
        try:
            added = int(added_s)
            deleted = int(deleted_s)
        except ValueError:
            continue
        stats.append(FileStat(path=path, insertions=added, deletions=deleted))
    return stats


class GitRepository:
    """
    Read-only access to one local repository through the `git` executable.

    Commit objects are read through a single long-running `git cat-file --batch`
    process (serialized by a lock) and cached; diffs run as independent
    `git diff-tree` calls, so `diff_against_parent` is safe to call from
    worker threads.
    """

    def __init__(self, path: Path) -> None:
        top = get_repo_toplevel(Path(path))
        if top is None:
            raise RepositoryNotFound(f"not a git repository: {path}")
        self.path = top
        self._cache: dict[str, CommitRecord] = {}
        self._lock = threading.Lock()
        self._batch: subprocess.Popen[bytes] | None = None
        self._shallow = self._read_shallow()

    def __enter__(self) -> GitRepository:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            proc = self._batch
            self._batch = None
        if proc is None:
            return
        if proc.stdin is not None:
            proc.stdin.close()
        try:
            proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
        if proc.stdout is not None:
            proc.stdout.close()

    def _read_shallow(self) -> set[str]:
        code, out, _ = run_git(["rev-parse", "--git-path", "shallow"], cwd=self.path)
        if code != 0 or not out.strip():
            return set()
        shallow_file = self.path / out.strip()
        if not shallow_file.is_file():
            return set()
        lines = shallow_file.read_text(encoding="ascii", errors="replace").splitlines()
        return {line.strip() for line in lines if is_object_id(line.strip())}

    def resolve_start(self, ref_name: str) -> str:
        ref = (ref_name or "").strip() or "HEAD"
        if ref.startswith("-"):
            raise RepositoryNotFound(f"invalid reference: {ref!r}")
        code, out, _ = run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], cwd=self.path)
        sha = out.strip()
        if code != 0 or not is_object_id(sha):
            raise RepositoryNotFound(f"unknown reference: {ref!r}")
        return sha

    def _batch_process(self) -> subprocess.Popen[bytes]:
        if self._batch is None or self._batch.poll() is not None:
            self._batch = subprocess.Popen(
                ["git", "cat-file", "--batch"],
                cwd=str(self.path),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        return self._batch

    def _read_object(self, sha: str) -> tuple[str, bytes]:
        with self._lock:
            proc = self._batch_process()
            assert proc.stdin is not None and proc.stdout is not None
            try:
                proc.stdin.write(sha.encode("ascii") + b"\n")
                proc.stdin.flush()
            except BrokenPipeError as e:
                raise CorruptHistory(f"git cat-file exited while reading {sha}") from e
            header = proc.stdout.readline().decode("ascii", errors="replace").strip()
            parts = header.split()
            if len(parts) == 2 and parts[1] == "missing":
                raise CorruptHistory(f"object not in repository: {sha}")
            if len(parts) != 3:
                raise CorruptHistory(f"unexpected git cat-file response for {sha}: {header!r}")
            _, kind, size_s = parts
            try:
                size = int(size_s)
            except ValueError as e:
                raise CorruptHistory(f"unexpected object size for {sha}: {size_s!r}") from e
            body = proc.stdout.read(size)
            proc.stdout.read(1)
        if len(body) != size:
            raise CorruptHistory(f"short read for object {sha} ({len(body)} of {size} bytes)")
        return kind, body

    def read_commit(self, sha: str) -> CommitRecord:
        cached = self._cache.get(sha)
        if cached is not None:
            return cached
        if not is_object_id(sha):
            raise RepositoryNotFound(f"not a commit id: {sha!r}")
        kind, body = self._read_object(sha)
        if kind != "commit":
            raise CorruptHistory(f"object {sha} is a {kind}, expected a commit")
        commit = parse_commit_object(sha, body)
        if sha in self._shallow and commit.parents:
            # Boundary of a shallow clone: the listed parents are not in the object store.
            commit = dataclasses.replace(commit, parents=())
        self._cache[sha] = commit
        return commit

    def parents(self, sha: str) -> list[str]:
        return list(self.read_commit(sha).parents)

    def metadata(self, sha: str) -> dict[str, object]:
        commit = self.read_commit(sha)
        return {
            "author": commit.author,
            "committer": commit.committer,
            "timestamp": commit.timestamp,
            "message": commit.message,
        }

    def diff_against_parent(self, sha: str, parent_index: int = 0, paths: list[str] | None = None) -> list[FileStat]:
        commit = self.read_commit(sha)
        base = ["diff-tree", "-r", "--numstat", "-z", "--no-commit-id", "-M"]
        if commit.parents:
            if not 0 <= parent_index < len(commit.parents):
                raise RepositoryNotFound(f"commit {sha} has no parent #{parent_index}")
            args = [*base, commit.parents[parent_index], sha]
        else:
            args = [*base, "--root", sha]
        if paths:
            args += ["--", *paths]
        try:
            code, out, err = run_git(args, cwd=self.path)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise DiffUnavailable(sha, str(e)) from e
        if code != 0:
            raise DiffUnavailable(sha, err.strip()[:500] or f"git diff-tree exited {code}")
        return parse_numstat_z(out)
