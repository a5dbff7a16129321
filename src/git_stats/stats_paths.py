from __future__ import annotations

import fnmatch


def clean_path(path: str) -> str:
    p = (path or "").replace("\\", "/").strip()
    while p.startswith("./"):
        p = p[2:]
    return p.lstrip("/")


def clean_prefix(prefix: str) -> str:
    return clean_path(prefix).rstrip("/")


def path_in_scope(path: str, prefix: str) -> bool:
    pr = clean_prefix(prefix)
    if not pr:
        return True
    p = clean_path(path)
    return p == pr or p.startswith(pr + "/")


def should_exclude_path(path: str, exclude_prefixes: list[str] | tuple[str, ...], exclude_globs: list[str] | tuple[str, ...]) -> bool:
    p = clean_path(path)
    for pref in exclude_prefixes:
        pr = clean_prefix(pref or "")
        if not pr:
            continue
        pr = pr + "/"
        if p.startswith(pr) or f"/{pr}" in p:
            return True
    for pat in exclude_globs:
        if pat and fnmatch.fnmatch(p, pat):
            return True
    return False


def dir_ancestors(path: str, depth: int) -> list[str]:
    """Directory prefixes of `path`, shortest first, at most `depth` components deep."""
    p = clean_path(path)
    parts = [x for x in p.split("/") if x][:-1]
    if not parts:
        return ["(root)"]
    out: list[str] = []
    for i in range(1, min(len(parts), max(1, depth)) + 1):
        out.append("/".join(parts[:i]))
    return out
