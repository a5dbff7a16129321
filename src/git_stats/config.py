from __future__ import annotations

import json
from pathlib import Path


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    data = json.loads(config_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a JSON object at the top level")
    return data


def config_list(config: dict, key: str) -> list[str]:
    return [str(v).strip() for v in (config.get(key) or []) if str(v).strip()]


def config_bool(config: dict, key: str, default: bool) -> bool:
    value = config.get(key)
    if value is None:
        return default
    return bool(value)


def config_int(config: dict, key: str, default: int) -> int:
    value = config.get(key)
    if value is None or value == "":
        return default
    return int(value)


def config_aliases(config: dict) -> dict[str, str]:
    """
    `aliases` maps a raw author name or email to its replacement, e.g.

        {"aliases": {"ali": "Alice Smith <alice@example.com>", "old@corp.example": "Alice Smith"}}
    """
    raw = config.get("aliases") or {}
    if not isinstance(raw, dict):
        raise ValueError("config.aliases must be an object of raw name/email -> replacement")
    return {str(k): str(v) for k, v in raw.items() if str(k).strip() and str(v).strip()}
