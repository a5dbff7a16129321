from __future__ import annotations

import dataclasses
import datetime as dt


@dataclasses.dataclass(frozen=True)
class Period:
    label: str
    start: dt.date  # inclusive
    end: dt.date  # exclusive

    def bounds(self) -> tuple[int, int]:
        return date_to_timestamp(self.start), date_to_timestamp(self.end)


def date_to_timestamp(d: dt.date) -> int:
    return int(dt.datetime(d.year, d.month, d.day, tzinfo=dt.timezone.utc).timestamp())


def parse_period(spec: str) -> Period:
    s = (spec or "").strip()
    if len(s) == 4 and s.isdigit():
        year = int(s)
        return Period(label=s, start=dt.date(year, 1, 1), end=dt.date(year + 1, 1, 1))
    if len(s) == 6 and s[:4].isdigit() and s[4:].upper() in ("H1", "H2"):
        year = int(s[:4])
        half = s[4:].upper()
        if half == "H1":
            return Period(label=f"{year}H1", start=dt.date(year, 1, 1), end=dt.date(year, 7, 1))
        return Period(label=f"{year}H2", start=dt.date(year, 7, 1), end=dt.date(year + 1, 1, 1))
    if len(s) == 6 and s[:2].upper() in ("H1", "H2") and s[2:].isdigit():
        half = s[:2].upper()
        year = int(s[2:])
        return parse_period(f"{year}{half}")
    raise ValueError(f"Invalid period: {spec!r} (expected YYYY, YYYYH1, or YYYYH2)")


def parse_timestamp(value: str) -> int:
    """
    Accepts a unix timestamp, a date (`2025-01-31`, midnight UTC) or an ISO
    datetime (`2025-01-31T12:00:00+02:00`, naive values are taken as UTC).
    """
    s = (value or "").strip()
    if not s:
        raise ValueError("empty date")
    if s.lstrip("-").isdigit() and len(s) > 8:
        return int(s)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    if len(s) == 10:
        return date_to_timestamp(dt.date.fromisoformat(s))
    d = dt.datetime.fromisoformat(s)
    if d.tzinfo is None:
        d = d.replace(tzinfo=dt.timezone.utc)
    return int(d.timestamp())


def format_timestamp(ts: int | None) -> str:
    if ts is None:
        return ""
    return dt.datetime.fromtimestamp(ts, tz=dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
