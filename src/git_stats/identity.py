from __future__ import annotations

import re

from .models import AuthorIdentity, CommitRecord

_EMAIL_RE = re.compile(r"^[^@\s<>]+@[^@\s<>]+$")
# Repeated keywords ("Co-authored-by: Co-authored-by: ...") are tolerated.
_CO_AUTHOR_RE = re.compile(
    r"^\s*(?:co-authored-by:\s*)+(?P<name>[^<>]*?)\s*<(?P<email>[^<>]*)>\s*$",
    re.IGNORECASE,
)
_SIGNATURE_TEXT_RE = re.compile(r"^(?P<name>[^<>]*?)\s*<(?P<email>[^<>]*)>\s*$")

_TRANSLITERATIONS = {
    "Ä": "Ae",
    "ä": "ae",
    "Ö": "Oe",
    "ö": "oe",
    "Ü": "Ue",
    "ü": "ue",
    "ß": "ss",
}

UNKNOWN_KEY = "(unknown)"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_name(name: str) -> str:
    return " ".join(name.split()).casefold()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(normalize_email(email)))


def transliterate(name: str) -> str:
    return "".join(_TRANSLITERATIONS.get(ch, ch) for ch in name)


def canonical_key(name: str, email: str) -> str:
    if is_valid_email(email):
        return normalize_email(email)
    key = normalize_name(name)
    return key or UNKNOWN_KEY


def parse_co_author_line(line: str) -> tuple[str, str] | None:
    m = _CO_AUTHOR_RE.match(line)
    if m is None:
        return None
    name = m.group("name").strip()
    if not name:
        return None
    return name, m.group("email").strip()


def co_authors_from_message(message: str) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for line in (message or "").splitlines():
        parsed = parse_co_author_line(line)
        if parsed is not None:
            out.append(parsed)
    return out


def parse_signature_text(text: str) -> tuple[str, str]:
    """Split `Name <email>` into its parts; a bare string is taken as a name."""
    s = (text or "").strip()
    m = _SIGNATURE_TEXT_RE.match(s)
    if m is None:
        return s, ""
    return m.group("name").strip(), m.group("email").strip()


class IdentityResolver:
    """
    Many-to-one lookup from raw (name, email) pairs to AuthorIdentity.

    `aliases` maps a raw name (exact match) or a raw email (case-insensitive)
    to a replacement written as `Name <email>` or just `Name`; the replacement
    is applied before the canonical key is computed.
    """

    def __init__(self, aliases: dict[str, str] | None = None, *, transliterate_names: bool = True) -> None:
        self.transliterate_names = transliterate_names
        self._name_aliases: dict[str, tuple[str, str]] = {}
        self._email_aliases: dict[str, tuple[str, str]] = {}
        for raw, replacement in (aliases or {}).items():
            target = parse_signature_text(str(replacement))
            raw_s = str(raw).strip()
            if not raw_s:
                continue
            if is_valid_email(raw_s):
                self._email_aliases[normalize_email(raw_s)] = target
            else:
                self._name_aliases[raw_s] = target
        self._identities: dict[str, AuthorIdentity] = {}

    @property
    def identities(self) -> dict[str, AuthorIdentity]:
        return dict(self._identities)

    def _apply_alias(self, name: str, email: str) -> tuple[str, str]:
        target = self._name_aliases.get(name)
        if target is None and email:
            target = self._email_aliases.get(normalize_email(email))
        if target is None:
            return name, email
        new_name, new_email = target
        return (new_name or name), (new_email or email)

    def resolve(self, name: str, email: str) -> AuthorIdentity:
        name, email = self._apply_alias(name.strip(), email.strip())
        if self.transliterate_names:
            name = transliterate(name)
        key = canonical_key(name, email)
        ident = self._identities.get(key)
        if ident is None:
            ident = AuthorIdentity(key=key, name=name or email or key)
            self._identities[key] = ident
        return ident

    def resolve_commit(self, commit: CommitRecord) -> list[AuthorIdentity]:
        """Primary author first, then co-authors in message order, without repeats."""
        resolved = [self.resolve(commit.author.name, commit.author.email)]
        seen = {resolved[0].key}
        for name, email in co_authors_from_message(commit.message):
            ident = self.resolve(name, email)
            if ident.key in seen:
                continue
            seen.add(ident.key)
            resolved.append(ident)
        return resolved
