"""Helpers for deriving garden paths and URL slugs from vault paths."""
from __future__ import annotations

from dataclasses import dataclass
import re
import unicodedata


_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


@dataclass(slots=True, frozen=True)
class PathRewriteRule:
    """Rewrite vault paths starting with ``source`` so they start with ``target``."""

    source: str
    target: str


def get_rewrite_rules(raw_rules: str) -> list[PathRewriteRule]:
    """Parse newline separated ``from:to`` rules, ignoring malformed lines."""

    rules: list[PathRewriteRule] = []
    for line in (raw_rules or "").splitlines():
        parts = [part.strip() for part in line.split(":")]
        if len(parts) != 2:
            continue
        rules.append(PathRewriteRule(source=parts[0], target=parts[1]))
    return rules


def get_garden_path_for_note(vault_path: str, rules: list[PathRewriteRule]) -> str:
    """Apply the first matching rewrite rule to ``vault_path``."""

    for rule in rules:
        if vault_path and vault_path.startswith(rule.source):
            rewritten = rule.target + vault_path[len(rule.source):]
            return normalize_path(rewritten)
    return vault_path


def normalize_path(path: str) -> str:
    """Strip a single leading separator so the path can be joined onto a root."""

    return path[1:] if path.startswith("/") else path


def slugify(value: str) -> str:
    """Return a lowercase, URL friendly slug for one path segment."""

    normalised = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    normalised = _SLUG_PATTERN.sub("-", normalised.lower()).strip("-")
    return normalised or "note"


def generate_url_path(file_path: str, *, slugify_path: bool = True) -> str:
    """Return the site URL for a note path, e.g. ``Notes/My Note.md`` -> ``/notes/my-note/``."""

    if not file_path:
        return file_path

    stem, dot, _ = file_path.rpartition(".")
    extensionless = stem if dot else file_path
    if not slugify_path:
        return f"{extensionless}/"

    segments = [slugify(segment) for segment in normalize_path(extensionless).split("/") if segment]
    return "/" + "/".join(segments) + "/"


def slugify_note_path(file_path: str) -> str:
    """Return the slugified markdown path for ``file_path`` without a leading separator."""

    url_path = generate_url_path(file_path)
    return url_path.strip("/") + ".md"
