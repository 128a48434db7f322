"""Snapshot of a vault document taken when the corpus is scanned."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any


@dataclass(slots=True, frozen=True)
class Document:
    """Markdown note read from the vault, split into frontmatter and body."""

    path: str
    frontmatter: dict[str, Any] | None = field(default=None, compare=False)
    body: str = field(default="", repr=False, compare=False)

    @property
    def name(self) -> str:
        """Return the file name without its directory."""

        return PurePosixPath(self.path).name

    @property
    def folder(self) -> str:
        """Return the vault-relative folder containing the document ('' at the root)."""

        parent = str(PurePosixPath(self.path).parent)
        return "" if parent == "." else parent
