"""Read-only access to the markdown vault that holds the notes to publish."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path

from gardenpub.models.document import Document
from gardenpub.services.frontmatter import split_frontmatter


logger = logging.getLogger(__name__)

_MARKDOWN_SUFFIXES = frozenset({".md"})


class Vault:
    """Filesystem-backed vault with a per-instance document cache.

    Paths handed in and out are vault-relative and always use ``/`` separators.
    Hidden folders (``.obsidian``, ``.git``, ``.trash``) are never scanned.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self._documents: dict[str, Document] = {}
        self._name_index: dict[str, list[str]] | None = None

    def get_markdown_files(self) -> list[str]:
        """Return every markdown file in the vault, sorted by path."""

        if not self.root.is_dir():
            raise FileNotFoundError(f"Vault path '{self.root}' does not exist")

        return sorted(
            self._relative(path)
            for path in self.root.rglob("*")
            if path.is_file() and path.suffix.lower() in _MARKDOWN_SUFFIXES and not self._is_hidden(path)
        )

    def get_document(self, path: str) -> Document:
        """Return the cached snapshot of ``path``, reading it on first access."""

        cached = self._documents.get(path)
        if cached is not None:
            return cached

        text = self.resolve(path).read_text(encoding="utf-8")
        frontmatter, body = split_frontmatter(text)
        document = Document(path=path, frontmatter=frontmatter, body=body)
        self._documents[path] = document
        return document

    def read_binary(self, path: str) -> bytes:
        return self.resolve(path).read_bytes()

    def exists(self, path: str) -> bool:
        try:
            return self.resolve(path).is_file()
        except ValueError:
            return False

    def relative_path(self, path: str) -> str | None:
        """Return ``path`` as a normalized vault-relative path, or ``None`` when it climbs out of the vault."""

        normalized = posixpath.normpath(path.replace("\\", "/").lstrip("/"))
        if normalized in {".", ".."} or normalized.startswith("../"):
            return None
        return normalized

    def resolve(self, path: str) -> Path:
        """Return the absolute filesystem path for a vault-relative path.

        Raises :class:`ValueError` for paths that leave the vault root, including
        through a symlink.
        """

        relative = self.relative_path(path)
        if relative is None:
            raise ValueError(f"Path '{path}' is outside the vault")

        root = self.root.resolve()
        target = root.joinpath(*relative.split("/")).resolve()
        try:
            target.relative_to(root)
        except ValueError:
            raise ValueError(f"Path '{path}' is outside the vault") from None
        return target

    def find_by_name(self, name: str) -> list[str]:
        """Return vault paths of every non-hidden file called ``name`` (case-insensitive)."""

        if self._name_index is None:
            index: dict[str, list[str]] = {}
            for candidate in self.root.rglob("*"):
                if candidate.is_file() and not self._is_hidden(candidate):
                    index.setdefault(candidate.name.lower(), []).append(self._relative(candidate))
            self._name_index = {key: sorted(value) for key, value in index.items()}
        return list(self._name_index.get(name.lower(), []))

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _is_hidden(self, path: Path) -> bool:
        return any(part.startswith(".") for part in path.relative_to(self.root).parts)
