"""Select the vault notes flagged for publication and the images they embed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Any

from gardenpub.models.document import Document
from gardenpub.models.publisher import CompiledPublishFile
from gardenpub.models.settings import PublishSettings
from gardenpub.services.compiler import SupportsCompilation
from gardenpub.services.frontmatter import has_publish_flag
from gardenpub.services.vault import Vault
from gardenpub.utils.paths import get_garden_path_for_note


logger = logging.getLogger(__name__)


@total_ordering
@dataclass(slots=True, eq=False)
class PublishFile:
    """A note selected for publication, bound to the compiler that renders it."""

    document: Document
    compiler: SupportsCompilation
    settings: PublishSettings
    remote_hash: str | None = None

    @property
    def frontmatter(self) -> dict[str, Any] | None:
        return self.document.frontmatter

    @property
    def vault_path(self) -> str:
        return self.document.path

    def get_path(self) -> str:
        """Return the garden path of the note after applying the rewrite rules."""

        return get_garden_path_for_note(self.document.path, self.settings.rewrite_rules)

    def get_image_links(self) -> list[str]:
        return self.compiler.extract_image_links(self.document)

    def compile(self) -> CompiledPublishFile:
        """Compile the note once into an immutable artifact."""

        text, assets = self.compiler.compile(self.document)
        return CompiledPublishFile(
            path=self.get_path(),
            frontmatter=self.frontmatter,
            text=text,
            assets=assets,
            remote_hash=self.remote_hash,
        )

    def sort_key(self) -> tuple[str, str]:
        path = self.document.path
        return path.casefold(), path

    def compare(self, other: "PublishFile") -> int:
        """Return a negative, zero, or positive number ordering ``self`` against ``other``."""

        mine, theirs = self.sort_key(), other.sort_key()
        return (mine > theirs) - (mine < theirs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublishFile):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other: "PublishFile") -> bool:
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(self.sort_key())


@dataclass(slots=True)
class MarkedForPublishing:
    """Ordered notes and deduplicated image paths chosen for a publish run."""

    notes: list[PublishFile] = field(default_factory=list)
    images: list[str] = field(default_factory=list)


class PublishSelector:
    """Scan the vault and collect every note carrying the publish flag."""

    def __init__(self, vault: Vault, compiler: SupportsCompilation, settings: PublishSettings) -> None:
        self.vault = vault
        self.compiler = compiler
        self.settings = settings

    def should_publish(self, document: Document) -> bool:
        return has_publish_flag(document.frontmatter, self.settings.publish_flag)

    def scan(self) -> MarkedForPublishing:
        """Return the sorted publish candidates and the union of their images.

        A note that cannot be read or compiled is logged and skipped; it never
        aborts the scan of the remaining vault.
        """

        notes: list[PublishFile] = []
        images: set[str] = set()

        for path in self.vault.get_markdown_files():
            try:
                document = self.vault.get_document(path)
                if not self.should_publish(document):
                    continue

                candidate = PublishFile(document=document, compiler=self.compiler, settings=self.settings)
                links = candidate.get_image_links()
                notes.append(candidate)
                images.update(links)
            except Exception:
                logger.exception("Failed to prepare '%s' for publishing", path, extra={"event": "scan.skip"})

        notes.sort()
        logger.info(
            "Marked %d notes and %d images for publishing",
            len(notes),
            len(images),
            extra={"event": "scan.complete"},
        )
        return MarkedForPublishing(notes=notes, images=sorted(images))
