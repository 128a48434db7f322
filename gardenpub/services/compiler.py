"""Compile vault notes into publishable text plus the image assets they embed."""

from __future__ import annotations

import base64
import logging
import posixpath
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol
from urllib.parse import quote, unquote

from gardenpub.models.document import Document
from gardenpub.models.publisher import Asset, Assets
from gardenpub.services.frontmatter import dump_frontmatter
from gardenpub.services.vault import Vault


logger = logging.getLogger(__name__)

IMAGE_URL_PREFIX = "/img/user/"
IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".bmp", ".avif"})

_WIKI_EMBED_RE = re.compile(r"!\[\[([^\]|#]+)(?:#[^\]|]*)?(?:\|([^\]]*))?\]\]")
_MARKDOWN_EMBED_RE = re.compile(r"!\[([^\]]*)\]\(<?([^)>\s]+)>?(?:\s+\"[^\"]*\")?\)")
_EXTERNAL_PREFIXES = ("http://", "https://", "data:")


class SupportsCompilation(Protocol):
    """Compiler capability consumed by the selector and the publisher."""

    def extract_image_links(self, document: Document) -> list[str]:
        """Return the vault paths of images embedded by ``document``."""

    def compile(self, document: Document) -> tuple[str, Assets]:
        """Return the compiled text of ``document`` and the assets it embeds."""


@dataclass(slots=True, frozen=True)
class _Embed:
    start: int
    end: int
    target: str
    alt: str


class MarkdownCompiler:
    """Rewrite image embeds to site URLs and collect the embedded files as assets."""

    def __init__(self, vault: Vault) -> None:
        self.vault = vault

    def extract_image_links(self, document: Document) -> list[str]:
        links: list[str] = []
        for embed in self._find_embeds(document.body):
            resolved = self._resolve(embed.target, document)
            if resolved is not None and resolved not in links:
                links.append(resolved)
        return links

    def compile(self, document: Document) -> tuple[str, Assets]:
        body = document.body
        pieces: list[str] = []
        cursor = 0
        images: list[str] = []

        for embed in self._find_embeds(body):
            resolved = self._resolve(embed.target, document)
            if resolved is None:
                continue
            pieces.append(body[cursor:embed.start])
            pieces.append(f"![{embed.alt}]({quote(IMAGE_URL_PREFIX + resolved)})")
            cursor = embed.end
            if resolved not in images:
                images.append(resolved)
        pieces.append(body[cursor:])

        text = dump_frontmatter(document.frontmatter, "".join(pieces))
        return text, Assets(images=tuple(self._load_assets(images)))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _find_embeds(self, body: str) -> list[_Embed]:
        embeds: list[_Embed] = []
        for match in _WIKI_EMBED_RE.finditer(body):
            target = match.group(1).strip()
            alt = (match.group(2) or PurePosixPath(target).stem).strip()
            embeds.append(_Embed(match.start(), match.end(), target, alt))
        for match in _MARKDOWN_EMBED_RE.finditer(body):
            target = match.group(2).strip()
            if target.lower().startswith(_EXTERNAL_PREFIXES):
                continue
            embeds.append(_Embed(match.start(), match.end(), unquote(target), match.group(1)))

        images = [embed for embed in embeds if PurePosixPath(embed.target).suffix.lower() in IMAGE_EXTENSIONS]
        return sorted(images, key=lambda embed: embed.start)

    def _resolve(self, target: str, document: Document) -> str | None:
        """Resolve an embed target to a vault path: exact, note-relative, then by file name."""

        cleaned = target.lstrip("/")
        candidates = [cleaned]
        if document.folder:
            candidates.append(posixpath.join(document.folder, cleaned))

        for candidate in candidates:
            normalized = self.vault.relative_path(candidate)
            if normalized is not None and self.vault.exists(normalized):
                return normalized

        name = PurePosixPath(cleaned).name
        matches = [match for match in self.vault.find_by_name(name) if self.vault.exists(match)]
        if matches:
            if len(matches) > 1:
                logger.debug("Image '%s' is ambiguous; using '%s'", target, matches[0])
            return matches[0]

        logger.warning("Image '%s' embedded in '%s' was not found in the vault", target, document.path)
        return None

    def _load_assets(self, paths: list[str]) -> list[Asset]:
        assets: list[Asset] = []
        for path in paths:
            try:
                content = self.vault.read_binary(path)
            except (OSError, ValueError):
                logger.exception("Could not read image '%s'", path)
                continue
            assets.append(
                Asset(path=IMAGE_URL_PREFIX + path, content=base64.b64encode(content).decode("ascii"))
            )
        return assets
