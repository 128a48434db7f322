"""Frontmatter parsing and the publish-eligibility checks built on it."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import frontmatter
import yaml


logger = logging.getLogger(__name__)

DEFAULT_PUBLISH_FLAG = "dg-publish"
_DELIMITER = "---"
_HANDLER = frontmatter.YAMLHandler()


def split_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    """Split a markdown document into its YAML frontmatter mapping and body.

    Documents without a leading ``---`` block return ``(None, text)``. A block
    that is not valid YAML, or that does not decode to a mapping, raises
    :class:`yaml.YAMLError` or :class:`ValueError` respectively.
    """

    content = text.lstrip("\ufeff")
    if not _HANDLER.detect(content):
        return None, text

    try:
        raw, body = _HANDLER.split(content)
    except ValueError:
        # Opening delimiter without a closing one.
        return None, text

    data = _HANDLER.load(raw) if raw.strip() else {}
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Frontmatter must be a mapping")
    return data, body.lstrip("\n")


def dump_frontmatter(frontmatter: Mapping[str, Any] | None, body: str) -> str:
    """Render ``frontmatter`` back on top of ``body``."""

    if not frontmatter:
        return body
    rendered = yaml.safe_dump(dict(frontmatter), allow_unicode=True, sort_keys=False).strip()
    return f"{_DELIMITER}\n{rendered}\n{_DELIMITER}\n{body}"


def has_publish_flag(frontmatter: Mapping[str, Any] | None, flag: str = DEFAULT_PUBLISH_FLAG) -> bool:
    """Return ``True`` when the frontmatter carries a truthy publish flag."""

    if not frontmatter:
        return False
    return bool(frontmatter.get(flag))


def is_publish_frontmatter_valid(
    frontmatter: Mapping[str, Any] | None,
    flag: str = DEFAULT_PUBLISH_FLAG,
) -> bool:
    """Return ``True`` when a compiled note may be published."""

    if not has_publish_flag(frontmatter, flag):
        logger.debug("Frontmatter is missing a truthy '%s' flag; skipping", flag)
        return False
    return True
