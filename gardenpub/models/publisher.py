"""Data structures exchanged between the compiler, the publisher, and its sinks."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


NOTE_PATH_BASE = "src/site/notes/"
IMAGE_PATH_BASE = "src/site/"


@dataclass(slots=True, frozen=True)
class Asset:
    """Binary resource embedded by a note, carried base64 encoded."""

    path: str
    content: str = field(repr=False)
    remote_hash: str | None = None


@dataclass(slots=True, frozen=True)
class Assets:
    """Ordered collection of assets produced while compiling one note."""

    images: tuple[Asset, ...] = ()

    def __iter__(self):
        return iter(self.images)

    def __len__(self) -> int:
        return len(self.images)


@dataclass(slots=True, frozen=True)
class CompiledPublishFile:
    """Immutable compiled artifact for one note: text plus its assets."""

    path: str
    frontmatter: dict[str, Any] | None
    text: str = field(repr=False)
    assets: Assets = field(default_factory=Assets)
    remote_hash: str | None = None

    @property
    def compiled_file(self) -> tuple[str, Assets]:
        """Return the ``(text, assets)`` pair."""

        return self.text, self.assets

    def get_path(self) -> str:
        return self.path


@dataclass(slots=True, frozen=True)
class RemoteWriteRequest:
    """A single create-or-update mutation against the remote repository."""

    path: str
    content: str = field(repr=False)
    message: str
    sha: str | None = None


@dataclass(slots=True, frozen=True)
class RemoteFile:
    """File metadata returned by a remote read."""

    path: str
    sha: str
    content: str = field(default="", repr=False)


class PublishOutcome(str, Enum):
    """Result kind reported for each file of a batch operation."""

    PUBLISHED = "published"
    SKIPPED = "skipped"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    MISCONFIGURED = "misconfigured"

    @property
    def is_failure(self) -> bool:
        return self not in (PublishOutcome.PUBLISHED, PublishOutcome.SKIPPED)


@dataclass(slots=True)
class BatchResult:
    """Per-file outcomes of a batch publish, write, or delete call."""

    outcomes: dict[str, PublishOutcome] = field(default_factory=dict)

    @classmethod
    def uniform(cls, paths: Iterable[str], outcome: PublishOutcome) -> "BatchResult":
        """Build a result assigning the same outcome to every path."""

        return cls({path: outcome for path in paths})

    def merge(self, other: Mapping[str, PublishOutcome] | "BatchResult") -> "BatchResult":
        """Return a new result containing the outcomes of both operands."""

        extra = other.outcomes if isinstance(other, BatchResult) else other
        return BatchResult({**self.outcomes, **extra})

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when no file in the batch failed."""

        return not any(outcome.is_failure for outcome in self.outcomes.values())

    @property
    def failed(self) -> dict[str, PublishOutcome]:
        return {path: outcome for path, outcome in self.outcomes.items() if outcome.is_failure}

    def __bool__(self) -> bool:
        return self.succeeded

    def to_dict(self) -> dict[str, str]:
        return {path: outcome.value for path, outcome in self.outcomes.items()}
