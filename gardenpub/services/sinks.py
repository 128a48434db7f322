"""Delivery backends for compiled notes: the remote repository and a local mirror."""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TypeVar

from gardenpub.models.errors import (
    ConfigurationError,
    GardenPublishError,
    PublishTimeoutError,
    RemoteNotFoundError,
)
from gardenpub.models.publisher import (
    IMAGE_PATH_BASE,
    NOTE_PATH_BASE,
    Asset,
    BatchResult,
    CompiledPublishFile,
    PublishOutcome,
    RemoteWriteRequest,
)
from gardenpub.services.github import SupportsRemoteStore
from gardenpub.utils.paths import normalize_path, slugify_note_path


logger = logging.getLogger(__name__)

T = TypeVar("T")

BATCH_PUBLISH_MESSAGE = "Published multiple files"
BATCH_DELETE_MESSAGE = "Deleted multiple files"


async def bounded(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Await ``awaitable`` but fail with :class:`PublishTimeoutError` after ``timeout`` seconds.

    The deadline bounds how long the caller waits, not the work itself. A
    coroutine is cancelled on timeout, but a blocking call running through
    :func:`asyncio.to_thread` cannot be interrupted: its thread keeps going and
    the file may still be written after the caller has reported ``timed_out``.
    """

    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        raise PublishTimeoutError(operation, timeout) from None


def outcome_for(error: BaseException) -> PublishOutcome:
    """Map an exception raised during delivery to the outcome reported for a file."""

    if isinstance(error, PublishTimeoutError):
        return PublishOutcome.TIMED_OUT
    if isinstance(error, ConfigurationError):
        return PublishOutcome.MISCONFIGURED
    return PublishOutcome.FAILED


def artifact_keys(files: Sequence[CompiledPublishFile]) -> list[str]:
    """Return the identities of every note and (deduplicated) asset in ``files``."""

    keys: dict[str, None] = {}
    for file in files:
        keys[file.get_path()] = None
        for asset in file.assets:
            keys[asset.path] = None
    return list(keys)


@dataclass(slots=True, frozen=True)
class PathLayout:
    """Single rule mapping note and asset paths to destinations inside a sink.

    Notes land under ``note_root`` and assets under ``image_root``; a leading
    separator is always stripped. With ``slugify_notes`` every note path is
    slugified segment by segment, for every backend alike.
    """

    note_root: str = NOTE_PATH_BASE
    image_root: str = IMAGE_PATH_BASE
    slugify_notes: bool = False

    def note_path(self, note_path: str) -> str:
        relative = normalize_path(note_path)
        if self.slugify_notes:
            relative = slugify_note_path(relative)
        return self.note_root + relative

    def image_path(self, asset_path: str) -> str:
        return self.image_root + normalize_path(asset_path)

    def destination(self, path: str) -> str:
        """Return the destination of a note (``.md``) or asset path."""

        return self.note_path(path) if path.lower().endswith(".md") else self.image_path(path)


class PublishSink(Protocol):
    """Destination capable of receiving compiled notes and their assets."""

    name: str

    async def write_text(self, path: str, text: str, *, remote_hash: str | None = None) -> None:
        """Write the compiled text of the note at garden path ``path``."""

    async def write_asset(self, asset: Asset) -> None:
        """Write one binary asset."""

    async def write_batch(self, files: Sequence[CompiledPublishFile]) -> BatchResult:
        """Write every note and asset of ``files`` and report the outcome per path."""

    async def delete(self, path: str, *, remote_hash: str | None = None) -> bool:
        """Delete the file at the sink-relative ``path``."""

    async def delete_batch(self, paths: Sequence[str]) -> BatchResult:
        """Delete the notes and assets identified by ``paths``."""


class RemoteStoreSink:
    """Sink writing to the remote repository, with base64 content in transit."""

    name = "remote"

    def __init__(self, store: SupportsRemoteStore, *, layout: PathLayout | None = None, timeout: float = 30.0) -> None:
        self.store = store
        self.layout = layout or PathLayout()
        self.timeout = timeout

    async def write_text(self, path: str, text: str, *, remote_hash: str | None = None) -> None:
        content = base64.b64encode(text.encode("utf-8")).decode("ascii")
        await self._upload(self.layout.note_path(path), content, remote_hash)

    async def write_asset(self, asset: Asset) -> None:
        await self._upload(self.layout.image_path(asset.path), asset.content, asset.remote_hash)

    async def write_batch(self, files: Sequence[CompiledPublishFile]) -> BatchResult:
        keys = artifact_keys(files)
        requests = self._batch_requests(files)
        try:
            await bounded(
                self.store.update_files(requests, message=BATCH_PUBLISH_MESSAGE),
                self.timeout,
                f"Batch publish of {len(requests)} files",
            )
        except Exception as exc:
            logger.exception("Batch publish failed", extra={"event": "publish.batch_failed"})
            return BatchResult.uniform(keys, outcome_for(exc))
        return BatchResult.uniform(keys, PublishOutcome.PUBLISHED)

    async def delete(self, path: str, *, remote_hash: str | None = None) -> bool:
        return await bounded(
            self.store.delete_file(path, sha=remote_hash),
            self.timeout,
            f"Delete of {path}",
        )

    async def delete_batch(self, paths: Sequence[str]) -> BatchResult:
        destinations = list(dict.fromkeys(self.layout.destination(path) for path in paths))
        try:
            await bounded(
                self.store.delete_files(destinations, message=BATCH_DELETE_MESSAGE),
                self.timeout,
                f"Batch delete of {len(destinations)} files",
            )
        except Exception as exc:
            logger.exception("Batch delete failed", extra={"event": "delete.batch_failed"})
            return BatchResult.uniform(paths, outcome_for(exc))
        return BatchResult.uniform(paths, PublishOutcome.PUBLISHED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _upload(self, path: str, content: str, remote_hash: str | None) -> None:
        """Create or update ``path``, probing the store for its hash when none is known."""

        message = f"Update content {path}"
        if not remote_hash:
            try:
                remote = await bounded(self.store.get_file(path), self.timeout, f"Lookup of {path}")
                remote_hash = remote.sha
            except RemoteNotFoundError:
                logger.info("File %s does not exist, adding", path)
            if not remote_hash:
                message = f"Add content {path}"

        request = RemoteWriteRequest(path=path, content=content, message=message, sha=remote_hash)
        await bounded(self.store.update_file(request), self.timeout, f"Upload of {path}")

    def _batch_requests(self, files: Sequence[CompiledPublishFile]) -> list[RemoteWriteRequest]:
        requests: dict[str, RemoteWriteRequest] = {}
        for file in files:
            note_path = self.layout.note_path(file.get_path())
            requests[note_path] = RemoteWriteRequest(
                path=note_path,
                content=base64.b64encode(file.text.encode("utf-8")).decode("ascii"),
                message=BATCH_PUBLISH_MESSAGE,
                sha=file.remote_hash,
            )
            for asset in file.assets:
                image_path = self.layout.image_path(asset.path)
                requests.setdefault(
                    image_path,
                    RemoteWriteRequest(
                        path=image_path,
                        content=asset.content,
                        message=BATCH_PUBLISH_MESSAGE,
                        sha=asset.remote_hash,
                    ),
                )
        return list(requests.values())


class LocalFolderSink:
    """Sink mirroring the repository layout into a directory on disk."""

    name = "local"

    def __init__(self, root: Path | str, *, layout: PathLayout | None = None, timeout: float = 30.0) -> None:
        self.root = Path(root)
        self.layout = layout or PathLayout()
        self.timeout = timeout

    async def write_text(self, path: str, text: str, *, remote_hash: str | None = None) -> None:
        _ = remote_hash  # Hashes only matter to the remote repository.
        await self._write(self.layout.note_path(path), text.encode("utf-8"))

    async def write_asset(self, asset: Asset) -> None:
        await self._write(self.layout.image_path(asset.path), base64.b64decode(asset.content))

    async def write_batch(self, files: Sequence[CompiledPublishFile]) -> BatchResult:
        """Write every note and asset concurrently; one failure never blocks its siblings."""

        jobs: dict[str, Awaitable[None]] = {}
        for file in files:
            if file.get_path() not in jobs:
                jobs[file.get_path()] = self.write_text(file.get_path(), file.text)
        for file in files:
            for asset in file.assets:
                if asset.path not in jobs:
                    jobs[asset.path] = self.write_asset(asset)

        results = await asyncio.gather(*jobs.values(), return_exceptions=True)

        outcomes: dict[str, PublishOutcome] = {}
        for key, result in zip(jobs, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Failed to write %s: %s",
                    key,
                    result,
                    exc_info=result,
                    extra={"event": "export.write_failed"},
                )
                outcomes[key] = outcome_for(result)
            else:
                outcomes[key] = PublishOutcome.PUBLISHED
        return BatchResult(outcomes)

    async def delete(self, path: str, *, remote_hash: str | None = None) -> bool:
        _ = remote_hash
        target = self._target(path)
        return await bounded(asyncio.to_thread(_remove_file, target), self.timeout, f"Delete of {target}")

    async def delete_batch(self, paths: Sequence[str]) -> BatchResult:
        results = await asyncio.gather(
            *(self.delete(self.layout.destination(path)) for path in paths),
            return_exceptions=True,
        )
        outcomes: dict[str, PublishOutcome] = {}
        for path, result in zip(paths, results):
            if isinstance(result, BaseException):
                logger.error("Failed to delete %s: %s", path, result, exc_info=result)
                outcomes[path] = outcome_for(result)
            else:
                outcomes[path] = PublishOutcome.PUBLISHED
        return BatchResult(outcomes)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _write(self, relative: str, content: bytes) -> None:
        target = self._target(relative)
        await bounded(asyncio.to_thread(_write_file, target, content), self.timeout, f"Write of {target}")

    def _target(self, relative: str) -> Path:
        """Return the absolute destination, refusing paths that escape the export root."""

        root = self.root.resolve()
        target = (root / normalize_path(relative)).resolve()
        try:
            target.relative_to(root)
        except ValueError:
            raise GardenPublishError(f"Refusing to write outside the export root: {target}") from None
        return target


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    logger.info("File %s written to %s", path.name, path.parent)


def _remove_file(path: Path) -> bool:
    if not path.is_file():
        return False
    path.unlink()
    return True
