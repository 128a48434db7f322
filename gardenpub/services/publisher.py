"""Publisher orchestrating the delivery of compiled notes to the garden repository or a local mirror."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from gardenpub.models.errors import ConfigurationError
from gardenpub.models.publisher import BatchResult, CompiledPublishFile, PublishOutcome
from gardenpub.models.settings import PublishSettings
from gardenpub.services.frontmatter import is_publish_frontmatter_valid
from gardenpub.services.github import GitHubRepositoryClient, SupportsRemoteStore
from gardenpub.services.notifications import LoggingNotifier, Notifier
from gardenpub.services.sinks import (
    LocalFolderSink,
    PathLayout,
    PublishSink,
    RemoteStoreSink,
    artifact_keys,
)


logger = logging.getLogger(__name__)

EXPORT_PATH_MISSING = "Config error: You need to define an export path in the settings"


class Publisher:
    """Deliver compiled notes through a remote or a local sink.

    Settings are validated once, when the publisher is built. Every public
    ``publish*``, ``delete*`` and ``write*`` coroutine reports failure through
    its return value and logs the cause; none of them raise.
    """

    def __init__(
        self,
        settings: PublishSettings,
        *,
        remote_store: SupportsRemoteStore | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.settings = settings
        self.notifier = notifier or LoggingNotifier()
        self.layout = PathLayout(slugify_notes=settings.slugify_paths)
        self._remote_errors = settings.remote_configuration_errors()
        self._remote_store = remote_store
        self._remote_sink: RemoteStoreSink | None = None
        self._local_sink: LocalFolderSink | None = None

    def is_publishable(self, file: CompiledPublishFile) -> bool:
        return is_publish_frontmatter_valid(file.frontmatter, self.settings.publish_flag)

    # ------------------------------------------------------------------
    # Remote repository
    # ------------------------------------------------------------------
    async def publish(self, file: CompiledPublishFile) -> bool:
        """Upload one note and then each of its assets, one at a time."""

        if not self.is_publishable(file):
            return False

        try:
            await self._deliver(self._require_remote(), file)
        except ConfigurationError as exc:
            logger.error("Publishing %s aborted: %s", file.get_path(), exc)
            return False
        except Exception:
            logger.exception("Failed to publish %s", file.get_path(), extra={"event": "publish.failed"})
            return False
        return True

    async def publish_batch(self, files: Sequence[CompiledPublishFile]) -> BatchResult:
        """Publish every valid file in a single remote commit."""

        to_publish, skipped = self._partition(files)
        if not to_publish:
            return skipped

        try:
            sink = self._require_remote()
        except ConfigurationError:
            return skipped.merge(BatchResult.uniform(artifact_keys(to_publish), PublishOutcome.MISCONFIGURED))

        try:
            result = await sink.write_batch(to_publish)
        except Exception:
            logger.exception("Batch publish failed", extra={"event": "publish.batch_failed"})
            result = BatchResult.uniform(artifact_keys(to_publish), PublishOutcome.FAILED)
        return skipped.merge(result)

    async def delete_note(self, vault_file_path: str, sha: str | None = None) -> bool:
        return await self.delete(self.layout.note_path(vault_file_path), sha)

    async def delete_image(self, vault_file_path: str, sha: str | None = None) -> bool:
        return await self.delete(self.layout.image_path(vault_file_path), sha)

    async def delete(self, path: str, sha: str | None = None) -> bool:
        """Delete a repository path; a known ``sha`` saves a lookup round trip."""

        try:
            return bool(await self._require_remote().delete(path, remote_hash=sha))
        except ConfigurationError as exc:
            logger.error("Deleting %s aborted: %s", path, exc)
        except Exception:
            logger.exception("Failed to delete %s", path, extra={"event": "delete.failed"})
        return False

    async def delete_batch(self, file_paths: Sequence[str]) -> BatchResult:
        """Delete notes (``.md`` paths) and assets in a single remote commit."""

        if not file_paths:
            return BatchResult()

        try:
            sink = self._require_remote()
        except ConfigurationError:
            return BatchResult.uniform(file_paths, PublishOutcome.MISCONFIGURED)

        try:
            return await sink.delete_batch(file_paths)
        except Exception:
            logger.exception("Batch delete failed", extra={"event": "delete.batch_failed"})
            return BatchResult.uniform(file_paths, PublishOutcome.FAILED)

    # ------------------------------------------------------------------
    # Local mirror
    # ------------------------------------------------------------------
    async def publish_to_folder(self, file: CompiledPublishFile) -> bool:
        """Write one note and its assets below the configured export path."""

        if not self.is_publishable(file):
            return False

        try:
            await self._deliver(self._require_local(), file)
        except ConfigurationError as exc:
            logger.error("Export of %s aborted: %s", file.get_path(), exc)
            return False
        except Exception:
            logger.exception("Failed to export %s", file.get_path(), extra={"event": "export.failed"})
            return False
        return True

    async def publish_write_batch(self, files: Sequence[CompiledPublishFile]) -> BatchResult:
        """Export every valid file concurrently, reporting the outcome of each write."""

        to_write, skipped = self._partition(files)
        if not to_write:
            return skipped

        try:
            sink = self._require_local()
        except ConfigurationError:
            return skipped.merge(BatchResult.uniform(artifact_keys(to_write), PublishOutcome.MISCONFIGURED))

        try:
            result = await sink.write_batch(to_write)
        except Exception:
            logger.exception("Export batch failed", extra={"event": "export.batch_failed"})
            result = BatchResult.uniform(artifact_keys(to_write), PublishOutcome.FAILED)
        return skipped.merge(result)

    async def write_these_files(self, files: Sequence[CompiledPublishFile]) -> None:
        """Write ``files`` to the export path without validating their frontmatter."""

        if not files:
            return
        try:
            result = await self._require_local().write_batch(files)
        except ConfigurationError as exc:
            logger.error("Export aborted: %s", exc)
            return
        except Exception:
            logger.exception("Export batch failed", extra={"event": "export.batch_failed"})
            return
        if not result.succeeded:
            logger.warning("%d of %d exports failed", len(result.failed), len(result.outcomes))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _deliver(self, sink: PublishSink, file: CompiledPublishFile) -> None:
        text, assets = file.compiled_file
        await sink.write_text(file.get_path(), text, remote_hash=file.remote_hash)
        for asset in assets:
            await sink.write_asset(asset)

    def _partition(self, files: Sequence[CompiledPublishFile]) -> tuple[list[CompiledPublishFile], BatchResult]:
        valid: list[CompiledPublishFile] = []
        skipped = BatchResult()
        for file in files:
            if self.is_publishable(file):
                valid.append(file)
            else:
                skipped.outcomes[file.get_path()] = PublishOutcome.SKIPPED
        return valid, skipped

    def _require_remote(self) -> RemoteStoreSink:
        """Return the remote sink, or notify and raise when the settings are incomplete."""

        if self._remote_errors:
            message = self._remote_errors[0]
            self.notifier.notify(message)
            raise ConfigurationError(message)

        if self._remote_sink is None:
            store = self._remote_store or GitHubRepositoryClient.from_settings(self.settings)
            self._remote_sink = RemoteStoreSink(
                store,
                layout=self.layout,
                timeout=self.settings.operation_timeout,
            )
        return self._remote_sink

    def _require_local(self) -> LocalFolderSink:
        if self.settings.export_path is None:
            self.notifier.notify(EXPORT_PATH_MISSING)
            raise ConfigurationError(EXPORT_PATH_MISSING)

        if self._local_sink is None:
            self._local_sink = LocalFolderSink(
                self.settings.export_path,
                layout=self.layout,
                timeout=self.settings.operation_timeout,
            )
        return self._local_sink
