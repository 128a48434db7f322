"""Orchestration layer that chains selection, compilation, and delivery."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from gardenpub.models.publisher import BatchResult, CompiledPublishFile, PublishOutcome
from gardenpub.services.selection import MarkedForPublishing


logger = logging.getLogger(__name__)


class SupportsSelection(Protocol):
    """Subset of :class:`PublishSelector` relied on by the pipeline."""

    def scan(self) -> MarkedForPublishing:
        """Return the notes and images marked for publishing."""


class SupportsBatchPublishing(Protocol):
    """Subset of :class:`Publisher` relied on by the pipeline."""

    async def publish_batch(self, files: Sequence[CompiledPublishFile]) -> BatchResult:
        """Publish ``files`` to the remote repository."""

    async def publish_write_batch(self, files: Sequence[CompiledPublishFile]) -> BatchResult:
        """Write ``files`` to the local export folder."""

    async def delete_batch(self, file_paths: Sequence[str]) -> BatchResult:
        """Delete ``file_paths`` from the remote repository."""


@dataclass(slots=True)
class PipelineResult:
    """Structured summary of one publish or export run."""

    marked: MarkedForPublishing
    compiled: list[CompiledPublishFile] = field(default_factory=list)
    result: BatchResult | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when every compiled file was delivered and nothing failed to compile."""

        return self.result is not None and self.result.succeeded and not self.errors


@dataclass(slots=True)
class GardenPipeline:
    """Coordinate the workflow from vault scan through delivery."""

    selector: SupportsSelection
    publisher: SupportsBatchPublishing

    def compile_marked(self, marked: MarkedForPublishing) -> tuple[list[CompiledPublishFile], list[str]]:
        """Compile every marked note once, collecting an error message per failure."""

        compiled: list[CompiledPublishFile] = []
        errors: list[str] = []
        for note in marked.notes:
            try:
                compiled.append(note.compile())
            except Exception as exc:
                logger.exception("Compiling %s failed", note.vault_path, extra={"event": "pipeline.compile"})
                errors.append(f"Compiler failed for '{note.vault_path}': {exc}")
        return compiled, errors

    async def publish(self) -> PipelineResult:
        """Scan, compile, and publish every marked note in one remote commit."""

        return await self._run(remote=True)

    async def export(self) -> PipelineResult:
        """Scan, compile, and mirror every marked note to the export folder."""

        return await self._run(remote=False)

    async def delete(self, file_paths: Sequence[str]) -> BatchResult:
        return await self.publisher.delete_batch(file_paths)

    async def _run(self, *, remote: bool) -> PipelineResult:
        marked = self.selector.scan()
        if not marked.notes:
            return PipelineResult(
                marked=marked,
                result=BatchResult(),
                warnings=["No notes are marked for publishing."],
            )

        compiled, errors = self.compile_marked(marked)
        if remote:
            result = await self.publisher.publish_batch(compiled)
        else:
            result = await self.publisher.publish_write_batch(compiled)

        warnings = [
            f"Skipped '{path}': publish flag missing"
            for path, outcome in result.outcomes.items()
            if outcome is PublishOutcome.SKIPPED
        ]
        errors.extend(f"Delivery of '{path}' ended as {outcome.value}" for path, outcome in result.failed.items())
        return PipelineResult(marked=marked, compiled=compiled, result=result, errors=errors, warnings=warnings)
