"""FastAPI application exposing scan, publish, export, and delete for the garden."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError, field_validator

from gardenpub.models.publisher import BatchResult
from gardenpub.models.settings import PublishSettings
from gardenpub.services.compiler import MarkdownCompiler
from gardenpub.services.config import load_settings
from gardenpub.services.notifications import LoggingNotifier
from gardenpub.services.pipeline import GardenPipeline, PipelineResult
from gardenpub.services.publisher import Publisher
from gardenpub.services.selection import PublishSelector
from gardenpub.services.vault import Vault

app = FastAPI(title="Garden Publisher")

logger = logging.getLogger(__name__)


class MarkedResponse(BaseModel):
    """Notes and images currently marked for publishing."""

    notes: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)


class DeliveryResponse(BaseModel):
    """Outcome of a publish, export, or delete request."""

    succeeded: bool
    outcomes: dict[str, str] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_pipeline(cls, result: PipelineResult) -> "DeliveryResponse":
        return cls(
            succeeded=result.succeeded,
            outcomes=result.result.to_dict() if result.result is not None else {},
            errors=list(result.errors),
            warnings=list(result.warnings),
        )

    @classmethod
    def from_batch(cls, result: BatchResult) -> "DeliveryResponse":
        return cls(succeeded=result.succeeded, outcomes=result.to_dict())


class DeleteRequest(BaseModel):
    """Paths of notes (``.md``) and assets to remove from the repository."""

    paths: list[str] = Field(..., description="Note or asset paths to delete.")

    @field_validator("paths")
    @classmethod
    def _clean_paths(cls, value: list[str]) -> list[str]:
        cleaned = [path.strip() for path in value if path and path.strip()]
        if not cleaned:
            raise ValueError("At least one path must be provided.")
        return cleaned


@lru_cache(maxsize=1)
def _cached_settings() -> PublishSettings:
    return load_settings()


def get_settings() -> PublishSettings:
    """FastAPI dependency returning the settings loaded from file and environment."""

    try:
        return _cached_settings()
    except (FileNotFoundError, ValidationError, ValueError) as exc:
        logger.exception("Settings could not be loaded", extra={"event": "settings.invalid"})
        raise HTTPException(
            status_code=500,
            detail={"message": "Publisher configuration is invalid", "debug": str(exc)},
        ) from exc


def get_pipeline(settings: PublishSettings = Depends(get_settings)) -> GardenPipeline:
    """FastAPI dependency wiring the vault, compiler, selector, and publisher."""

    vault = Vault(settings.vault_path)
    compiler = MarkdownCompiler(vault)
    selector = PublishSelector(vault, compiler, settings)
    publisher = Publisher(settings, notifier=LoggingNotifier())
    return GardenPipeline(selector=selector, publisher=publisher)


def _require_remote(settings: PublishSettings) -> None:
    problems = settings.remote_configuration_errors()
    if problems:
        raise HTTPException(status_code=400, detail={"message": problems[0], "problems": problems})


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/api/marked", response_model=MarkedResponse)
async def list_marked(pipeline: GardenPipeline = Depends(get_pipeline)) -> MarkedResponse:
    """Return the notes and images that the next publish would include."""

    try:
        marked = pipeline.selector.scan()
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return MarkedResponse(notes=[note.get_path() for note in marked.notes], images=list(marked.images))


@app.post("/api/publish", response_model=DeliveryResponse)
async def publish_marked(
    settings: PublishSettings = Depends(get_settings),
    pipeline: GardenPipeline = Depends(get_pipeline),
) -> DeliveryResponse:
    """Publish every marked note to the garden repository in one commit."""

    _require_remote(settings)
    result = await pipeline.publish()
    logger.info(
        "Publish request finished",
        extra={"event": "api.publish", "succeeded": result.succeeded, "notes": len(result.compiled)},
    )
    return DeliveryResponse.from_pipeline(result)


@app.post("/api/export", response_model=DeliveryResponse)
async def export_marked(
    settings: PublishSettings = Depends(get_settings),
    pipeline: GardenPipeline = Depends(get_pipeline),
) -> DeliveryResponse:
    """Mirror every marked note below the configured export path."""

    if settings.export_path is None:
        raise HTTPException(status_code=400, detail={"message": "Export path is not configured"})
    return DeliveryResponse.from_pipeline(await pipeline.export())


@app.post("/api/delete", response_model=DeliveryResponse)
async def delete_paths(
    payload: DeleteRequest,
    settings: PublishSettings = Depends(get_settings),
    pipeline: GardenPipeline = Depends(get_pipeline),
) -> DeliveryResponse:
    """Delete notes and assets from the garden repository in one commit."""

    _require_remote(settings)
    return DeliveryResponse.from_batch(await pipeline.delete(payload.paths))
