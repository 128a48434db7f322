"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
import yaml

from gardenpub.models.errors import RemoteNotFoundError, RemoteStoreError
from gardenpub.models.publisher import Asset, Assets, CompiledPublishFile, RemoteFile, RemoteWriteRequest
from gardenpub.models.settings import PublishSettings


# Smallest valid PNG: 1x1 transparent pixel.
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class FakeRemoteStore:
    """In-memory stand-in for the GitHub repository client.

    Enforces the hash precondition the way the real store does: an update
    whose ``sha`` does not match the current file is rejected.
    """

    def __init__(self) -> None:
        self.files: dict[str, RemoteFile] = {}
        self.calls: list[tuple[str, Any]] = []
        self.writes: list[RemoteWriteRequest] = []
        self.batch_messages: list[str] = []
        self.fail_with: Exception | None = None
        self.delay: float = 0.0
        self._counter = 0

    def seed(self, path: str, content: str = "") -> RemoteFile:
        remote = RemoteFile(path=path, sha=self._next_sha(), content=content)
        self.files[path] = remote
        return remote

    def _next_sha(self) -> str:
        self._counter += 1
        return f"sha-{self._counter}"

    async def _maybe_fail(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    async def get_file(self, path: str) -> RemoteFile:
        self.calls.append(("get_file", path))
        await self._maybe_fail()
        if path not in self.files:
            raise RemoteNotFoundError(path)
        return self.files[path]

    async def update_file(self, request: RemoteWriteRequest) -> str:
        self.calls.append(("update_file", request.path))
        await self._maybe_fail()
        current = self.files.get(request.path)
        if current is not None and request.sha != current.sha:
            raise RemoteStoreError("sha does not match", status_code=409)
        self.writes.append(request)
        return self.seed(request.path, request.content).sha

    async def delete_file(self, path: str, *, sha: str | None = None, message: str | None = None) -> bool:
        self.calls.append(("delete_file", path))
        await self._maybe_fail()
        return self.files.pop(path, None) is not None

    async def update_files(self, requests: Sequence[RemoteWriteRequest], *, message: str) -> str:
        self.calls.append(("update_files", [request.path for request in requests]))
        await self._maybe_fail()
        self.batch_messages.append(message)
        for request in requests:
            self.writes.append(request)
            self.seed(request.path, request.content)
        return "commit-sha"

    async def delete_files(self, paths: Sequence[str], *, message: str) -> str:
        self.calls.append(("delete_files", list(paths)))
        await self._maybe_fail()
        self.batch_messages.append(message)
        for path in paths:
            self.files.pop(path, None)
        return "commit-sha"


class RecordingNotifier:
    """Notifier keeping every message for assertions."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


def write_note(root: Path, path: str, frontmatter: dict[str, Any] | None = None, body: str = "") -> Path:
    """Create a markdown note below ``root`` and return its filesystem path."""

    target = root / path
    target.parent.mkdir(parents=True, exist_ok=True)
    if frontmatter is None:
        target.write_text(body, encoding="utf-8")
    else:
        header = yaml.safe_dump(frontmatter, sort_keys=False).strip()
        target.write_text(f"---\n{header}\n---\n{body}", encoding="utf-8")
    return target


def write_image(root: Path, path: str, content: bytes = PNG_BYTES) -> Path:
    target = root / path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    return target


@pytest.fixture()
def vault_root(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture()
def add_note(vault_root: Path) -> Callable[..., Path]:
    """Return a helper writing notes into the temporary vault."""

    def _add(path: str, frontmatter: dict[str, Any] | None = None, body: str = "") -> Path:
        return write_note(vault_root, path, frontmatter, body)

    return _add


@pytest.fixture()
def add_image(vault_root: Path) -> Callable[..., Path]:
    """Return a helper writing binary images into the temporary vault."""

    def _add(path: str, content: bytes = PNG_BYTES) -> Path:
        return write_image(vault_root, path, content)

    return _add


@pytest.fixture()
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture()
def export_root(tmp_path: Path) -> Path:
    return tmp_path / "export"


@pytest.fixture()
def settings(vault_root: Path, export_root: Path) -> PublishSettings:
    """Fully configured settings pointing at temporary folders."""

    return PublishSettings(
        github_repo="garden",
        github_user_name="gardener",
        github_token="token-123",
        vault_path=vault_root,
        export_path=export_root,
        operation_timeout=5.0,
    )


@pytest.fixture()
def remote_store() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def make_compiled() -> Callable[..., CompiledPublishFile]:
    """Provide a factory building compiled notes without touching the vault."""

    def _factory(
        path: str = "Notes/First.md",
        *,
        publish: Any = True,
        text: str = "# First\n",
        images: Sequence[tuple[str, bytes]] = (),
        remote_hash: str | None = None,
    ) -> CompiledPublishFile:
        assets = Assets(
            images=tuple(
                Asset(path=image_path, content=base64.b64encode(content).decode("ascii"))
                for image_path, content in images
            )
        )
        frontmatter = {"dg-publish": publish} if publish is not None else {}
        return CompiledPublishFile(
            path=path,
            frontmatter=frontmatter,
            text=text,
            assets=assets,
            remote_hash=remote_hash,
        )

    return _factory
