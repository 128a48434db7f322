"""Async client for the GitHub repository that hosts the published garden."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from gardenpub.models.errors import RemoteNotFoundError, RemoteStoreError
from gardenpub.models.publisher import RemoteFile, RemoteWriteRequest
from gardenpub.models.settings import PublishSettings


logger = logging.getLogger(__name__)

_FILE_MODE = "100644"


class SupportsRemoteStore(Protocol):
    """Remote repository capability used by :class:`~gardenpub.services.sinks.RemoteStoreSink`."""

    async def get_file(self, path: str) -> RemoteFile:
        """Return the current file at ``path`` or raise :class:`RemoteNotFoundError`."""

    async def update_file(self, request: RemoteWriteRequest) -> str:
        """Create or update a single file and return its new hash."""

    async def delete_file(self, path: str, *, sha: str | None = None, message: str | None = None) -> bool:
        """Delete a single file, returning ``False`` when it does not exist."""

    async def update_files(self, requests: Sequence[RemoteWriteRequest], *, message: str) -> str:
        """Write every request in one commit and return the commit hash."""

    async def delete_files(self, paths: Sequence[str], *, message: str) -> str:
        """Delete every path in one commit and return the commit hash."""


class GitHubRepositoryClient:
    """Stateless facade over the GitHub contents and Git data APIs.

    Each public call opens its own :class:`httpx.AsyncClient`, so one instance
    can be shared freely; nothing is cached between calls.
    """

    _DEFAULT_HEADERS: Mapping[str, str] = {
        "Accept": "application/vnd.github+json",
        "User-Agent": "garden-publisher/1.0",
        "X-GitHub-Api-Version": "2022-11-28",
    }

    def __init__(
        self,
        owner: str,
        repository: str,
        token: str,
        *,
        api_url: str = "https://api.github.com",
        branch: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.owner = owner
        self.repository = repository
        self.branch = branch
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: PublishSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "GitHubRepositoryClient":
        return cls(
            settings.github_user_name,
            settings.github_repo,
            settings.github_token,
            api_url=settings.github_api_url,
            branch=settings.branch,
            timeout=settings.operation_timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Single-file operations (contents API)
    # ------------------------------------------------------------------
    async def get_file(self, path: str) -> RemoteFile:
        async with self._client() as client:
            return await self._get_file(client, path)

    async def update_file(self, request: RemoteWriteRequest) -> str:
        payload: dict[str, Any] = {"message": request.message, "content": request.content}
        if request.sha:
            payload["sha"] = request.sha
        if self.branch:
            payload["branch"] = self.branch

        async with self._client() as client:
            data = await self._request(client, "PUT", self._contents_url(request.path), json=payload)

        sha = str((data.get("content") or {}).get("sha") or "")
        logger.info("%s (%s)", request.message, sha[:7] or "no sha", extra={"event": "github.update_file"})
        return sha

    async def delete_file(self, path: str, *, sha: str | None = None, message: str | None = None) -> bool:
        async with self._client() as client:
            if not sha:
                try:
                    sha = (await self._get_file(client, path)).sha
                except RemoteNotFoundError:
                    logger.info("File %s does not exist, nothing to delete", path)
                    return False

            payload: dict[str, Any] = {"message": message or f"Delete content {path}", "sha": sha}
            if self.branch:
                payload["branch"] = self.branch
            try:
                await self._request(client, "DELETE", self._contents_url(path), json=payload)
            except RemoteNotFoundError:
                return False

        logger.info("Deleted %s", path, extra={"event": "github.delete_file"})
        return True

    # ------------------------------------------------------------------
    # Batch operations (git data API, one commit per call)
    # ------------------------------------------------------------------
    async def update_files(self, requests: Sequence[RemoteWriteRequest], *, message: str) -> str:
        async with self._client() as client:
            blob_shas = await asyncio.gather(*(self._create_blob(client, request) for request in requests))
            entries = [
                {"path": request.path, "mode": _FILE_MODE, "type": "blob", "sha": blob_sha}
                for request, blob_sha in zip(requests, blob_shas)
            ]
            return await self._commit_tree(client, entries, message)

    async def delete_files(self, paths: Sequence[str], *, message: str) -> str:
        entries = [{"path": path, "mode": _FILE_MODE, "type": "blob", "sha": None} for path in paths]
        async with self._client() as client:
            return await self._commit_tree(client, entries, message)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        headers = dict(self._DEFAULT_HEADERS)
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        async with httpx.AsyncClient(
            base_url=self._api_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            yield client

    @property
    def _repo_url(self) -> str:
        return f"/repos/{self.owner}/{self.repository}"

    def _contents_url(self, path: str) -> str:
        return f"{self._repo_url}/contents/{quote(path.lstrip('/'), safe='/')}"

    async def _get_file(self, client: httpx.AsyncClient, path: str) -> RemoteFile:
        params = {"ref": self.branch} if self.branch else None
        try:
            data = await self._request(client, "GET", self._contents_url(path), params=params)
        except RemoteNotFoundError:
            raise RemoteNotFoundError(path) from None
        if not isinstance(data, dict) or "sha" not in data:
            raise RemoteStoreError(f"Remote path '{path}' is not a file")
        content = str(data.get("content") or "").replace("\n", "")
        return RemoteFile(path=path, sha=str(data["sha"]), content=content)

    async def _create_blob(self, client: httpx.AsyncClient, request: RemoteWriteRequest) -> str:
        data = await self._request(
            client,
            "POST",
            f"{self._repo_url}/git/blobs",
            json={"content": request.content, "encoding": "base64"},
        )
        return str(data["sha"])

    async def _resolve_branch(self, client: httpx.AsyncClient) -> str:
        if self.branch:
            return self.branch
        data = await self._request(client, "GET", self._repo_url)
        return str(data.get("default_branch") or "main")

    async def _commit_tree(self, client: httpx.AsyncClient, entries: list[dict[str, Any]], message: str) -> str:
        branch = await self._resolve_branch(client)
        ref_url = f"{self._repo_url}/git/refs/heads/{quote(branch, safe='')}"

        ref = await self._request(client, "GET", f"{self._repo_url}/git/ref/heads/{quote(branch, safe='')}")
        parent_sha = str(ref["object"]["sha"])
        parent = await self._request(client, "GET", f"{self._repo_url}/git/commits/{parent_sha}")

        tree = await self._request(
            client,
            "POST",
            f"{self._repo_url}/git/trees",
            json={"base_tree": parent["tree"]["sha"], "tree": entries},
        )
        commit = await self._request(
            client,
            "POST",
            f"{self._repo_url}/git/commits",
            json={"message": message, "tree": tree["sha"], "parents": [parent_sha]},
        )
        await self._request(client, "PATCH", ref_url, json={"sha": commit["sha"]})

        logger.info(
            "%s: %d entries committed as %s",
            message,
            len(entries),
            str(commit["sha"])[:7],
            extra={"event": "github.commit"},
        )
        return str(commit["sha"])

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> Any:
        response = await client.request(method, url, **kwargs)
        if response.status_code == 404:
            raise RemoteNotFoundError(url)
        if response.is_error:
            detail = _error_detail(response)
            raise RemoteStoreError(
                f"GitHub {method} {url} failed with {response.status_code}: {detail}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        return response.json()


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase
