from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from repofolio.domain.entities import Absent, ContentEntry, DirectoryListing, Found, Readme
from repofolio.domain.errors import NotFound, UpstreamError
from repofolio.domain.interfaces import IRepoSource

log = logging.getLogger(__name__)

GITHUB_API_URL   = "https://api.github.com"
API_VERSION      = "2022-11-28"
MAX_RETRIES      = 3
RETRY_DELAY      = 1.0
RETRYABLE_STATUS = {502, 503, 504}


class GitHubRestClient(IRepoSource):
    """
    Concrete implementation of IRepoSource for GitHub's REST API.

    The constructor receives an httpx.AsyncClient (injected) rather than
    creating one internally. This lets callers control the client lifecycle
    and makes testing trivial — just pass a client built on httpx.MockTransport.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        base_url: str = GITHUB_API_URL,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
    ) -> None:
        self._client      = client
        self._base_url    = base_url.rstrip("/")
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._headers = {
            "Accept":               "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    async def _get(self, path: str) -> httpx.Response:
        """
        GET one API path with bounded retry.

        Only transport errors and gateway statuses are retried; every
        other response (including 404) goes straight back to the caller,
        which decides whether it is an error.
        """
        url = f"{self._base_url}{path}"

        for attempt in range(self._max_retries):
            try:
                response = await self._client.get(url, headers=self._headers, timeout=30.0)
            except httpx.RequestError as exc:
                if attempt == self._max_retries - 1:
                    raise UpstreamError(None, f"GET {path} failed: {exc}") from exc
                wait = self._retry_delay * (2 ** attempt)
                log.warning("GET %s attempt %d/%d failed: %s — retrying in %.1fs",
                            path, attempt + 1, self._max_retries, exc, wait)
                await asyncio.sleep(wait)
                continue

            if response.status_code in RETRYABLE_STATUS and attempt < self._max_retries - 1:
                wait = self._retry_delay * (2 ** attempt)
                log.warning("GET %s attempt %d/%d returned %d — retrying in %.1fs",
                            path, attempt + 1, self._max_retries, response.status_code, wait)
                await asyncio.sleep(wait)
                continue

            log.debug("GET %s -> %d", path, response.status_code)
            return response

        # Unreachable: the last attempt always returns or raises.
        raise UpstreamError(None, f"GET {path} exhausted {self._max_retries} attempts")

    @staticmethod
    def _raise_for_status(response: httpx.Response, what: str) -> None:
        if response.is_success:
            return
        message = f"{what}: {_error_message(response)}"
        if response.status_code == 404:
            raise NotFound(message)
        raise UpstreamError(response.status_code, message)

    @staticmethod
    def _json(response: httpx.Response, what: str, *expected: type) -> Any:
        """
        Decode a success body. A proxy or captive portal can answer 200 with
        HTML, so a body that is not JSON of the expected shape is an
        UpstreamError like any other bad response.
        """
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(response.status_code, f"{what}: response is not JSON") from exc
        if expected and not isinstance(payload, expected):
            raise UpstreamError(
                response.status_code, f"{what}: unexpected {type(payload).__name__} payload"
            )
        return payload

    @staticmethod
    def _repo_path(owner: str, repo: str) -> str:
        return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    # IRepoSource implementation
    async def get_repository(self, owner: str, repo: str) -> Mapping[str, Any]:
        response = await self._get(self._repo_path(owner, repo))
        what = f"repository {owner}/{repo}"
        self._raise_for_status(response, what)
        return self._json(response, what, dict)

    async def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        response = await self._get(f"{self._repo_path(owner, repo)}/languages")
        what = f"languages of {owner}/{repo}"
        self._raise_for_status(response, what)
        return {str(name): int(count) for name, count in self._json(response, what, dict).items()}

    async def list_directory(self, owner: str, repo: str, path: str = "") -> DirectoryListing:
        """
        List a directory. 404 becomes Absent so a missing conventional
        folder never reaches the caller as an exception.
        """
        contents = f"{self._repo_path(owner, repo)}/contents"
        if path.strip("/"):
            contents += "/" + quote(path.strip("/"), safe="/")
        response = await self._get(contents)
        if response.status_code == 404:
            log.debug("Directory %r absent in %s/%s", path, owner, repo)
            return Absent(path)
        what = f"contents of {owner}/{repo}:{path or '/'}"
        self._raise_for_status(response, what)

        payload = self._json(response, what, list, dict)
        if not isinstance(payload, list):
            # The path names a file, not a directory.
            return Absent(path)

        entries = tuple(
            entry for item in payload if (entry := self._parse_entry(item)) is not None
        )
        return Found(entries)

    async def get_readme(self, owner: str, repo: str) -> Readme | None:
        response = await self._get(f"{self._repo_path(owner, repo)}/readme")
        if response.status_code == 404:
            return None
        what = f"README of {owner}/{repo}"
        self._raise_for_status(response, what)

        payload = self._json(response, what, dict)
        path    = payload.get("path", "README.md")
        content = payload.get("content") or ""
        if payload.get("encoding", "base64") != "base64":
            return Readme(path=path, text=content, sha=payload.get("sha"))
        try:
            text = base64.b64decode(content).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError) as exc:
            log.warning("Undecodable README in %s/%s: %s", owner, repo, exc)
            return None
        return Readme(path=path, text=text, sha=payload.get("sha"))

    async def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        text: str,
        message: str,
        sha: str | None = None,
    ) -> str:
        """
        Create or replace one file with a single commit. Writes are not
        retried; a stale sha comes back as UpstreamError(409).
        """
        target = f"{self._repo_path(owner, repo)}/contents/{quote(path.strip('/'), safe='/')}"
        body   = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
        }
        if sha:
            body["sha"] = sha

        try:
            response = await self._client.put(
                f"{self._base_url}{target}", headers=self._headers, json=body, timeout=30.0
            )
        except httpx.RequestError as exc:
            raise UpstreamError(None, f"PUT {target} failed: {exc}") from exc

        log.debug("PUT %s -> %d", target, response.status_code)
        what = f"write {path} to {owner}/{repo}"
        self._raise_for_status(response, what)
        commit = self._json(response, what, dict).get("commit") or {}
        return str(commit.get("sha") or "")

    # Anti-Corruption Layer
    @staticmethod
    def _parse_entry(item: Mapping[str, Any]) -> ContentEntry | None:
        try:
            return ContentEntry(
                name         = item["name"],
                path         = item["path"],
                type         = item["type"],
                download_url = item.get("download_url"),
            )
        except (KeyError, TypeError) as exc:
            log.debug("Skipping malformed contents entry %r: %s", item, exc)
            return None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase
