from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Mapping
from urllib.parse import urlparse

from repofolio.domain.entities import RepoCoordinates, RepositoryRecord
from repofolio.domain.errors import InvalidUrl
from repofolio.domain.interfaces import IRepoSource
from .image_discovery import ImageDiscovery

log = logging.getLogger(__name__)

GITHUB_HOSTS       = {"github.com", "www.github.com"}
DEFAULT_BRANCH     = "main"
VISIBILITIES       = {"public", "private", "internal"}
_SEGMENT_RE        = re.compile(r"^[A-Za-z0-9_.\-]+$")


def parse_repository_url(url: str) -> RepoCoordinates:
    """
    Split https://github.com/{owner}/{repo}[.git] into its two parts.

    Extra segments (/tree/main/src, /issues ...) are ignored. Anything
    that is not a github.com URL with at least two path segments raises
    InvalidUrl before a single request is made.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrl(str(url))

    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    try:
        parsed = urlparse(candidate)
    except ValueError as exc:
        raise InvalidUrl(url) from exc

    if parsed.scheme not in ("http", "https") or (parsed.hostname or "") not in GITHUB_HOSTS:
        raise InvalidUrl(url)

    segments = [part for part in parsed.path.split("/") if part]
    if len(segments) < 2:
        raise InvalidUrl(url)

    owner, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    for segment in (owner, repo):
        if not _SEGMENT_RE.match(segment) or not segment.strip("."):
            raise InvalidUrl(url)

    return RepoCoordinates(owner=owner, repo=repo)


def _visibility(data: Mapping[str, Any]) -> str:
    value = data.get("visibility")
    if value in VISIBILITIES:
        return value
    return "private" if data.get("private") else "public"


class RepoAggregator:
    """
    The one use case everything else builds on: URL in, RepositoryRecord out.

    Metadata and language counts are fetched concurrently and are
    all-or-nothing: either failing propagates NotFound / UpstreamError.
    Image discovery runs afterwards (it needs the default branch and the
    owner avatar) and never fails the aggregation.
    """

    def __init__(self, source: IRepoSource, discovery: ImageDiscovery | None = None) -> None:
        self._source    = source
        self._discovery = discovery or ImageDiscovery(source)

    async def aggregate(self, repository_url: str) -> RepositoryRecord:
        coords = parse_repository_url(repository_url)
        log.info("Aggregating %s", coords.full_name)

        metadata, languages = await self._fetch_core(coords)

        owner_data     = metadata.get("owner") or {}
        owner          = owner_data.get("login") or coords.owner
        name           = metadata.get("name") or coords.repo
        default_branch = metadata.get("default_branch") or DEFAULT_BRANCH
        avatar_url     = owner_data.get("avatar_url")

        images = await self._discovery.find_images(owner, name, default_branch, avatar_url)

        return RepositoryRecord(
            owner            = owner,
            name             = name,
            description      = metadata.get("description") or None,
            homepage_url     = metadata.get("homepage") or None,
            html_url         = metadata.get("html_url") or f"https://github.com/{owner}/{name}",
            primary_language = metadata.get("language") or None,
            star_count       = int(metadata.get("stargazers_count") or 0),
            fork_count       = int(metadata.get("forks_count") or 0),
            watcher_count    = int(metadata.get("subscribers_count") or metadata.get("watchers_count") or 0),
            created_at       = metadata.get("created_at"),
            updated_at       = metadata.get("updated_at"),
            visibility       = _visibility(metadata),
            default_branch   = default_branch,
            owner_avatar_url = avatar_url,
            topics           = tuple(metadata.get("topics") or ()),
            language_bytes   = languages,
            images           = frozenset(images),
        )

    async def _fetch_core(self, coords: RepoCoordinates) -> tuple[Mapping[str, Any], dict[str, int]]:
        # gather() returns on the first failure but leaves the sibling running,
        # so the survivor is cancelled and awaited before the error propagates.
        tasks = [
            asyncio.ensure_future(self._source.get_repository(coords.owner, coords.repo)),
            asyncio.ensure_future(self._source.get_languages(coords.owner, coords.repo)),
        ]
        try:
            metadata, languages = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return metadata, languages
