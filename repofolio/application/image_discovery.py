from __future__ import annotations

import logging

from repofolio.domain.entities import Absent, ContentEntry
from repofolio.domain.errors import UpstreamError
from repofolio.domain.interfaces import IRepoSource
from .readme_images import readme_image_urls

log = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")

# Root folders whose lowercased name contains any of these get searched.
CONVENTIONAL_DIRS = (
    "screenshots", "screenshot", "images", "image", "img",
    "assets", "public", "docs", ".github", "static",
    "media", "resources", "demo",
)

MAX_DEPTH = 3


def is_image(name: str) -> bool:
    return name.lower().endswith(IMAGE_EXTENSIONS)


def is_conventional_dir(name: str) -> bool:
    lowered = name.lower()
    return any(candidate in lowered for candidate in CONVENTIONAL_DIRS)


def path_depth(path: str) -> int:
    """Number of segments in a repository path ("" is the root, depth 0)."""
    return len([part for part in path.strip("/").split("/") if part])


class ImageDiscovery:
    """
    Best-effort search for images that represent a repository.

    Strategies, in order, all feeding one de-duplicating set:
      1. image files at the repository root
      2. conventional folders (screenshots/, assets/, docs/ ...) walked
         recursively, never deeper than MAX_DEPTH path segments
      3. images referenced from the README (Markdown and <img> tags)
      4. the owner's avatar, only when 1–3 found nothing

    Every strategy soft-fails: an upstream error is logged and counts as
    zero results. find_images() never raises UpstreamError.
    """

    def __init__(self, source: IRepoSource, max_depth: int = MAX_DEPTH) -> None:
        self._source    = source
        self._max_depth = max_depth

    async def find_images(
        self,
        owner: str,
        repo: str,
        default_branch: str = "main",
        avatar_url: str | None = None,
    ) -> set[str]:
        images: set[str] = set()

        for entry in await self._list(owner, repo, ""):
            if entry.is_file and is_image(entry.name) and entry.download_url:
                images.add(entry.download_url)
            elif entry.is_dir and is_conventional_dir(entry.name):
                images |= await self.search_path(owner, repo, entry.path, recursive=True)

        images |= await self._readme_images(owner, repo, default_branch)

        if not images and avatar_url:
            log.debug("No images found for %s/%s; falling back to owner avatar", owner, repo)
            images.add(avatar_url)

        log.info("Found %d image(s) for %s/%s", len(images), owner, repo)
        return images

    async def search_path(
        self,
        owner: str,
        repo: str,
        path: str,
        recursive: bool = False,
        depth: int | None = None,
    ) -> set[str]:
        """
        Collect images in `path`, descending into subfolders when recursive.

        `depth` defaults to the number of segments in `path`; anything
        deeper than the cap returns empty without touching the network.
        """
        if depth is None:
            depth = path_depth(path)
        if depth > self._max_depth:
            return set()

        images: set[str] = set()
        for entry in await self._list(owner, repo, path):
            if entry.is_file and is_image(entry.name) and entry.download_url:
                images.add(entry.download_url)
            elif entry.is_dir and recursive:
                images |= await self.search_path(
                    owner, repo, entry.path, recursive=True, depth=depth + 1
                )
        return images

    async def _list(self, owner: str, repo: str, path: str) -> tuple[ContentEntry, ...]:
        try:
            listing = await self._source.list_directory(owner, repo, path)
        except UpstreamError as exc:
            log.warning("Listing %s/%s:%s failed, skipping: %s", owner, repo, path or "/", exc)
            return ()
        if isinstance(listing, Absent):
            return ()
        return listing.entries

    async def _readme_images(self, owner: str, repo: str, branch: str) -> set[str]:
        try:
            readme = await self._source.get_readme(owner, repo)
        except UpstreamError as exc:
            log.warning("README of %s/%s unavailable, skipping: %s", owner, repo, exc)
            return set()
        if readme is None:
            return set()
        return readme_image_urls(readme.text, owner, repo, branch, readme.path)
