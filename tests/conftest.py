from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Mapping

import httpx
import pytest

from repofolio.domain.entities import (
    Absent,
    ContentEntry,
    Found,
    LiveSiteScreenshots,
    PaymentOrder,
    Readme,
    UserProfile,
)
from repofolio.domain.errors import NotFound, ProfileNotFound, QuotaExceeded, UpstreamError
from repofolio.domain.interfaces import (
    IPaymentGateway,
    IProfileStore,
    IRepoSource,
    IScreenshotService,
)


def image(path: str) -> ContentEntry:
    name = path.rsplit("/", 1)[-1]
    return ContentEntry(name=name, path=path, type="file", download_url=f"https://dl.test/{path}")


def folder(path: str) -> ContentEntry:
    return ContentEntry(name=path.rsplit("/", 1)[-1], path=path, type="dir")


class FakeRepoSource(IRepoSource):
    """In-memory GitHub: directories keyed by path, "" is the root."""

    def __init__(
        self,
        metadata: Mapping[str, Any] | None = None,
        languages: dict[str, int] | None = None,
        tree: dict[str, list[ContentEntry]] | None = None,
        readme: Readme | None = None,
        failing_paths: set[str] | None = None,
        readme_error: UpstreamError | None = None,
        metadata_error: UpstreamError | None = None,
    ) -> None:
        self.metadata       = dict(metadata or {"name": "repo", "owner": {"login": "owner"}})
        self.languages      = dict(languages or {})
        self.tree           = tree or {}
        self.readme         = readme
        self.failing_paths  = failing_paths or set()
        self.readme_error   = readme_error
        self.metadata_error = metadata_error
        self.listed: list[str] = []
        self.written: list[dict[str, Any]] = []
        self.calls = 0

    async def get_repository(self, owner, repo):
        self.calls += 1
        if self.metadata_error:
            raise self.metadata_error
        return self.metadata

    async def get_languages(self, owner, repo):
        self.calls += 1
        return self.languages

    async def list_directory(self, owner, repo, path=""):
        self.calls += 1
        self.listed.append(path)
        if path in self.failing_paths:
            raise UpstreamError(500, f"boom at {path}")
        if path not in self.tree:
            return Absent(path)
        return Found(tuple(self.tree[path]))

    async def get_readme(self, owner, repo):
        self.calls += 1
        if self.readme_error:
            raise self.readme_error
        return self.readme

    async def put_file(self, owner, repo, path, text, message, sha=None):
        self.written.append({"path": path, "text": text, "message": message, "sha": sha})
        return f"commit-{len(self.written)}"


class InMemoryProfileStore(IProfileStore):

    def __init__(self, *profiles: UserProfile) -> None:
        self.profiles = {p.id: p for p in profiles}

    def get_profile(self, user_id):
        return self.profiles.get(user_id)

    def increment_portfolio_count(self, user_id, limit=None):
        profile = self.profiles.get(user_id)
        if profile is None:
            raise ProfileNotFound(user_id)
        if limit is not None and not profile.is_premium and profile.portfolios_generated >= limit:
            raise QuotaExceeded(user_id, profile.portfolios_generated, limit)
        profile = replace(profile, portfolios_generated=profile.portfolios_generated + 1)
        self.profiles[user_id] = profile
        return profile

    def mark_premium(self, user_id, payment_id):
        profile = self.profiles.get(user_id)
        if profile is None:
            raise ProfileNotFound(user_id)
        profile = replace(
            profile,
            is_premium=True,
            payment_id=payment_id,
            payment_completed_at="2026-01-01T00:00:00+00:00",
        )
        self.profiles[user_id] = profile
        return profile


class StubScreenshots(IScreenshotService):

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.urls: list[str] = []

    def capture(self, url):
        self.urls.append(url)
        if self.fail:
            raise RuntimeError("screenshot service down")
        return LiveSiteScreenshots(desktop=f"desktop:{url}", mobile=f"mobile:{url}")


class StubGateway(IPaymentGateway):

    def __init__(self, capture_status: str = "COMPLETED") -> None:
        self.capture_status = capture_status
        self.created: list[tuple[str, str, str]] = []
        self.captured: list[str] = []

    async def create_order(self, amount, currency, description):
        self.created.append((amount, currency, description))
        return PaymentOrder(id="ORDER-1", status="CREATED")

    async def capture_order(self, order_id):
        self.captured.append(order_id)
        return PaymentOrder(id=order_id, status=self.capture_status)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def profile(user_id: str = "user-1", generated: int = 0, premium: bool = False) -> UserProfile:
    return UserProfile(
        id=user_id,
        email=f"{user_id}@example.com",
        portfolios_generated=generated,
        is_premium=premium,
    )


@pytest.fixture
def not_found() -> NotFound:
    return NotFound("repository owner/repo: Not Found")
