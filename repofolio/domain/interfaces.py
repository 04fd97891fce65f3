"""
Domain Layer — Interfaces (Abstract Contracts)
-----------------------------------------------
These are ABSTRACT definitions of what the infrastructure must provide.
The domain layer defines the shape; the infrastructure layer implements it.

The application layer depends on these, never on GitHubRestClient,
PayPalClient or PostgresProfileStore directly, so tests can hand in a
FakeRepoSource or an in-memory profile store without touching
process-wide state.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Mapping

from .entities import DirectoryListing, LiveSiteScreenshots, PaymentOrder, Readme, UserProfile


class IRepoSource(ABC):
    """
    Contract that any GitHub API client must fulfil.
    Raw JSON for the repository itself is returned as-is; the aggregator
    owns the translation into RepositoryRecord.
    """

    @abstractmethod
    async def get_repository(self, owner: str, repo: str) -> Mapping[str, Any]:
        """GET /repos/{owner}/{repo}. Raises NotFound / UpstreamError."""
        ...

    @abstractmethod
    async def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        """GET /repos/{owner}/{repo}/languages. Raises NotFound / UpstreamError."""
        ...

    @abstractmethod
    async def list_directory(self, owner: str, repo: str, path: str = "") -> DirectoryListing:
        """
        GET /repos/{owner}/{repo}/contents/{path}.

        Returns Absent when the path does not exist; a missing folder is
        expected, not exceptional. Other failures raise UpstreamError.
        """
        ...

    @abstractmethod
    async def get_readme(self, owner: str, repo: str) -> Readme | None:
        """GET /repos/{owner}/{repo}/readme. None when there is no README."""
        ...

    @abstractmethod
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
        PUT /repos/{owner}/{repo}/contents/{path}: create or replace one file.

        Replacing an existing file requires its current blob sha. Returns
        the sha of the new commit. Raises UpstreamError.
        """
        ...


class IProfileStore(ABC):
    """
    Contract for wherever user profiles live (Supabase Postgres in production).
    """

    @abstractmethod
    def get_profile(self, user_id: str) -> UserProfile | None:
        ...

    @abstractmethod
    def increment_portfolio_count(self, user_id: str, limit: int | None = None) -> UserProfile:
        """
        Atomically add one generation. With a limit, a non-premium profile
        already at the limit is left untouched and QuotaExceeded is raised.
        Raises ProfileNotFound.
        """
        ...

    @abstractmethod
    def mark_premium(self, user_id: str, payment_id: str) -> UserProfile:
        """Flip is_premium and record the payment. Raises ProfileNotFound."""
        ...


class IPaymentGateway(ABC):

    @abstractmethod
    async def create_order(self, amount: str, currency: str, description: str) -> PaymentOrder:
        ...

    @abstractmethod
    async def capture_order(self, order_id: str) -> PaymentOrder:
        ...


class IScreenshotService(ABC):

    @abstractmethod
    def capture(self, url: str) -> LiveSiteScreenshots | None:
        """Screenshot URLs for a live site, or None when there is nothing to shoot."""
        ...
