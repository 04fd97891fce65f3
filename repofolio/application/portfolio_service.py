from __future__ import annotations

import logging
from datetime import datetime, timezone

from repofolio.domain.entities import Portfolio, RepositoryRecord, UserProfile
from repofolio.domain.errors import ProfileNotFound, QuotaExceeded
from repofolio.domain.interfaces import IProfileStore, IScreenshotService
from .aggregator import RepoAggregator
from .languages import language_percentages

log = logging.getLogger(__name__)

FREE_GENERATIONS = 3


def find_live_site_url(record: RepositoryRecord) -> str | None:
    """The deployed site of a repository is whatever it lists as homepage."""
    homepage = (record.homepage_url or "").strip()
    return homepage or None


def remaining_generations(profile: UserProfile, limit: int = FREE_GENERATIONS) -> int | None:
    """None means unlimited (premium)."""
    if profile.is_premium:
        return None
    return max(0, limit - profile.portfolios_generated)


class PortfolioService:
    """
    The top-level use case: build a portfolio for a signed-in user.

    Receives all dependencies via constructor injection.
    Knows the sequence (quota check → aggregate → screenshots → count)
    but not how any step talks to the outside world.
    """

    def __init__(
        self,
        aggregator: RepoAggregator,
        profiles: IProfileStore,
        screenshots: IScreenshotService | None = None,
        free_generations: int = FREE_GENERATIONS,
    ) -> None:
        self._aggregator       = aggregator
        self._profiles         = profiles
        self._screenshots      = screenshots
        self._free_generations = free_generations

    def check_quota(self, user_id: str) -> UserProfile:
        profile = self._profiles.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound(user_id)
        if not profile.is_premium and profile.portfolios_generated >= self._free_generations:
            log.info("User %s hit the free tier (%d/%d)",
                     user_id, profile.portfolios_generated, self._free_generations)
            raise QuotaExceeded(user_id, profile.portfolios_generated, self._free_generations)
        return profile

    async def generate(self, user_id: str, repository_url: str) -> Portfolio:
        """
        Run one generation for `user_id`.

        The quota is checked before GitHub is touched, and the count is
        only incremented once aggregation has succeeded; a failed
        generation costs the user nothing. The increment repeats the
        quota check in the same write, so a concurrent generation that
        got there first turns this one into QuotaExceeded.
        """
        started_at = datetime.now(tz=timezone.utc)
        self.check_quota(user_id)

        record = await self._aggregator.aggregate(repository_url)

        screenshots = None
        live_url = find_live_site_url(record)
        if live_url and self._screenshots is not None:
            try:
                screenshots = self._screenshots.capture(live_url)
            except Exception as exc:
                # Screenshots are decoration; the portfolio stands without them.
                log.warning("Screenshot capture for %s failed: %s", live_url, exc)

        profile = self._profiles.increment_portfolio_count(user_id, limit=self._free_generations)

        elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
        log.info("Generated portfolio for %s/%s | user=%s | %d image(s) | %.2fs",
                 record.owner, record.name, user_id, len(record.images), elapsed)

        return Portfolio(
            record      = record,
            languages   = tuple(language_percentages(record.language_bytes)),
            screenshots = screenshots,
            profile     = profile,
        )
