"""
Domain Layer — Error Taxonomy
-----------------------------
Every failure a use case can surface derives from RepofolioError, so the
composition root can catch one type and turn it into an exit code.

Two families:
  - upstream failures (GitHub, PayPal) carry the HTTP status they saw
  - business rule failures (quota, premium, missing profile)
"""

from __future__ import annotations


class RepofolioError(Exception):
    """Base class for every error this package raises on purpose."""
    pass


class InvalidUrl(RepofolioError):
    """Raised when a string does not parse into a GitHub owner/repo pair."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Not a GitHub repository URL: {url!r}")


class UpstreamError(RepofolioError):
    """
    Raised when a remote API answers with a non-success status.

    `status` is None when the request never produced a response
    (connection refused, timeout, ...).
    """

    def __init__(self, status: int | None, message: str = "") -> None:
        self.status  = status
        self.message = message
        super().__init__(f"Upstream error (status={status}): {message}")


class NotFound(UpstreamError):
    """The repository (or other primary resource) does not exist."""

    def __init__(self, message: str = "") -> None:
        super().__init__(404, message)


class ProfileNotFound(RepofolioError):
    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User profile not found: {user_id}")


class QuotaExceeded(RepofolioError):
    """The free tier is used up and the user is not premium."""

    def __init__(self, user_id: str, generated: int, limit: int) -> None:
        self.user_id   = user_id
        self.generated = generated
        self.limit     = limit
        super().__init__(
            f"User {user_id} has generated {generated}/{limit} free portfolios; upgrade to premium"
        )


class AlreadyPremium(RepofolioError):
    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} is already premium")


class PaymentError(RepofolioError):
    """PayPal refused an order or capture, or the capture did not complete."""

    def __init__(self, status: int | None, details: object = None) -> None:
        self.status  = status
        self.details = details
        super().__init__(f"Payment failed (status={status}): {details}")
