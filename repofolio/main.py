"""
main.py — Dependency Wiring (Composition Root)
------------------------------------------------
This file has ONE job: wire all the pieces together and run a command.

It does NOT contain any business logic. It just:
  1. Reads configuration from environment variables
  2. Creates concrete implementations of each interface
  3. Injects them into the use cases that need them
  4. Calls the use case for the chosen sub-command
  5. Prints the JSON result and exits

Dependency graph (what depends on what):
                         main.py  (wires everything)
                            │
         ┌──────────────────┼───────────────────┐
         ▼                  ▼                   ▼
  PortfolioService    CheckoutService     RepoAggregator
     │      │            │       │              │
     │      ▼            ▼       ▼              ▼
     │  PostgresProfileStore  PayPalClient  ImageDiscovery
     ▼                                          │
  MicrolinkScreenshots              GitHubRestClient (IRepoSource)
                                                ▲
                                          ReadmeService
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any

import httpx
import psycopg2

# Application layer
from repofolio.application.aggregator import RepoAggregator
from repofolio.application.checkout_service import DEFAULT_PRICE, CheckoutService
from repofolio.application.image_discovery import ImageDiscovery
from repofolio.application.languages import language_percentages
from repofolio.application.portfolio_service import (
    FREE_GENERATIONS,
    PortfolioService,
    remaining_generations,
)
from repofolio.application.readme_generator import ReadmeService
from repofolio.domain.errors import RepofolioError

# Infrastructure layer
from repofolio.infrastructure.github_client import GitHubRestClient
from repofolio.infrastructure.microlink import MicrolinkScreenshots
from repofolio.infrastructure.paypal_client import PAYPAL_LIVE_URL, PayPalClient
from repofolio.infrastructure.postgres_profiles import PostgresProfileStore

log = logging.getLogger("repofolio")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s — %(message)s"


class ConfigError(Exception):
    """A required environment variable is missing or malformed."""
    pass


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    github_token:     str | None
    database_url:     str | None
    paypal_client_id: str | None
    paypal_secret:    str | None
    paypal_api_base:  str
    free_generations: int


def read_settings(environ: dict[str, str] | None = None) -> Settings:
    """Snapshot the environment. Nothing is required at this point."""
    env = os.environ if environ is None else environ

    raw_quota = env.get("FREE_GENERATIONS", "").strip()
    try:
        free_generations = int(raw_quota) if raw_quota else FREE_GENERATIONS
    except ValueError as exc:
        raise ConfigError(f"FREE_GENERATIONS must be an integer, got {raw_quota!r}") from exc

    return Settings(
        github_token     = env.get("GITHUB_TOKEN") or None,
        database_url     = env.get("DATABASE_URL") or None,
        paypal_client_id = env.get("PAYPAL_CLIENT_ID") or None,
        paypal_secret    = env.get("PAYPAL_SECRET") or None,
        paypal_api_base  = env.get("PAYPAL_API_BASE") or PAYPAL_LIVE_URL,
        free_generations = free_generations,
    )


def _require(value: str | None, name: str) -> str:
    if not value:
        raise ConfigError(f"{name} environment variable is required")
    return value


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------

def _github(settings: Settings, client: httpx.AsyncClient) -> GitHubRestClient:
    if not settings.github_token:
        log.warning("GITHUB_TOKEN not set. Using unauthenticated requests (limited rate).")
    return GitHubRestClient(client=client, token=settings.github_token)


def _aggregator(settings: Settings, client: httpx.AsyncClient) -> RepoAggregator:
    source = _github(settings, client)
    return RepoAggregator(source=source, discovery=ImageDiscovery(source))


async def cmd_aggregate(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    async with httpx.AsyncClient() as client:
        record = await _aggregator(settings, client).aggregate(args.url)

    result = record.to_dict()
    result["languages"] = [
        {"name": s.name, "bytes": s.bytes, "percentage": round(s.percentage, 1)}
        for s in language_percentages(record.language_bytes)
    ]
    return result


async def cmd_readme(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    if args.publish:
        # Writing needs a token; fail before any request is made.
        _require(settings.github_token, "GITHUB_TOKEN")
    async with httpx.AsyncClient() as client:
        source     = _github(settings, client)
        aggregator = RepoAggregator(source=source, discovery=ImageDiscovery(source))
        service    = ReadmeService(aggregator=aggregator, source=source)
        markdown   = await service.draft(args.url, enhanced=not args.basic, features=args.feature)
        commit     = await service.publish(args.url, markdown) if args.publish else None
    return {"markdown": markdown, "commit": commit}


async def cmd_generate(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    conn = psycopg2.connect(_require(settings.database_url, "DATABASE_URL"))
    client = httpx.AsyncClient()
    try:
        service = PortfolioService(
            aggregator       = _aggregator(settings, client),
            profiles         = PostgresProfileStore(conn),   # injected IProfileStore
            screenshots      = MicrolinkScreenshots(),       # injected IScreenshotService
            free_generations = settings.free_generations,
        )
        portfolio = await service.generate(args.user_id, args.url)
    finally:
        # Always clean up connections, even if an exception occurred
        await client.aclose()
        conn.close()

    result = portfolio.to_dict()
    result["remaining_generations"] = remaining_generations(
        portfolio.profile, settings.free_generations
    )
    return result


def _checkout(settings: Settings, conn, client: httpx.AsyncClient) -> CheckoutService:
    gateway = PayPalClient(
        client    = client,
        client_id = _require(settings.paypal_client_id, "PAYPAL_CLIENT_ID"),
        secret    = _require(settings.paypal_secret, "PAYPAL_SECRET"),
        base_url  = settings.paypal_api_base,
    )
    return CheckoutService(profiles=PostgresProfileStore(conn), gateway=gateway)


async def cmd_create_order(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    _require(settings.paypal_client_id, "PAYPAL_CLIENT_ID")
    _require(settings.paypal_secret, "PAYPAL_SECRET")
    conn = psycopg2.connect(_require(settings.database_url, "DATABASE_URL"))
    client = httpx.AsyncClient()
    try:
        order = await _checkout(settings, conn, client).create_order(args.user_id, args.amount)
    finally:
        await client.aclose()
        conn.close()
    return {"id": order.id, "status": order.status, "order": dict(order.raw)}


async def cmd_capture_order(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    _require(settings.paypal_client_id, "PAYPAL_CLIENT_ID")
    _require(settings.paypal_secret, "PAYPAL_SECRET")
    conn = psycopg2.connect(_require(settings.database_url, "DATABASE_URL"))
    client = httpx.AsyncClient()
    try:
        profile = await _checkout(settings, conn, client).capture_order(args.user_id, args.order_id)
    finally:
        await client.aclose()
        conn.close()
    return {
        "success":              True,
        "message":              "Welcome to Premium! Your account has been upgraded.",
        "user_id":              profile.id,
        "is_premium":           profile.is_premium,
        "payment_id":           profile.payment_id,
        "payment_completed_at": profile.payment_completed_at,
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repofolio",
        description="Turn a GitHub repository into portfolio data",
    )
    parser.add_argument(
        "--log-level",
        default = "INFO",
        choices = ["DEBUG", "INFO", "WARNING", "ERROR"],
        help    = "Logging verbosity (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("aggregate", help="Print repository metadata, languages and images")
    p.add_argument("url", help="https://github.com/{owner}/{repo}")
    p.set_defaults(handler=cmd_aggregate)

    p = sub.add_parser("generate", help="Quota-gated portfolio generation for a user")
    p.add_argument("url", help="https://github.com/{owner}/{repo}")
    p.add_argument("--user-id", required=True)
    p.set_defaults(handler=cmd_generate)

    p = sub.add_parser("readme", help="Draft a README for a repository, optionally committing it")
    p.add_argument("url", help="https://github.com/{owner}/{repo}")
    p.add_argument("--basic", action="store_true", help="Plain README without badges or quick start")
    p.add_argument("--feature", action="append", default=[], help="Feature bullet (repeatable)")
    p.add_argument("--publish", action="store_true", help="Commit the README (needs GITHUB_TOKEN)")
    p.set_defaults(handler=cmd_readme)

    p = sub.add_parser("create-order", help="Start a PayPal premium checkout")
    p.add_argument("--user-id", required=True)
    p.add_argument("--amount", default=DEFAULT_PRICE, help=f"USD amount (default: {DEFAULT_PRICE})")
    p.set_defaults(handler=cmd_create_order)

    p = sub.add_parser("capture-order", help="Capture a PayPal order and upgrade the user")
    p.add_argument("--user-id", required=True)
    p.add_argument("--order-id", required=True)
    p.set_defaults(handler=cmd_capture_order)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )

    try:
        settings = read_settings()
        result = asyncio.run(args.handler(args, settings))
    except ConfigError as exc:
        log.error("%s", exc)
        return 1
    except (RepofolioError, ValueError) as exc:
        log.error("❌ %s", exc)
        return 1
    except Exception as exc:
        log.error("Command %s failed: %s", args.command, exc, exc_info=True)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
