from __future__ import annotations
import logging
from urllib.parse import urlencode

from repofolio.domain.entities import LiveSiteScreenshots
from repofolio.domain.interfaces import IScreenshotService

log = logging.getLogger(__name__)

MICROLINK_API_URL = "https://api.microlink.io"
MOBILE_VIEWPORT   = (375, 667)     # iPhone SE
WAIT_FOR_MS       = 1500


class MicrolinkScreenshots(IScreenshotService):
    """
    Builds Microlink screenshot URLs for a live site.

    Nothing is fetched here: the returned URLs are themselves the images
    (`embed=screenshot.url`), rendered by Microlink when the browser loads
    them.
    """

    def __init__(self, api_url: str = MICROLINK_API_URL) -> None:
        self._api_url = api_url.rstrip("/")

    def _build(self, target: str, viewport: tuple[int, int] | None = None) -> str:
        params: list[tuple[str, str]] = [
            ("url",             target),
            ("screenshot",      "true"),
            ("meta",            "false"),
            ("embed",           "screenshot.url"),
            ("waitForTimeout",  str(WAIT_FOR_MS)),
        ]
        if viewport:
            params += [
                ("viewport.width",  str(viewport[0])),
                ("viewport.height", str(viewport[1])),
            ]
        params += [("overlay.browser", "false"), ("force", "true")]
        return f"{self._api_url}?{urlencode(params)}"

    def capture(self, url: str) -> LiveSiteScreenshots | None:
        url = (url or "").strip()
        if not url:
            return None
        target = url if url.startswith(("http://", "https://")) else f"https://{url}"
        log.debug("Building screenshot URLs for %s", target)
        return LiveSiteScreenshots(
            desktop = self._build(target),
            mobile  = self._build(target, MOBILE_VIEWPORT),
        )
