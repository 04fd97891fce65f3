from urllib.parse import parse_qs, urlparse

from repofolio.infrastructure.microlink import MicrolinkScreenshots


def params(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


def test_desktop_and_mobile_urls() -> None:
    shots = MicrolinkScreenshots().capture("example.com")

    desktop, mobile = params(shots.desktop), params(shots.mobile)

    assert shots.desktop.startswith("https://api.microlink.io?")
    assert desktop["url"] == ["https://example.com"]
    assert desktop["embed"] == ["screenshot.url"]
    assert desktop["waitForTimeout"] == ["1500"]
    assert "viewport.width" not in desktop
    assert mobile["viewport.width"] == ["375"]
    assert mobile["viewport.height"] == ["667"]


def test_existing_scheme_is_kept() -> None:
    shots = MicrolinkScreenshots().capture("http://site.test/path?q=1")
    assert params(shots.desktop)["url"] == ["http://site.test/path?q=1"]


def test_blank_url_gives_nothing() -> None:
    assert MicrolinkScreenshots().capture("  ") is None
