"""Pull image URLs out of raw README text."""

from __future__ import annotations

import posixpath
import re
from urllib.parse import quote, unquote

RAW_CONTENT_URL = "https://raw.githubusercontent.com"

# ![alt](url) and ![alt](url "title"); the url may be wrapped in <...>
MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+[\"'][^\"']*[\"'])?\s*\)")
HTML_IMAGE_RE     = re.compile(r"<img\b[^>]*?\bsrc\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)

_SKIPPED_SCHEMES = ("data:", "mailto:", "javascript:")


def extract_image_refs(text: str) -> list[str]:
    """Every image reference, Markdown first, then HTML, in document order."""
    refs = [m.group(1) for m in MARKDOWN_IMAGE_RE.finditer(text)]
    refs += [m.group(1) for m in HTML_IMAGE_RE.finditer(text)]
    return refs


def resolve_image_url(
    ref: str,
    owner: str,
    repo: str,
    branch: str,
    readme_path: str = "README.md",
) -> str | None:
    """
    Make a README image reference absolute.

    Absolute http(s) URLs pass through; relative paths point at the raw
    file on `branch`, resolved against the README's own directory (a
    leading "/" means the repository root). Anchors and non-fetchable
    schemes give None.
    """
    ref = ref.strip()
    if not ref or ref.startswith("#") or ref.lower().startswith(_SKIPPED_SCHEMES):
        return None
    if ref.lower().startswith(("http://", "https://")):
        return ref
    if ref.startswith("//"):
        return f"https:{ref}"

    # Drop query/fragment for path math, they have no meaning on raw content.
    path = re.split(r"[?#]", ref, maxsplit=1)[0]
    if ref.startswith("/"):
        path = path.lstrip("/")
    else:
        base = posixpath.dirname(readme_path)
        path = posixpath.join(base, path) if base else path
    path = posixpath.normpath(path)
    if path in ("", ".") or path.startswith(".."):
        return None

    return f"{RAW_CONTENT_URL}/{owner}/{repo}/{branch}/{quote(unquote(path), safe='/')}"


def readme_image_urls(
    text: str,
    owner: str,
    repo: str,
    branch: str,
    readme_path: str = "README.md",
) -> set[str]:
    urls: set[str] = set()
    for ref in extract_image_refs(text):
        url = resolve_image_url(ref, owner, repo, branch, readme_path)
        if url:
            urls.add(url)
    return urls
