from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class RepoCoordinates:
    """Owner/repo pair parsed out of a GitHub URL."""
    owner: str
    repo:  str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class ContentEntry:
    """
    One item of a GitHub directory listing.

    Field names are OURS; the GitHub contents payload is translated
    in the infrastructure layer, not here.
    """
    name:         str
    path:         str
    type:         str            # "file" | "dir" | "symlink" | "submodule"
    download_url: str | None = None

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


@dataclass(frozen=True)
class Found:
    """Directory listing result: the directory exists."""
    entries: tuple[ContentEntry, ...]


@dataclass(frozen=True)
class Absent:
    """Directory listing result: the directory does not exist (404 upstream)."""
    path: str


DirectoryListing = Found | Absent


@dataclass(frozen=True)
class Readme:
    """Decoded README text plus where it lives in the repository."""
    path: str
    text: str
    sha:  str | None = None


@dataclass(frozen=True)
class LanguageShare:
    name:       str
    bytes:      int
    percentage: float


@dataclass(frozen=True)
class RepositoryRecord:
    """
    Immutable read model handed to the presentation layer.

    Built fresh for every request and then thrown away: it is never
    cached or persisted. `images` is a frozenset, so a URL reachable
    through two discovery strategies is stored once.
    """
    owner:            str
    name:             str
    description:      str | None
    homepage_url:     str | None
    html_url:         str
    primary_language: str | None
    star_count:       int
    fork_count:       int
    watcher_count:    int
    created_at:       str | None
    updated_at:       str | None
    visibility:       str
    default_branch:   str
    owner_avatar_url: str | None
    topics:           tuple[str, ...]             = ()
    language_bytes:   Mapping[str, int]           = field(default_factory=dict)
    images:           frozenset[str]              = frozenset()

    def __post_init__(self) -> None:
        # Callers may hand in lists; normalise so equality and hashing hold.
        object.__setattr__(self, "topics", tuple(self.topics))
        object.__setattr__(self, "images", frozenset(self.images))
        object.__setattr__(self, "language_bytes", dict(self.language_bytes))

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form. Images come out sorted so output is stable."""
        return {
            "owner":            self.owner,
            "name":             self.name,
            "description":      self.description,
            "homepage_url":     self.homepage_url,
            "html_url":         self.html_url,
            "primary_language": self.primary_language,
            "star_count":       self.star_count,
            "fork_count":       self.fork_count,
            "watcher_count":    self.watcher_count,
            "created_at":       self.created_at,
            "updated_at":       self.updated_at,
            "visibility":       self.visibility,
            "default_branch":   self.default_branch,
            "owner_avatar_url": self.owner_avatar_url,
            "topics":           list(self.topics),
            "language_bytes":   dict(self.language_bytes),
            "images":           sorted(self.images),
        }


@dataclass(frozen=True)
class UserProfile:
    """Row of the `user_profiles` table."""
    id:                   str
    email:                str | None
    portfolios_generated: int
    is_premium:           bool
    payment_id:           str | None = None
    payment_completed_at: str | None = None
    created_at:           str | None = None
    updated_at:           str | None = None


@dataclass(frozen=True)
class LiveSiteScreenshots:
    desktop: str
    mobile:  str


@dataclass(frozen=True)
class Portfolio:
    """Everything a successful generation returns to the caller."""
    record:      RepositoryRecord
    languages:   tuple[LanguageShare, ...]
    screenshots: LiveSiteScreenshots | None
    profile:     UserProfile

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository":  self.record.to_dict(),
            "languages":   [
                {"name": s.name, "bytes": s.bytes, "percentage": s.percentage}
                for s in self.languages
            ],
            "screenshots": (
                {"desktop": self.screenshots.desktop, "mobile": self.screenshots.mobile}
                if self.screenshots else None
            ),
            "portfolios_generated": self.profile.portfolios_generated,
            "is_premium":           self.profile.is_premium,
        }


@dataclass(frozen=True)
class ReadmeContent:
    """
    A generated README before it is rendered to Markdown.

    The fixed sections (installation, usage, contributing, license) are
    already Markdown; the list fields are rendered as sections only when
    they are non-empty.
    """
    title:        str
    description:  str
    technologies: tuple[str, ...]
    screenshots:  tuple[str, ...]
    badges:       tuple[str, ...]
    installation: str
    usage:        str
    contributing: str
    license:      str
    features:     tuple[str, ...] = ()
    quick_start:  str | None = None
    footer:       str | None = None


@dataclass(frozen=True)
class PaymentOrder:
    """PayPal order as far as we care about it."""
    id:     str
    status: str
    raw:    Mapping[str, Any] = field(default_factory=dict, compare=False)
