from __future__ import annotations

import logging
from typing import Sequence
from urllib.parse import quote

from repofolio.domain.entities import ReadmeContent, RepositoryRecord
from repofolio.domain.interfaces import IRepoSource
from .aggregator import RepoAggregator, parse_repository_url
from .languages import language_percentages

log = logging.getLogger(__name__)

SHIELDS_BADGE_URL = "https://img.shields.io/badge"
DEFAULT_COLOR     = "555555"
README_PATH       = "README.md"
COMMIT_MESSAGE    = "Update README.md via repofolio"

TECH_COLORS = {
    "TypeScript": "007ACC",
    "JavaScript": "F7DF1E",
    "Python":     "3776AB",
    "React":      "61DAFB",
    "Vue":        "4FC08D",
    "Angular":    "DD0031",
    "Node":       "339933",
    "HTML":       "E34F26",
    "CSS":        "1572B6",
    "PHP":        "777BB4",
    "Ruby":       "CC342D",
    "Go":         "00ADD8",
    "Rust":       "000000",
    "Java":       "007396",
    "Kotlin":     "0095D5",
    "Swift":      "FA7343",
    "C++":        "00599C",
    "C#":         "239120",
    "R":          "276DC3",
    "Scala":      "DC322F",
    "PLpgSQL":    "336791",
}

# (install, run) per primary language; run is None where there is no
# conventional entry point.
TOOLCHAINS = {
    "JavaScript": ("npm install", "npm start"),
    "TypeScript": ("npm install", "npm start"),
    "Vue":        ("npm install", "npm start"),
    "Python":     ("pip install -r requirements.txt", None),
    "Ruby":       ("bundle install", None),
    "Go":         ("go build ./...", None),
    "Rust":       ("cargo build --release", "cargo run"),
    "Java":       ("mvn install", None),
    "Kotlin":     ("./gradlew build", None),
    "PHP":        ("composer install", None),
}

CONTRIBUTING_STEPS = (
    "Fork the repository",
    "Create your feature branch: `git checkout -b feature/amazing-feature`",
    "Commit your changes: `git commit -m 'Add amazing feature'`",
    "Push to the branch: `git push origin feature/amazing-feature`",
    "Open a Pull Request",
)

LICENSE_TEXT = (
    "This project is licensed under the MIT License - "
    "see the [LICENSE](LICENSE) file for details."
)


def tech_color(tech: str) -> str:
    return TECH_COLORS.get(tech, DEFAULT_COLOR)


def badge_url(tech: str) -> str:
    """
    shields.io static badge for one technology.

    In the badge path a dash separates label from colour, so literal
    dashes and underscores are doubled and everything else is escaped.
    """
    label = quote(tech.replace("-", "--").replace("_", "__"), safe="")
    logo  = quote(tech.lower(), safe="")
    return (
        f"{SHIELDS_BADGE_URL}/{label}-{tech_color(tech)}.svg"
        f"?style=for-the-badge&logo={logo}&logoColor=white"
    )


def _code_block(*lines: str) -> str:
    return "\n".join(("```bash", *lines, "```"))


def _technologies(record: RepositoryRecord) -> tuple[str, ...]:
    return tuple(share.name for share in language_percentages(record.language_bytes))


def _screenshots(record: RepositoryRecord) -> tuple[str, ...]:
    # The owner avatar is only a fallback image, not a screenshot.
    return tuple(sorted(url for url in record.images if url != record.owner_avatar_url))


def _toolchain(record: RepositoryRecord, technologies: Sequence[str]) -> tuple[str | None, str | None]:
    language = record.primary_language or (technologies[0] if technologies else None)
    return TOOLCHAINS.get(language or "", (None, None))


def build_readme(
    record: RepositoryRecord,
    enhanced: bool = True,
    features: Sequence[str] = (),
) -> ReadmeContent:
    """
    Draft a README for an aggregated repository.

    The plain variant is a short, neutral README. The enhanced one adds
    technology badges, a quick-start block, a link to the live site and
    a footer. Technologies are listed largest language first. Install and
    run commands follow the primary language and are left out when it
    has no known toolchain.
    """
    technologies  = _technologies(record)
    screenshots   = _screenshots(record)
    install, run  = _toolchain(record, technologies)
    clone         = (f"git clone {record.html_url}", f"cd {record.name}")
    readable_name = record.name.replace("-", " ")

    if not enhanced:
        steps = ["1. Clone the repository:", "", _code_block(*clone)]
        if install:
            steps += ["", "2. Install dependencies:", "", _code_block(install)]
        usage = _code_block(run) if run else f"See the documentation of {record.name} for usage."
        return ReadmeContent(
            title        = record.name,
            description  = record.description or "An awesome project built with modern technologies.",
            technologies = technologies,
            screenshots  = screenshots,
            badges       = (),
            features     = tuple(features),
            installation = "## Installation\n\n" + "\n".join(steps),
            usage        = "## Usage\n\n" + usage,
            contributing = "## Contributing\n\nContributions are welcome! "
                           "Please feel free to submit a Pull Request.",
            license      = "## License\n\n" + LICENSE_TEXT,
        )

    description = record.description or (
        f"A powerful {'/'.join(technologies) or 'software'} project that {readable_name}. "
        "Built with modern technologies and best practices."
    )

    quick_start_lines = ["# Clone the repository", clone[0], "", "# Navigate to directory", clone[1]]
    if install:
        quick_start_lines += ["", "# Install dependencies", install]
    if run:
        quick_start_lines += ["", "# Start the project", run]

    installation = ["1. Clone this repository"]
    if install:
        installation.append("2. Install dependencies:\n\n   " + _code_block(install).replace("\n", "\n   "))

    verb  = "generates" if "generator" in record.name.lower() else "provides"
    usage = [f"This project {verb} {readable_name}."]
    if record.homepage_url:
        usage.append(f"🔗 [Try it out here]({record.homepage_url})")

    steps = "\n".join(f"{n}. {step}" for n, step in enumerate(CONTRIBUTING_STEPS, start=1))
    made_with = f" and {technologies[0]}" if technologies else ""

    return ReadmeContent(
        title        = f"{record.name} 🌟",
        description  = description,
        technologies = technologies,
        screenshots  = screenshots,
        badges       = tuple(f"![{tech}]({badge_url(tech)})" for tech in technologies),
        features     = tuple(features),
        quick_start  = "## 🚀 Quick Start\n\n" + _code_block(*quick_start_lines),
        installation = "## 📦 Installation\n\n" + "\n".join(installation),
        usage        = "## 💡 Usage\n\n" + "\n\n".join(usage),
        contributing = "## 👥 Contributing\n\nContributions are welcome! "
                       "Here's how you can help:\n\n" + steps,
        license      = "## 📄 License\n\n" + LICENSE_TEXT,
        footer       = f'<p align="center">Made with ❤️{made_with}</p>',
    )


def render_markdown(content: ReadmeContent) -> str:
    """Lay the sections out in reading order; empty sections are skipped."""
    blocks = [f"# {content.title}", content.description]

    if content.badges:
        blocks.append(" ".join(content.badges))
    if content.technologies:
        blocks.append("## Technologies\n\n" + "\n".join(f"- {t}" for t in content.technologies))
    if content.features:
        blocks.append("## Features\n\n" + "\n".join(f"- {f}" for f in content.features))
    if content.screenshots:
        blocks.append("## Screenshots\n\n" + "\n".join(f"![Screenshot]({url})" for url in content.screenshots))
    if content.quick_start:
        blocks.append(content.quick_start)

    blocks += [content.installation, content.usage, content.contributing, content.license]
    blocks.append("---")
    if content.footer:
        blocks.append(content.footer)
    blocks.append("<sub>Generated by repofolio</sub>")

    return "\n\n".join(blocks) + "\n"


class ReadmeService:
    """
    Draft a README for a repository and, when asked, commit it back.

    Drafting only reads (it reuses the aggregator, so the images found
    for the portfolio become the screenshots section). Publishing writes
    to the repository's root README through the source's file API and
    therefore needs a token with contents write access.
    """

    def __init__(self, aggregator: RepoAggregator, source: IRepoSource) -> None:
        self._aggregator = aggregator
        self._source     = source

    async def draft(
        self,
        repository_url: str,
        enhanced: bool = True,
        features: Sequence[str] = (),
    ) -> str:
        record   = await self._aggregator.aggregate(repository_url)
        markdown = render_markdown(build_readme(record, enhanced=enhanced, features=features))
        log.info("Drafted README for %s/%s (%d chars)", record.owner, record.name, len(markdown))
        return markdown

    async def publish(
        self,
        repository_url: str,
        markdown: str,
        message: str = COMMIT_MESSAGE,
    ) -> str:
        """
        Replace the root Markdown README, or create README.md when there is
        none. Returns the commit sha. Failures propagate as UpstreamError.
        """
        coords   = parse_repository_url(repository_url)
        existing = await self._source.get_readme(coords.owner, coords.repo)

        path, sha = README_PATH, None
        if existing is not None and "/" not in existing.path and existing.path.lower().endswith(".md"):
            path, sha = existing.path, existing.sha

        commit = await self._source.put_file(coords.owner, coords.repo, path, markdown, message, sha=sha)
        log.info("Committed %s to %s (%s)", path, coords.full_name, commit)
        return commit
