from __future__ import annotations
from typing import Mapping

from repofolio.domain.entities import LanguageShare


def language_percentages(language_bytes: Mapping[str, int]) -> list[LanguageShare]:
    """
    Turn GitHub's per-language byte counts into display percentages.

    Largest language first; ties broken by name so the bar is stable.
    An empty mapping (or one that sums to zero) yields no shares at all.
    """
    total = sum(language_bytes.values())
    if total <= 0:
        return []

    ordered = sorted(language_bytes.items(), key=lambda item: (-item[1], item[0]))
    return [
        LanguageShare(name=name, bytes=count, percentage=count / total * 100)
        for name, count in ordered
    ]
