"""Content parsing — wikilinks, mentions, and hashtags.

Pure functions, no infrastructure dependencies. Consumed by the graph
builder when deriving links and node metadata from file content.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# [[Target]] or [[Target|Display Text]]: captures content between brackets.
_WIKILINK_PATTERN = re.compile(r"\[\[([^\[\]]+)\]\]")
_MENTION_PATTERN = re.compile(r"(?<![\w@])@([A-Za-z0-9_-]+)")
_HASHTAG_PATTERN = re.compile(r"(?<![\w#&])#(\w[\w/-]*)")


@dataclass(frozen=True)
class WikiLink:
    """A wikilink extracted from body text."""

    target: str
    display: str | None = None


def extract_wikilinks(content: str) -> list[WikiLink]:
    """Extract all ``[[wikilinks]]`` from *content*.

    Handles both ``[[Target]]`` and ``[[Target|Display Text]]``.
    """
    results: list[WikiLink] = []
    for match in _WIKILINK_PATTERN.finditer(content):
        parts = match.group(1).split("|", 1)
        target = parts[0].strip()
        if not target:
            continue
        display = parts[1].strip() if len(parts) > 1 else None
        results.append(WikiLink(target=target, display=display))
    return results


def extract_mentions(content: str) -> list[str]:
    """Extract ``@name`` mentions (email addresses are not mentions)."""
    return [m.group(1) for m in _MENTION_PATTERN.finditer(content)]


def extract_hashtags(content: str) -> list[str]:
    """Extract ``#tag`` tokens, skipping markdown headings and HTML entities.

    Examples:
        >>> extract_hashtags("notes on #math and #math/algebra")
        ['math', 'math/algebra']
        >>> extract_hashtags("# Heading")
        []
    """
    return [m.group(1) for m in _HASHTAG_PATTERN.finditer(content)]


def merge_tags(*sources: list[str]) -> list[str]:
    """Combine tag lists, preserving first-seen order and dropping duplicates."""
    seen: dict[str, None] = {}
    for tags in sources:
        for tag in tags:
            cleaned = tag.strip().lstrip("#")
            if cleaned:
                seen.setdefault(cleaned, None)
    return list(seen)


def count_words(content: str) -> int:
    """Count whitespace-separated words."""
    return len(content.split())
