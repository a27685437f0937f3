"""Extract ``#tags`` and an ``@location`` from caption text."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..models import Location

_DELIMITERS = frozenset(' .,;()"')


@dataclass
class CaptionParts:
    tags: List[str] = field(default_factory=list)
    location: Optional[Location] = None


def _accept_identifier(text: str, pos: int) -> tuple[str, int]:
    end = pos
    while end < len(text) and text[end] not in _DELIMITERS:
        end += 1
    return text[pos:end], end


def parse_caption(caption: str) -> CaptionParts:
    """Scan *caption* for tags and a location.

    ``#word`` adds a tag; ``@word`` or ``@"some place"`` names the location,
    parsed with :meth:`Location.parse`. The last location mention wins.
    """

    parts = CaptionParts()
    location_text: Optional[str] = None
    pos = 0
    while pos < len(caption):
        ch = caption[pos]
        pos += 1
        if ch == "#":
            tag, pos = _accept_identifier(caption, pos)
            if tag:
                parts.tags.append(tag)
        elif ch == "@" and pos < len(caption):
            if caption[pos] == '"':
                end = caption.find('"', pos + 1)
                if end < 0:
                    end = len(caption)
                location_text = caption[pos + 1:end]
                pos = end + 1
            else:
                location_text, pos = _accept_identifier(caption, pos)
    if location_text:
        parsed = Location.parse(location_text)
        parts.location = parsed if parsed.has_values() else None
    return parts
