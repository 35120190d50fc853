"""Shared data types: search results and run options."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

APP_NAME = "gifgrep"
TAGLINE = "Grep the GIF. Stick the landing."
VERSION = "0.2.3"


@dataclass
class Result:
    """A single GIF search result."""

    id: str = ""
    title: str = ""
    url: str = ""
    preview_url: str = ""
    tags: list[str] = field(default_factory=list)
    width: int = 0
    height: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; empty tags and zero sizes are omitted."""
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "preview_url": self.preview_url,
        }
        if self.tags:
            out["tags"] = list(self.tags)
        if self.width:
            out["width"] = self.width
        if self.height:
            out["height"] = self.height
        return out


@dataclass
class Options:
    """Options collected from the command line."""

    color: str = ""
    verbose: int = 0
    quiet: bool = False
    reveal: bool = False
    download: bool = False
    format: str = ""
    thumbs: str = ""

    json: bool = False
    number: bool = False
    limit: int = 0
    source: str = ""

    gif_input: str = ""
    still_at: timedelta = field(default_factory=timedelta)
    still_set: bool = False
    stills_count: int = 0
    stills_cols: int = 0
    stills_padding: int = 0
    out_path: str = ""