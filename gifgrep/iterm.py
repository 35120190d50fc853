"""iTerm2 inline image escape sequences."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import TextIO


@dataclass
class InlineFile:
    """An image to show inline; width and height are in character cells."""

    name: str = ""
    data: bytes = b""
    width_cells: int = 0
    height_cells: int = 0
    stretch: bool = False


def send_inline_file(out: TextIO | None, file: InlineFile) -> None:
    """Write the OSC 1337 inline file sequence for ``file``."""
    if out is None or not file.data:
        return
    name = _base_name(file.name.strip() or "gifgrep.bin")
    args = [
        "name=" + base64.b64encode(name.encode("utf-8")).decode("ascii"),
        f"size={len(file.data)}",
        "inline=1",
        f"preserveAspectRatio={0 if file.stretch else 1}",
    ]
    if file.width_cells > 0:
        args.append(f"width={file.width_cells}")
    if file.height_cells > 0:
        args.append(f"height={file.height_cells}")
    encoded = base64.b64encode(file.data).decode("ascii")
    out.write(f"\x1b]1337;File={';'.join(args)}:{encoded}\x1b\\")


def _base_name(name: str) -> str:
    trimmed = name.rstrip("/")
    if not trimmed:
        return "/"
    return trimmed.rsplit("/", 1)[-1]