"""Pick single frames and build contact sheets from decoded GIFs."""

from __future__ import annotations

import io
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta

from PIL import Image, UnidentifiedImageError

from .gifdecode import Frame, Frames

TRANSPARENT = (0, 0, 0, 0)


class StillsError(Exception):
    """Raised when a still or sheet cannot be produced."""


@dataclass
class SheetOptions:
    """Layout of a contact sheet. Zero columns means a square-ish grid."""

    count: int = 0
    columns: int = 0
    padding: int = 0
    background: tuple[int, int, int, int] | None = None


def frame_index_at(frames: Sequence[Frame], at: timedelta) -> int:
    """Return the index of the frame shown at time ``at``."""
    if not frames:
        raise StillsError("no frames")
    at = max(at, timedelta(0))
    if _total_duration(frames) <= timedelta(0):
        return 0
    elapsed = timedelta(0)
    for index, frame in enumerate(frames):
        elapsed += frame.delay
        if at < elapsed:
            return index
    return len(frames) - 1


def frame_at_png(decoded: Frames | None, at: timedelta) -> tuple[bytes, int]:
    """Return the PNG bytes and index of the frame shown at time ``at``."""
    if decoded is None:
        raise StillsError("no frames")
    index = frame_index_at(decoded.frames, at)
    return decoded.frames[index].png, index


def contact_sheet(decoded: Frames | None, opts: SheetOptions) -> bytes:
    """Render evenly sampled frames into a grid and return it as PNG."""
    if decoded is None or not decoded.frames:
        raise StillsError("no frames")
    if opts.count <= 0:
        raise StillsError("invalid count")

    count = min(opts.count, len(decoded.frames))
    columns = opts.columns if opts.columns > 0 else math.ceil(math.sqrt(count))
    padding = max(opts.padding, 0)
    background = opts.background if opts.background is not None else TRANSPARENT

    frame_width, frame_height = decoded.width, decoded.height
    if frame_width <= 0 or frame_height <= 0:
        frame_width, frame_height = _decode_png(decoded.frames[0].png).size
    if frame_width <= 0 or frame_height <= 0:
        raise StillsError("invalid sheet size")

    rows = -(-count // columns)
    sheet_width = frame_width * columns + padding * (columns - 1)
    sheet_height = frame_height * rows + padding * (rows - 1)
    sheet = Image.new("RGBA", (sheet_width, sheet_height), tuple(background))

    for slot, index in enumerate(_sample_indices(decoded.frames, count)):
        if not 0 <= index < len(decoded.frames):
            continue
        img = _decode_png(decoded.frames[index].png)
        if img.size != (frame_width, frame_height):
            img = img.crop((0, 0, frame_width, frame_height))
        row, col = divmod(slot, columns)
        x = col * (frame_width + padding)
        y = row * (frame_height + padding)
        sheet.alpha_composite(img, dest=(x, y))

    buf = io.BytesIO()
    sheet.save(buf, format="PNG")
    return buf.getvalue()


def _total_duration(frames: Sequence[Frame]) -> timedelta:
    return sum((frame.delay for frame in frames), timedelta(0))


def _sample_indices(frames: Sequence[Frame], count: int) -> list[int]:
    if count <= 0:
        return []
    if not frames:
        return []
    if count == 1:
        return [0]
    total = _total_duration(frames)
    if total <= timedelta(0):
        max_index = len(frames) - 1
        return [math.floor(max_index * i / (count - 1) + 0.5) for i in range(count)]
    total_us = total // timedelta(microseconds=1)
    return [
        frame_index_at(frames, timedelta(microseconds=total_us * i // (count - 1)))
        for i in range(count)
    ]


def _decode_png(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format != "PNG":
                raise StillsError("invalid png")
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise StillsError(f"invalid png: {exc}") from exc