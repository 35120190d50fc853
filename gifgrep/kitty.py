"""Kitty graphics protocol escape sequences."""

from __future__ import annotations

import base64
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import TextIO

from .gifdecode import Frame

_CHUNK_SIZE = 4096
_MIN_DELAY = timedelta(milliseconds=10)
_MAX_DELAY = timedelta(seconds=1)


@dataclass
class _KittyData:
    action: str
    image_id: int
    data: bytes
    cols: int = 0
    rows: int = 0
    placement_id: int = 0
    delay: timedelta = timedelta(0)
    no_cursor: bool = False


def send_animation(out: TextIO, image_id: int, frames: Sequence[Frame], cols: int, rows: int) -> None:
    """Transmit all frames as a looping kitty animation."""
    if not frames:
        return
    base, *rest = frames
    _send_kitty_data(
        out,
        _KittyData(
            action="T",
            image_id=image_id,
            data=base.png,
            cols=cols,
            rows=rows,
            placement_id=1,
            no_cursor=True,
        ),
    )
    for frame in rest:
        _send_kitty_data(out, _KittyData(action="f", image_id=image_id, data=frame.png, delay=frame.delay))
    _send_anim_delay(out, image_id, _delay_ms(base.delay))
    _send_anim_start(out, image_id)


def send_frame(out: TextIO, image_id: int, frame: Frame, cols: int, rows: int) -> None:
    """Transmit and place a single still frame."""
    _send_kitty_data(
        out,
        _KittyData(
            action="T",
            image_id=image_id,
            data=frame.png,
            cols=cols,
            rows=rows,
            placement_id=1,
            no_cursor=True,
        ),
    )


def place_image(out: TextIO, image_id: int, cols: int, rows: int) -> None:
    """Place an already transmitted image."""
    if image_id == 0:
        return
    out.write(f"\x1b_Ga=p,i={image_id},p=1,c={cols},r={rows},C=1,q=2\x1b\\")


def delete_image(out: TextIO, image_id: int) -> None:
    """Delete an image and its placements."""
    if image_id == 0:
        return
    out.write(f"\x1b_Ga=d,d=I,i={image_id},q=2\x1b\\")


def _send_kitty_data(out: TextIO, data: _KittyData) -> None:
    encoded = base64.b64encode(data.data).decode("ascii")
    chunks = [encoded[start : start + _CHUNK_SIZE] for start in range(0, len(encoded), _CHUNK_SIZE)]
    for position, chunk in enumerate(chunks):
        more = 1 if position < len(chunks) - 1 else 0
        if position == 0:
            params = [f"a={data.action}", "f=100", f"i={data.image_id}", f"m={more}", "q=2"]
            if data.cols > 0:
                params.append(f"c={data.cols}")
            if data.rows > 0:
                params.append(f"r={data.rows}")
            if data.placement_id > 0:
                params.append(f"p={data.placement_id}")
            if data.no_cursor:
                params.append("C=1")
            if data.action == "f" and data.delay > timedelta(0):
                params.append(f"z={_delay_ms(data.delay)}")
            out.write(f"\x1b_G{','.join(params)};")
        elif data.action == "f":
            out.write(f"\x1b_Ga=f,m={more};")
        else:
            out.write(f"\x1b_Gm={more};")
        out.write(chunk)
        out.write("\x1b\\")


def _send_anim_delay(out: TextIO, image_id: int, delay_ms: int) -> None:
    if delay_ms <= 0:
        return
    out.write(f"\x1b_Ga=a,i={image_id},r=1,z={delay_ms},q=2\x1b\\")


def _send_anim_start(out: TextIO, image_id: int) -> None:
    out.write(f"\x1b_Ga=a,i={image_id},s=3,v=1,q=2\x1b\\")


def _delay_ms(delay: timedelta) -> int:
    clamped = min(max(delay, _MIN_DELAY), _MAX_DELAY)
    return clamped // timedelta(milliseconds=1)