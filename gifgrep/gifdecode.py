"""Decode GIFs (or still images) into composited PNG frames."""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import BinaryIO

from PIL import Image, UnidentifiedImageError

DEFAULT_MAX_FRAMES = 60
DEFAULT_MAX_PIXELS = 40_000_000
DEFAULT_MAX_BYTES = 20 << 20
DEFAULT_DELAY = timedelta(milliseconds=80)
MIN_DELAY = timedelta(milliseconds=10)
MAX_DELAY = timedelta(seconds=1)

_DISPOSAL_NONE = 1
_DISPOSAL_BACKGROUND = 2
_DISPOSAL_PREVIOUS = 3
_TRANSPARENT = b"\x00\x00\x00\x00"


class GifDecodeError(Exception):
    """Raised when data cannot be decoded."""


class TooLargeError(GifDecodeError):
    """The input exceeds the configured limits."""

    def __init__(self, message: str = "gif exceeds limits") -> None:
        super().__init__(message)


class NoFramesError(GifDecodeError):
    """The GIF has no frames."""

    def __init__(self, message: str = "gif has no frames") -> None:
        super().__init__(message)


class InvalidSizeError(GifDecodeError):
    """The GIF has an invalid size."""

    def __init__(self, message: str = "gif has invalid size") -> None:
        super().__init__(message)


@dataclass
class Frame:
    png: bytes
    delay: timedelta


@dataclass
class Frames:
    frames: list[Frame] = field(default_factory=list)
    width: int = 0
    height: int = 0


@dataclass
class DecodeOptions:
    """Decoding limits. Zero values mean "use the default"; negative byte or pixel limits disable them."""

    max_frames: int = 0
    max_pixels: int = 0
    max_bytes: int = 0
    default_delay: timedelta = field(default_factory=timedelta)
    min_delay: timedelta = field(default_factory=timedelta)
    max_delay: timedelta = field(default_factory=timedelta)
    strict_gif: bool = False

    def with_defaults(self) -> DecodeOptions:
        o = replace(self)
        if o.max_frames == 0:
            o.max_frames = DEFAULT_MAX_FRAMES
        if o.max_pixels == 0:
            o.max_pixels = DEFAULT_MAX_PIXELS
        if o.max_bytes == 0:
            o.max_bytes = DEFAULT_MAX_BYTES
        if not o.default_delay:
            o.default_delay = DEFAULT_DELAY
        if not o.min_delay:
            o.min_delay = MIN_DELAY
        if not o.max_delay:
            o.max_delay = MAX_DELAY
        if o.max_delay < o.min_delay:
            o.max_delay = o.min_delay
        return o


def default_options() -> DecodeOptions:
    return DecodeOptions(
        max_frames=DEFAULT_MAX_FRAMES,
        max_pixels=DEFAULT_MAX_PIXELS,
        max_bytes=DEFAULT_MAX_BYTES,
        default_delay=DEFAULT_DELAY,
        min_delay=MIN_DELAY,
        max_delay=MAX_DELAY,
    )


def decode(data: bytes, opts: DecodeOptions | None = None) -> Frames:
    """Decode GIF (or still image) bytes into PNG frames."""
    return decode_stream(io.BytesIO(data), opts)


def decode_stream(stream: BinaryIO, opts: DecodeOptions | None = None) -> Frames:
    """Read a stream within the byte limit and decode it."""
    opts = (opts or DecodeOptions()).with_defaults()
    data = _read_all_limit(stream, opts.max_bytes)
    return _decode_bytes(data, opts)


# --- raw GIF parsing -------------------------------------------------------


@dataclass
class _RawImage:
    left: int
    top: int
    width: int
    height: int
    pixels: bytes
    palette: list[bytes]
    delay: int
    disposal: int


@dataclass
class _RawGif:
    width: int
    height: int
    global_palette: list[bytes] | None
    background_index: int
    images: list[_RawImage]


def _read_palette(data: bytes, pos: int, count: int) -> list[bytes]:
    raw = data[pos : pos + 3 * count]
    if len(raw) < 3 * count:
        raise GifDecodeError("gif: short color table")
    return [bytes(raw[i : i + 3]) + b"\xff" for i in range(0, len(raw), 3)]


def _read_sub_blocks(data: bytes, pos: int) -> tuple[bytes, int]:
    out = bytearray()
    while True:
        size = data[pos]
        pos += 1
        if size == 0:
            return bytes(out), pos
        chunk = data[pos : pos + size]
        if len(chunk) < size:
            raise GifDecodeError("gif: unexpected EOF")
        out += chunk
        pos += size


def _lzw_decode(data: bytes, min_size: int) -> bytes:
    if not 1 <= min_size <= 11:
        raise GifDecodeError("gif: invalid LZW code size")
    clear = 1 << min_size
    eoi = clear + 1
    base = [bytes([i]) for i in range(clear)] + [b"", b""]
    table = list(base)
    code_size = min_size + 1
    prev: bytes | None = None
    out = bytearray()
    acc = 0
    nbits = 0
    pos = 0
    while True:
        while nbits < code_size:
            if pos >= len(data):
                return bytes(out)
            acc |= data[pos] << nbits
            pos += 1
            nbits += 8
        code = acc & ((1 << code_size) - 1)
        acc >>= code_size
        nbits -= code_size
        if code == clear:
            table = list(base)
            code_size = min_size + 1
            prev = None
            continue
        if code == eoi:
            return bytes(out)
        if prev is None:
            if code >= clear:
                raise GifDecodeError("gif: invalid LZW code")
            entry = table[code]
        else:
            if code < len(table):
                entry = table[code]
                new = prev + entry[:1]
            elif code == len(table):
                entry = prev + prev[:1]
                new = entry
            else:
                raise GifDecodeError("gif: invalid LZW code")
            if len(table) < 4096:
                table.append(new)
                if len(table) >= (1 << code_size) and code_size < 12:
                    code_size += 1
        out += entry
        prev = entry


def _deinterlace(pixels: bytes, width: int, height: int) -> bytes:
    rows = [pixels[i * width : (i + 1) * width] for i in range(height)]
    order = [y for start, step in ((0, 8), (4, 8), (2, 4), (1, 2)) for y in range(start, height, step)]
    out: list[bytes] = [b""] * height
    for src_row, y in zip(rows, order):
        out[y] = src_row
    return b"".join(out)


def _parse_gif(data: bytes) -> _RawGif:
    try:
        return _parse_gif_unchecked(data)
    except (IndexError, struct.error) as exc:
        raise GifDecodeError("gif: unexpected EOF") from exc


def _parse_gif_unchecked(data: bytes) -> _RawGif:
    if data[:6] not in (b"GIF87a", b"GIF89a"):
        raise GifDecodeError("gif: can't recognize format")
    width, height, packed, bg_index, _aspect = struct.unpack_from("<HHBBB", data, 6)
    pos = 13
    global_palette = None
    if packed & 0x80:
        count = 2 << (packed & 7)
        global_palette = _read_palette(data, pos, count)
        pos += 3 * count

    images: list[_RawImage] = []
    delay = 0
    disposal = 0
    transparent: int | None = None
    while True:
        block = data[pos]
        pos += 1
        if block == 0x21:
            label = data[pos]
            pos += 1
            if label == 0xF9:
                if data[pos] != 4:
                    raise GifDecodeError("gif: invalid graphic control extension")
                flags, delay, ti = struct.unpack_from("<BHB", data, pos + 1)
                disposal = (flags >> 2) & 7
                transparent = ti if flags & 1 else None
                _, pos = _read_sub_blocks(data, pos + 5)
            else:
                _, pos = _read_sub_blocks(data, pos)
        elif block == 0x2C:
            left, top, w, h, flags = struct.unpack_from("<HHHHB", data, pos)
            pos += 9
            if flags & 0x80:
                count = 2 << (flags & 7)
                palette = _read_palette(data, pos, count)
                pos += 3 * count
            elif global_palette is not None:
                palette = list(global_palette)
            else:
                raise GifDecodeError("gif: no color table")
            if transparent is not None:
                if transparent >= len(palette):
                    palette.extend([_TRANSPARENT] * (transparent + 1 - len(palette)))
                palette[transparent] = _TRANSPARENT
            if w * h and not (left + w <= width and top + h <= height):
                raise GifDecodeError("gif: frame bounds larger than image bounds")
            min_size = data[pos]
            lzw_data, pos = _read_sub_blocks(data, pos + 1)
            pixels = _lzw_decode(lzw_data, min_size)[: w * h]
            if len(pixels) < w * h:
                raise GifDecodeError("gif: not enough image data")
            if flags & 0x40:
                pixels = _deinterlace(pixels, w, h)
            if pixels and max(pixels) >= len(palette):
                raise GifDecodeError("gif: invalid pixel value")
            images.append(_RawImage(left, top, w, h, pixels, palette, delay, disposal))
            delay, disposal, transparent = 0, 0, None
        elif block == 0x3B:
            break
        else:
            raise GifDecodeError(f"gif: unknown block type: 0x{block:02x}")
    return _RawGif(width, height, global_palette, bg_index, images)


# --- compositing -----------------------------------------------------------


def _decode_bytes(data: bytes, opts: DecodeOptions) -> Frames:
    try:
        raw = _parse_gif(data)
    except GifDecodeError as gif_err:
        if opts.strict_gif:
            raise
        try:
            with Image.open(io.BytesIO(data)) as img:
                if img.format == "GIF":
                    raise gif_err
                img.load()
                return _single_frame(img, opts)
        except (UnidentifiedImageError, OSError, ValueError):
            raise gif_err from None
    return _decode_gif(raw, opts)


def _decode_gif(g: _RawGif, opts: DecodeOptions) -> Frames:
    if not g.images:
        raise NoFramesError()
    width, height = g.width, g.height
    if width <= 0 or height <= 0:
        width, height = g.images[0].width, g.images[0].height
    if width <= 0 or height <= 0:
        raise InvalidSizeError()
    _check_pixels(width, height, opts.max_pixels)

    canvas = bytearray(width * height * 4)
    bg = _background_color(g.global_palette, g.background_index)
    limit = len(g.images)
    if 0 < opts.max_frames < limit:
        limit = opts.max_frames

    frames: list[Frame] = []
    for image in g.images[:limit]:
        disposal = image.disposal or _DISPOSAL_NONE
        prev = bytes(canvas) if disposal == _DISPOSAL_PREVIOUS else None
        _draw_over(canvas, width, height, image)
        frames.append(Frame(png=_encode_png(bytes(canvas), width, height), delay=_frame_delay(image.delay, opts)))
        if disposal == _DISPOSAL_BACKGROUND:
            _fill(canvas, width, height, image, bg)
        elif prev is not None:
            canvas[:] = prev
    return Frames(frames=frames, width=width, height=height)


def _draw_over(canvas: bytearray, width: int, height: int, image: _RawImage) -> None:
    pal = image.palette
    for row in range(image.height):
        y = image.top + row
        if not 0 <= y < height:
            continue
        src = image.pixels[row * image.width : (row + 1) * image.width]
        for col, idx in enumerate(src):
            x = image.left + col
            if not 0 <= x < width:
                continue
            color = pal[idx]
            if color[3]:
                off = (y * width + x) * 4
                canvas[off : off + 4] = color


def _fill(canvas: bytearray, width: int, height: int, image: _RawImage, color: bytes) -> None:
    x0 = max(image.left, 0)
    x1 = min(image.left + image.width, width)
    if x1 <= x0:
        return
    span = color * (x1 - x0)
    for y in range(max(image.top, 0), min(image.top + image.height, height)):
        off = (y * width + x0) * 4
        canvas[off : off + len(span)] = span


def _single_frame(img: Image.Image, opts: DecodeOptions) -> Frames:
    width, height = img.size
    if width <= 0 or height <= 0:
        raise InvalidSizeError()
    _check_pixels(width, height, opts.max_pixels)
    rgba = img.convert("RGBA")
    png = _encode_png(rgba.tobytes(), width, height)
    return Frames(frames=[Frame(png=png, delay=_clamp_delay(opts.default_delay, opts))], width=width, height=height)


def _check_pixels(width: int, height: int, max_pixels: int) -> None:
    if max_pixels > 0 and width * height > max_pixels:
        raise TooLargeError(f"gif exceeds limits: pixels={width * height} limit={max_pixels}")


def _frame_delay(centiseconds: int, opts: DecodeOptions) -> timedelta:
    delay = timedelta(milliseconds=centiseconds * 10)
    if delay <= timedelta(0):
        delay = opts.default_delay
    return _clamp_delay(delay, opts)


def _clamp_delay(delay: timedelta, opts: DecodeOptions) -> timedelta:
    if delay < opts.min_delay:
        return opts.min_delay
    if delay > opts.max_delay:
        return opts.max_delay
    return delay


def _background_color(palette: list[bytes] | None, index: int) -> bytes:
    if not palette or not 0 <= index < len(palette):
        return _TRANSPARENT
    return palette[index]


def _encode_png(rgba: bytes, width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.frombytes("RGBA", (width, height), rgba).save(buf, format="PNG", compress_level=1)
    return buf.getvalue()


def _read_all_limit(stream: BinaryIO, max_bytes: int) -> bytes:
    if max_bytes <= 0:
        return stream.read()
    data = stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise TooLargeError()
    return data