import io
from datetime import timedelta

import pytest
from PIL import Image

from gifgrep.gifdecode import (
    DecodeOptions,
    GifDecodeError,
    InvalidSizeError,
    NoFramesError,
    TooLargeError,
    _background_color,
    decode,
    decode_stream,
    default_options,
)

BW = ((0, 0, 0), (255, 255, 255))


def _lzw(pixels, min_size=2):
    clear = 1 << min_size
    size = min_size + 1
    codes = []
    for i in range(0, len(pixels), 2):
        codes.append(clear)
        codes.extend(pixels[i : i + 2])
    codes.append(clear + 1)
    acc = n = 0
    out = bytearray()
    for c in codes:
        acc |= c << n
        n += size
        while n >= 8:
            out.append(acc & 0xFF)
            acc >>= 8
            n -= 8
    if n:
        out.append(acc & 0xFF)
    return bytes(out)


def _blocks(data):
    out = bytearray()
    for i in range(0, len(data), 255):
        chunk = data[i : i + 255]
        out.append(len(chunk))
        out += chunk
    out.append(0)
    return bytes(out)


def make_gif(width, height, frames, palette=BW, bg_index=0):
    out = bytearray(b"GIF89a")
    out += width.to_bytes(2, "little") + height.to_bytes(2, "little")
    out += bytes([0x80, bg_index, 0])
    for r, g, b in palette:
        out += bytes([r, g, b])
    for fr in frames:
        delay = fr.get("delay")
        if delay is not None:
            ti = fr.get("transparent")
            flags = (fr.get("disposal", 1) << 2) | (1 if ti is not None else 0)
            out += bytes([0x21, 0xF9, 4, flags]) + delay.to_bytes(2, "little") + bytes([ti or 0, 0])
        left, top, w, h = fr["rect"]
        out += b"\x2c" + b"".join(v.to_bytes(2, "little") for v in (left, top, w, h)) + b"\x00"
        out += b"\x02" + _blocks(_lzw(fr["pixels"]))
    out += b"\x3b"
    return bytes(out)


def make_test_gif(count):
    frames = []
    for i in range(count):
        px = [0] * 4
        px[(i % 2) * 2 + i % 2] = 1
        frames.append({"rect": (0, 0, 2, 2), "pixels": px, "delay": 5 + i * 2, "disposal": 1})
    return make_gif(2, 2, frames)


def make_background_gif(bg_index):
    return make_gif(
        2,
        2,
        [
            {"rect": (0, 0, 2, 2), "pixels": [1, 0, 0, 0], "delay": 5, "disposal": 2},
            {"rect": (1, 1, 1, 1), "pixels": [1], "delay": 5, "disposal": 1},
        ],
        bg_index=bg_index,
    )


def png_image(data):
    return Image.open(io.BytesIO(data)).convert("RGBA")


def png_bytes(w, h):
    buf = io.BytesIO()
    Image.new("RGBA", (w, h)).save(buf, format="PNG")
    return buf.getvalue()


def test_decode_gif_frames():
    frames = decode(make_test_gif(2), default_options())
    assert len(frames.frames) == 2
    assert (frames.width, frames.height) == (2, 2)
    assert frames.frames[0].delay == timedelta(milliseconds=50)
    assert frames.frames[1].delay == timedelta(milliseconds=70)


def test_decode_fallback_and_strict():
    data = png_bytes(3, 4)
    frames = decode(data, default_options())
    assert len(frames.frames) == 1
    assert (frames.width, frames.height) == (3, 4)
    with pytest.raises(GifDecodeError):
        decode(data, DecodeOptions(strict_gif=True))


def test_decode_limits():
    data = make_test_gif(3)
    opts = default_options()
    opts.max_frames = 2
    assert len(decode(data, opts).frames) == 2

    opts = default_options()
    opts.max_pixels = 1
    with pytest.raises(TooLargeError):
        decode(data, opts)

    opts = default_options()
    opts.max_bytes = 1
    with pytest.raises(TooLargeError):
        decode(data, opts)


def test_background_disposal_uses_color():
    frames = decode(make_background_gif(0), default_options())
    assert len(frames.frames) >= 2
    img = png_image(frames.frames[1].png)
    assert img.getpixel((0, 0))[:3] == (0, 0, 0)
    assert img.getpixel((1, 1))[:3] != (0, 0, 0)


def test_decode_frame_offset_composite():
    data = make_gif(
        4,
        4,
        [
            {"rect": (0, 0, 4, 4), "pixels": [0] * 16, "delay": 5, "disposal": 1},
            {"rect": (1, 1, 2, 2), "pixels": [1, 0, 0, 1], "delay": 5, "disposal": 1},
        ],
    )
    decoded = decode(data, default_options())
    assert len(decoded.frames) == 2
    img = png_image(decoded.frames[1].png)
    assert img.getpixel((0, 0))[:3] == (0, 0, 0)
    assert img.getpixel((1, 1))[:3] == (255, 255, 255)
    assert img.getpixel((3, 3))[:3] == (0, 0, 0)


def test_background_index_out_of_range_uses_transparent():
    frames = decode(make_background_gif(9), default_options())
    img = png_image(frames.frames[1].png)
    assert img.getpixel((0, 0))[3] == 0
    assert img.getpixel((1, 1))[3] != 0


def test_decode_delay_clamp():
    data = make_gif(2, 2, [{"rect": (0, 0, 2, 2), "pixels": [0] * 4, "delay": d} for d in (0, 1, 300)])
    opts = default_options()
    opts.default_delay = timedelta(milliseconds=100)
    opts.min_delay = timedelta(milliseconds=50)
    opts.max_delay = timedelta(milliseconds=200)
    frames = decode(data, opts)
    assert frames.frames[0].delay == timedelta(milliseconds=100)
    assert frames.frames[1].delay == timedelta(milliseconds=50)
    assert frames.frames[2].delay == timedelta(milliseconds=200)


def test_decode_invalid_data():
    with pytest.raises(GifDecodeError):
        decode(b"nope", default_options())


def test_decode_unlimited_bytes_and_pixels():
    opts = default_options()
    opts.max_bytes = -1
    opts.max_pixels = -1
    assert len(decode(make_test_gif(1), opts).frames) == 1


def test_decode_gif_errors():
    with pytest.raises(NoFramesError):
        decode(make_gif(2, 2, []), default_options())
    zero = make_gif(0, 0, [{"rect": (0, 0, 0, 0), "pixels": [], "delay": 5}])
    with pytest.raises(InvalidSizeError):
        decode(zero, default_options())


def test_decode_gif_delay_missing_entries():
    data = make_gif(
        2,
        2,
        [
            {"rect": (0, 0, 2, 2), "pixels": [0] * 4, "delay": 5},
            {"rect": (0, 0, 2, 2), "pixels": [0] * 4},
        ],
    )
    opts = default_options()
    opts.default_delay = timedelta(milliseconds=90)
    frames = decode(data, opts)
    assert frames.frames[1].delay == timedelta(milliseconds=90)


def test_single_frame_too_large():
    opts = default_options()
    opts.max_pixels = 1
    with pytest.raises(TooLargeError):
        decode(png_bytes(2, 2), opts)


def test_background_color_no_palette():
    assert _background_color(None, 0) == b"\x00\x00\x00\x00"


def test_read_limit_error():
    class Broken(io.RawIOBase):
        def read(self, size=-1):
            raise OSError("boom")

    with pytest.raises(OSError):
        decode_stream(Broken(), DecodeOptions(max_bytes=10))


def test_with_defaults_max_delay_clamp():
    opts = DecodeOptions(min_delay=timedelta(milliseconds=200), max_delay=timedelta(milliseconds=100)).with_defaults()
    assert opts.max_delay == opts.min_delay


def test_transparent_frames_and_png_size():
    data = make_gif(
        3,
        2,
        [
            {"rect": (0, 0, 3, 2), "pixels": [0, 1, 0, 1, 0, 1], "delay": 4, "transparent": 0},
            {"rect": (0, 0, 3, 2), "pixels": [1] * 6, "delay": 4},
        ],
    )
    frames = decode(data, default_options())
    assert len(frames.frames) >= 2
    assert frames.frames[0].delay > timedelta(0)
    img = png_image(frames.frames[0].png)
    assert img.size == (frames.width, frames.height)
    assert any(a < 255 for (_, _, _, a) in img.getdata())
    assert img.getpixel((1, 0)) == (255, 255, 255, 255)


def test_disposal_previous_restores_canvas():
    data = make_gif(
        2,
        1,
        [
            {"rect": (0, 0, 2, 1), "pixels": [0, 0], "delay": 5, "disposal": 1},
            {"rect": (0, 0, 2, 1), "pixels": [1, 1], "delay": 5, "disposal": 3},
            {"rect": (0, 0, 1, 1), "pixels": [1], "delay": 5, "disposal": 1},
        ],
    )
    frames = decode(data, default_options())
    img = png_image(frames.frames[2].png)
    assert img.getpixel((0, 0))[:3] == (255, 255, 255)
    assert img.getpixel((1, 0))[:3] == (0, 0, 0)