"""Text rendering of search results, with optional inline thumbnails."""

from __future__ import annotations

import struct
import urllib.error
import urllib.request
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from .gifdecode import Frame, Frames, GifDecodeError, decode, default_options
from .iterm import InlineFile, send_inline_file
from .kitty import send_frame
from .model import Options, Result

_BOLD = "\x1b[1m"
_CYAN = "\x1b[36m"
_RESET = "\x1b[0m"
_ELLIPSIS = "…"


class OutputFormat(str, Enum):
    AUTO = "auto"
    PLAIN = "plain"
    TSV = "tsv"
    MD = "md"
    URL = "url"
    COMMENT = "comment"
    JSON = "json"


class ThumbsMode(str, Enum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class InlineProtocol(str, Enum):
    """Terminal inline image protocol."""

    NONE = "none"
    KITTY = "kitty"
    ITERM = "iterm"


class _ThumbError(Exception):
    """A thumbnail could not be shown; the caller falls back to text."""


def _fetch_thumb(url: str) -> bytes:
    request = urllib.request.Request(url, headers={"User-Agent": "gifgrep"})
    try:
        response = urllib.request.urlopen(request, timeout=20)
    except urllib.error.HTTPError as exc:
        raise OSError(f"http {exc.code}") from exc
    with response:
        if not 200 <= response.status < 300:
            raise OSError(f"http {response.status}")
        return response.read()


def _decode_thumb(data: bytes) -> Frames:
    opts = default_options()
    opts.max_frames = 1
    return decode(data, opts)


def _send_thumb_kitty(out: TextIO, image_id: int, frame: Frame, cols: int, rows: int) -> None:
    send_frame(out, image_id, frame, cols, rows)


def _send_thumb_iterm(out: TextIO, data: bytes, cols: int, rows: int) -> None:
    send_inline_file(
        out,
        InlineFile(
            name=thumb_inline_name(data),
            data=data,
            width_cells=cols,
            height_cells=rows,
            stretch=True,
        ),
    )


@dataclass
class ThumbHooks:
    """How thumbnails are fetched, decoded and sent to the terminal."""

    fetch: Callable[[str], bytes] = _fetch_thumb
    decode: Callable[[bytes], Frames | None] = _decode_thumb
    send_kitty: Callable[[TextIO, int, Frame, int, int], None] = _send_thumb_kitty
    send_iterm: Callable[[TextIO, bytes, int, int], None] = _send_thumb_iterm


def resolve_output_format(opts: Options, is_tty: bool) -> OutputFormat:
    """Pick the output format; ``auto`` means plain on a terminal, url otherwise."""
    if opts.json:
        return OutputFormat.JSON
    name = opts.format.strip().lower()
    if name in ("", OutputFormat.AUTO.value):
        return OutputFormat.PLAIN if is_tty else OutputFormat.URL
    try:
        return OutputFormat(name)
    except ValueError:
        # Unknown formats are written as tab-separated lines.
        return OutputFormat.TSV


def resolve_thumbs_mode(opts: Options) -> ThumbsMode:
    """Return the thumbnail mode, defaulting to ``auto``."""
    try:
        return ThumbsMode(opts.thumbs.strip().lower() or ThumbsMode.AUTO.value)
    except ValueError:
        return ThumbsMode.AUTO


def normalize_title(res: Result) -> str:
    """Collapse whitespace in the title, falling back to the id, then ``untitled``."""
    return " ".join(res.title.split()) or " ".join(res.id.split()) or "untitled"


def _is_gif(data: bytes) -> bool:
    return data[:6] in (b"GIF87a", b"GIF89a")


def _is_png(data: bytes) -> bool:
    return len(data) >= 8 and data[:8] == b"\x89PNG\r\n\x1a\n"


def _is_jpeg(data: bytes) -> bool:
    return data[:3] == b"\xff\xd8\xff"


def _is_supported_iterm_image(data: bytes) -> bool:
    return _is_gif(data) or _is_png(data) or _is_jpeg(data)


def thumb_inline_name(data: bytes) -> str:
    """Return a file name whose extension matches the image data."""
    if _is_gif(data):
        return "thumb.gif"
    if _is_png(data):
        return "thumb.png"
    if _is_jpeg(data):
        return "thumb.jpg"
    return "thumb.bin"


def thumb_dims(data: bytes, res: Result) -> tuple[int, int]:
    """Read width and height from a GIF or PNG header, else from the result."""
    if _is_gif(data):
        if len(data) < 10:
            return 0, 0
        return struct.unpack_from("<HH", data, 6)
    if _is_png(data):
        if len(data) < 24:
            return 0, 0
        return struct.unpack_from(">II", data, 16)
    if res.width > 0 and res.height > 0:
        return res.width, res.height
    return 0, 0


def truncate_text(s: str, width: int) -> str:
    """Cut ``s`` to ``width`` characters, ending with an ellipsis when cut."""
    if width <= 0 or len(s) <= width:
        return s
    if width <= 1:
        return _ELLIPSIS
    return s[: width - 1] + _ELLIPSIS


def wrap_text(s: str, width: int) -> list[str]:
    """Split ``s`` into pieces of at most ``width`` characters."""
    if width <= 0 or not s:
        return [s]
    return [s[start : start + width] for start in range(0, len(s), width)]


def thumb_text_lines(prefix: str, title: str, url: str, rows: int, text_width: int) -> tuple[str, list[str]]:
    """Lay out the title line and URL lines that sit beside a thumbnail."""
    title_line = truncate_text(prefix + title, text_width)
    url_lines = wrap_text(url, text_width) if text_width > 0 else [url]
    keep = rows - 1
    if len(url_lines) > keep:
        url_lines = url_lines[:keep] if keep > 0 else []
        if url_lines:
            url_lines[-1] = truncate_text(url_lines[-1] + _ELLIPSIS, text_width)
    return title_line, url_lines


def render_plain(
    out: TextIO,
    opts: Options,
    use_color: bool,
    thumbs: InlineProtocol,
    results: Sequence[Result],
    term_cols: int,
    hooks: ThumbHooks | None = None,
) -> None:
    """Write results as title/URL blocks, with thumbnails where the terminal allows."""
    hooks = hooks or ThumbHooks()
    next_id = 1
    with_thumbs = thumbs != InlineProtocol.NONE
    last = len(results) - 1
    for i, res in enumerate(results):
        title = normalize_title(res)
        url = res.url
        prefix = f"{i + 1}. " if opts.number else ""

        if with_thumbs and _render_thumb_block(out, thumbs, next_id, res, prefix, title, url, use_color, term_cols, hooks):
            next_id += 1
            if i < last:
                out.write("\r\x1b[K\n" if thumbs == InlineProtocol.ITERM else "\n")
            continue

        if use_color:
            title = _BOLD + prefix + title + _RESET
            url = _CYAN + url + _RESET
        else:
            title = prefix + title
        out.write(f"{title}\n  {url}\n\n")


def write_search_results(
    out: TextIO,
    opts: Options,
    use_color: bool,
    thumbs: InlineProtocol,
    results: Sequence[Result],
    term_cols: int,
    output_format: OutputFormat,
    hooks: ThumbHooks | None = None,
) -> None:
    """Write results in the given text format; JSON is left to the caller."""
    if output_format == OutputFormat.PLAIN:
        render_plain(out, opts, use_color, thumbs, results, term_cols, hooks)
        return
    if output_format == OutputFormat.JSON:
        return
    for n, res in enumerate(results, start=1):
        url = res.url
        if output_format == OutputFormat.URL:
            out.write(f"{n}\t{url}\n" if opts.number else f"{url}\n")
        elif output_format == OutputFormat.MD:
            prefix = f"{n}. " if opts.number else "- "
            out.write(f"{prefix}[{normalize_title(res)}]({url})\n")
        elif output_format == OutputFormat.COMMENT:
            line = f"{url}  # {normalize_title(res)}"
            out.write(f"{n}\t{line}\n" if opts.number else f"{line}\n")
        else:
            title = normalize_title(res)
            if use_color:
                title = _BOLD + title + _RESET
                url = _CYAN + url + _RESET
            out.write(f"{n}\t{title}\t{url}\n" if opts.number else f"{title}\t{url}\n")


def _render_thumb_block(
    out: TextIO,
    thumbs: InlineProtocol,
    image_id: int,
    res: Result,
    prefix: str,
    title: str,
    url: str,
    use_color: bool,
    term_cols: int,
    hooks: ThumbHooks,
) -> bool:
    try:
        src = res.preview_url or res.url
        data = hooks.fetch(src)
        cols, rows = _thumb_block_size(thumbs, data, res)
        data = _prepare_thumb_data(thumbs, data, src, res, hooks)
        _send_thumb(out, thumbs, image_id, data, cols, rows, hooks)
    except (OSError, ValueError, GifDecodeError, _ThumbError):
        return False

    indent = cols if thumbs == InlineProtocol.ITERM else cols + 2
    text_width = term_cols - indent - 1
    if term_cols <= 0 or text_width <= 0:
        text_width = 0
    title_line, url_lines = thumb_text_lines(prefix, title, url, rows, text_width)
    _write_thumb_text_block(out, thumbs, rows, indent, title_line, url_lines, use_color)
    return True


def _thumb_block_size(thumbs: InlineProtocol, data: bytes, res: Result) -> tuple[int, int]:
    cols, rows = 16, 8
    width, height = thumb_dims(data, res)
    if width > 0 and height > 0 and thumbs != InlineProtocol.ITERM:
        rows = min(max(int(cols * 0.5 * height / width), 3), 10)
    return cols, rows


def _prepare_thumb_data(thumbs: InlineProtocol, data: bytes, src: str, res: Result, hooks: ThumbHooks) -> bytes:
    if thumbs == InlineProtocol.ITERM:
        if not _is_supported_iterm_image(data) and src != res.url and res.url:
            try:
                data = hooks.fetch(res.url)
            except (OSError, ValueError):
                pass
        if not data:
            raise _ThumbError("empty image")
        if not _is_supported_iterm_image(data):
            raise _ThumbError("unsupported image")
        return data
    if thumbs == InlineProtocol.KITTY:
        if not data:
            raise _ThumbError("empty image")
        return data
    raise _ThumbError("inline thumbnails not supported")


def _send_thumb(
    out: TextIO, thumbs: InlineProtocol, image_id: int, data: bytes, cols: int, rows: int, hooks: ThumbHooks
) -> None:
    if thumbs == InlineProtocol.ITERM:
        out.write("\r")
        hooks.send_iterm(out, data, cols, rows)
        if rows > 1:
            out.write(f"\x1b[{rows - 1}A")
        return
    if thumbs == InlineProtocol.KITTY:
        decoded = hooks.decode(data)
        if decoded is None or not decoded.frames:
            raise _ThumbError("no frames")
        hooks.send_kitty(out, image_id, decoded.frames[0], cols, rows)
        return
    raise _ThumbError("inline thumbnails not supported")


def _write_thumb_text_block(
    out: TextIO,
    thumbs: InlineProtocol,
    rows: int,
    indent: int,
    title_line: str,
    url_lines: list[str],
    use_color: bool,
) -> None:
    for row in range(rows):
        if row == 0:
            line = _BOLD + title_line + _RESET if use_color else title_line
        elif row - 1 < len(url_lines):
            line = url_lines[row - 1]
            if use_color:
                line = _CYAN + line + _RESET
        else:
            line = ""

        if thumbs == InlineProtocol.ITERM:
            out.write(f"\x1b[{max(indent + 1, 1)}G{line}\x1b[K\n")
        else:
            out.write(" " * indent + line + "\n")