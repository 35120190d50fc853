"""Extract a still frame or a contact sheet from a GIF file or URL."""

from __future__ import annotations

import sys
import urllib.error
import urllib.request
from urllib.parse import unquote, urlparse

from .gifdecode import decode, default_options
from .model import Options
from .stills import SheetOptions, contact_sheet, frame_at_png

_USER_AGENT = "gifgrep"
_FETCH_TIMEOUT = 20.0


def run_extract(opts: Options) -> None:
    """Decode the input GIF and write the requested still or sheet PNG."""
    if not opts.gif_input:
        raise ValueError("missing GIF input")
    if opts.still_set:
        if opts.stills_count > 0:
            raise ValueError("use still or sheet, not both")
    else:
        if opts.stills_count < 1:
            raise ValueError("bad args: --frames must be >= 1")
        if opts.stills_cols < 0:
            raise ValueError("bad args: --cols must be >= 0")
        if opts.stills_padding < 0:
            raise ValueError("bad args: --padding must be >= 0")

    data = read_input(opts.gif_input)
    decode_opts = default_options()
    decode_opts.max_frames = 0
    decoded = decode(data, decode_opts)

    if opts.still_set:
        output, _ = frame_at_png(decoded, opts.still_at)
    else:
        output = contact_sheet(
            decoded,
            SheetOptions(
                count=opts.stills_count,
                columns=opts.stills_cols,
                padding=opts.stills_padding,
            ),
        )

    write_output(resolve_extract_out_path(opts), output)


def resolve_extract_out_path(opts: Options) -> str:
    """Return the output path, defaulting to still.png or sheet.png."""
    if opts.out_path:
        return opts.out_path
    return "still.png" if opts.still_set else "sheet.png"


def read_input(source: str) -> bytes:
    """Read GIF bytes from an http(s) URL, a file:// URL or a local path."""
    if source.startswith(("http://", "https://")):
        return fetch_url(source)
    if source.startswith("file://"):
        path = unquote(urlparse(source).path)
        with open(path, "rb") as fh:
            return fh.read()
    with open(source, "rb") as fh:
        return fh.read()


def fetch_url(url: str) -> bytes:
    """GET ``url`` and return the body; non-2xx statuses raise ``OSError``."""
    request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    try:
        response = urllib.request.urlopen(request, timeout=_FETCH_TIMEOUT)
    except urllib.error.HTTPError as exc:
        raise OSError(f"http {exc.code}") from exc
    with response:
        if not 200 <= response.status < 300:
            raise OSError(f"http {response.status}")
        return response.read()


def write_output(path: str, data: bytes) -> None:
    """Write ``data`` to ``path``, or to standard output when ``path`` is ``-``."""
    if path == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    with open(path, "wb") as fh:
        fh.write(data)