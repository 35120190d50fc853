"""Save search results into the user's Downloads directory."""

from __future__ import annotations

import os
import shutil
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import urlparse

from .model import Result

_MAX_NAME_LEN = 80
_USER_AGENT = "gifgrep"


def to_downloads(item: Result) -> str:
    """Download ``item`` into the Downloads directory and return the saved path."""
    directory = default_dir()
    os.makedirs(directory, mode=0o755, exist_ok=True)
    final_path = unique_file_path(directory, filename_for_result(item))
    download_gif_to_file(item.url, final_path)
    return final_path


def default_dir() -> str:
    """Return the user's Downloads directory."""
    return str(Path.home() / "Downloads")


def filename_for_result(item: Result) -> str:
    """Build a safe ``.gif`` file name for a result."""
    name = item.title.strip() or item.id.strip()
    name = " ".join(name.split())
    if not name:
        name = _filename_from_url(item.url)
    if not name:
        name = "gif"
    name = _sanitize_filename(name)
    if not name.lower().endswith(".gif"):
        name += ".gif"
    if len(name) > _MAX_NAME_LEN:
        ext = _ext(name)
        base = name[: len(name) - len(ext)]
        if len(ext) > 10:
            ext = ".gif"
        trim = _MAX_NAME_LEN - len(ext)
        if trim < 1:
            trim = _MAX_NAME_LEN
        name = base[:trim] + ext
    return name


def unique_file_path(directory: str, filename: str) -> str:
    """Return a path in ``directory`` that does not exist yet, adding ``-N`` if needed."""
    full_path = os.path.join(directory, filename)
    if not _exists(full_path):
        return full_path
    ext = _ext(filename)
    base = filename[: len(filename) - len(ext)]
    if not ext:
        ext = ".gif"
    for i in range(1, 1000):
        candidate = os.path.join(directory, f"{base}-{i}{ext}")
        if not _exists(candidate):
            return candidate
    raise FileExistsError("could not pick filename")


def download_gif_to_file(url: str, dest: str, timeout: float = 20.0) -> None:
    """Fetch ``url`` and write it atomically to ``dest``."""
    request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    try:
        response = urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        raise OSError(f"http {exc.code}") from exc
    with response:
        status = response.status
        if not 200 <= status < 300:
            raise OSError(f"http {status}")
        directory = os.path.dirname(dest) or "."
        fd, tmp_name = tempfile.mkstemp(prefix="gifgrep-", suffix=".gif", dir=directory)
        try:
            with os.fdopen(fd, "wb") as tmp:
                shutil.copyfileobj(response, tmp)
            os.replace(tmp_name, dest)
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)


def _exists(path: str) -> bool:
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    return True


def _ext(name: str) -> str:
    base = name.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _filename_from_url(raw_url: str) -> str:
    try:
        url_path = urlparse(raw_url).path
    except ValueError:
        return ""
    trimmed = url_path.rstrip("/")
    if not trimmed:
        return ""
    return trimmed.rsplit("/", 1)[-1]


def _sanitize_char(ch: str) -> str:
    if ord(ch) > 127:
        return "_"
    if ch.isascii() and (ch.isalnum() or ch in ".-_"):
        return ch
    return "_"


def _sanitize_filename(name: str) -> str:
    out = "".join(_sanitize_char(ch) for ch in name).strip("._-")
    return out or "gif"