"""Reveal a file in the platform's file manager."""

from __future__ import annotations

import ntpath
import os
import shutil
import subprocess
import sys


def reveal(path: str) -> None:
    """Open the file manager at ``path``."""
    if not path:
        raise ValueError("empty path")
    path = os.path.abspath(path)
    command, args = command_for_reveal(_current_platform(), path)
    subprocess.run(
        [command, *args],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        check=True,
    )


def command_for_reveal(platform: str, path: str) -> tuple[str, list[str]]:
    """Return the command and arguments that reveal ``path`` on ``platform``."""
    if platform == "darwin":
        return "open", ["-R", path]
    if platform in ("windows", "win32"):
        return "explorer.exe", ["/select," + ntpath.normpath(path)]
    directory = os.path.normpath(os.path.dirname(path))
    if shutil.which("xdg-open"):
        return "xdg-open", [directory]
    if shutil.which("gio"):
        return "gio", ["open", directory]
    raise FileNotFoundError("no file manager opener found (need xdg-open or gio)")


def _current_platform() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    return sys.platform