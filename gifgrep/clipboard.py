"""Copy a GIF file to the system clipboard."""

from __future__ import annotations

import shutil
import subprocess
import sys


def copy_file(path: str) -> None:
    """Put the file at ``path`` on the clipboard."""
    if not path:
        raise ValueError("empty path")
    command, args = copy_command(sys.platform, path)
    subprocess.run(
        [command, *args],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        check=True,
    )


def copy_command(platform: str, path: str) -> tuple[str, list[str]]:
    """Return the command and arguments that copy ``path`` on ``platform``."""
    if platform == "darwin":
        return "osascript", ["-e", f'set the clipboard to (POSIX file "{path}")']
    if shutil.which("xclip"):
        return "xclip", ["-selection", "clipboard", "-t", "image/gif", "-i", path]
    if shutil.which("wl-copy"):
        return "sh", ["-c", "wl-copy --type image/gif < " + path]
    raise FileNotFoundError("no clipboard tool found (need xclip or wl-copy)")