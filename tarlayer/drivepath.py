"""Validation of user supplied paths that may carry a drive letter."""

from __future__ import annotations

import os
import re

_IS_WINDOWS = os.name == "nt"

_UNC = re.compile(r"^[\\/]{2}[^\\/]+[\\/]+[^\\/]+")


def _is_slash(char: str) -> bool:
    return char in ("\\", "/")


def _has_drive_letter(path: str) -> bool:
    return len(path) >= 2 and path[1] == ":" and path[0].isascii() and path[0].isalpha()


def _is_abs(path: str) -> bool:
    if _has_drive_letter(path):
        return len(path) > 2 and _is_slash(path[2])
    return bool(_UNC.match(path))


def _from_slash(path: str) -> str:
    return path.replace("/", "\\")


def windows_check_system_drive(path: str) -> str:
    """Validate a Windows path and strip its drive letter.

    A drive letter, if present, must be the system drive C:. The result uses
    backslashes. Raises ValueError for a bare drive or another drive.
    """
    if len(path) == 2 and path[1] == ":":
        raise ValueError(f"no relative path specified in {_go_quote(path)}")
    if not _is_abs(path) or len(path) < 2:
        return _from_slash(path)
    if path[1] == ":" and path[0].lower() != "c":
        raise ValueError("the specified path is not on the system drive (C:)")
    return _from_slash(path[2:])


def _go_quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def check_system_drive_and_remove_drive_letter(path: str) -> str:
    """Check a path's drive letter on Windows; return other paths unchanged."""
    if _IS_WINDOWS:
        return windows_check_system_drive(path)
    return path