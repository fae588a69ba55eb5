"""Reading and writing extended attributes without following symlinks."""

from __future__ import annotations

import errno
import os
from typing import Optional

_NOT_SET = {
    code
    for code in (getattr(errno, "ENODATA", None), getattr(errno, "ENOATTR", None))
    if code is not None
}


def _wrap(op: str, path, attr: str, exc: OSError) -> OSError:
    return OSError(exc.errno, f"{op}: xattr {attr!r}: {exc.strerror}", os.fspath(path))


def lgetxattr(path, attr: str) -> Optional[bytes]:
    """Return the value of an extended attribute, or None if it is not set.

    Returns None as well where the platform has no extended attributes.
    """
    getter = getattr(os, "getxattr", None)
    if getter is None:
        return None
    try:
        return getter(path, attr, follow_symlinks=False)
    except OSError as exc:
        if exc.errno in _NOT_SET:
            return None
        raise _wrap("lgetxattr", path, attr, exc) from exc


def lsetxattr(path, attr: str, data: bytes, flags: int = 0) -> None:
    """Set an extended attribute; does nothing where they are unsupported."""
    setter = getattr(os, "setxattr", None)
    if setter is None:
        return
    try:
        setter(path, attr, data, flags, follow_symlinks=False)
    except OSError as exc:
        raise _wrap("lsetxattr", path, attr, exc) from exc