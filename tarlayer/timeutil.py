"""Time bounds and setting file access and modification times."""

from __future__ import annotations

import datetime as _dt
import os
import sys
from typing import Optional

_UTC = _dt.timezone.utc
EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_UTC)

MIN_TIME = EPOCH
if sys.maxsize > 2**32:
    # 64-bit timespec: the largest nanosecond count an int64 can hold.
    MAX_TIME = EPOCH + _dt.timedelta(microseconds=(2**63 - 1) // 1000)
else:
    MAX_TIME = EPOCH + _dt.timedelta(seconds=2**31 - 1)


def _aware(t: _dt.datetime) -> _dt.datetime:
    return t.replace(tzinfo=_UTC) if t.tzinfo is None else t


def bound_time(t: _dt.datetime) -> _dt.datetime:
    """Return ``t``, or the epoch when it lies outside the settable range.

    Naive datetimes are taken to be UTC.
    """
    aware = _aware(t)
    if aware < MIN_TIME or aware > MAX_TIME:
        return MIN_TIME
    return t


def latest_time(t1: _dt.datetime, t2: _dt.datetime) -> _dt.datetime:
    """Return the later of two times, preferring ``t1`` when equal."""
    if _aware(t1) < _aware(t2):
        return t2
    return t1


def _to_ns(t: _dt.datetime) -> int:
    delta = _aware(t) - EPOCH
    return (delta.days * 86400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1000


def _set_times(
    name: str | os.PathLike,
    atime: Optional[_dt.datetime],
    mtime: Optional[_dt.datetime],
    follow_symlinks: bool,
) -> None:
    if atime is None and mtime is None:
        return
    if atime is None or mtime is None:
        current = os.stat(name, follow_symlinks=follow_symlinks)
        atime_ns = current.st_atime_ns if atime is None else _to_ns(atime)
        mtime_ns = current.st_mtime_ns if mtime is None else _to_ns(mtime)
    else:
        atime_ns, mtime_ns = _to_ns(atime), _to_ns(mtime)
    os.utime(name, ns=(atime_ns, mtime_ns), follow_symlinks=follow_symlinks)


def chtimes(
    name: str | os.PathLike,
    atime: Optional[_dt.datetime],
    mtime: Optional[_dt.datetime],
) -> None:
    """Set access and modification times, following symlinks.

    A time of None leaves that timestamp unchanged.
    """
    _set_times(name, atime, mtime, follow_symlinks=True)


def lchtimes(
    name: str | os.PathLike,
    atime: Optional[_dt.datetime],
    mtime: Optional[_dt.datetime],
) -> None:
    """Set access and modification times of a path without following symlinks.

    A time of None leaves that timestamp unchanged. Raises
    NotImplementedError where the platform cannot change a link's times.
    """
    _set_times(name, atime, mtime, follow_symlinks=False)