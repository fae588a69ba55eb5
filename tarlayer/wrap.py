"""Build small tar archives from in-memory content."""

from __future__ import annotations

import io
import itertools
import tarfile


def _string_pairs(items: tuple[str, ...]) -> list[tuple[str, str]]:
    iterator = iter(items)
    return list(itertools.zip_longest(iterator, iterator, fillvalue=""))


def generate(*args: str) -> io.BytesIO:
    """Return a tar archive holding one regular file per name/content pair.

    Arguments alternate between a file name and its content; a trailing name
    without content becomes an empty file.
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w", format=tarfile.PAX_FORMAT) as archive:
        for name, content in _string_pairs(args):
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0
            info.mtime = 0
            info.type = tarfile.REGTYPE
            archive.addfile(info, io.BytesIO(data))
    buffer.seek(0)
    return buffer