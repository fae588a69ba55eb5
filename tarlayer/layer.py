"""Whiteout markers and helpers for applying filesystem layer archives."""

from __future__ import annotations

import contextlib
import lzma
import os
import tarfile
import zlib
from typing import BinaryIO, Iterator

import zstandard

from tarlayer.compression import decompress_stream

# A whiteout file marks that the named file was removed from a lower layer.
WHITEOUT_PREFIX = ".wh."
# Whiteouts with this prefix carry a special meaning and do not remove a file.
WHITEOUT_META_PREFIX = WHITEOUT_PREFIX + WHITEOUT_PREFIX
# Directory used by AUFS to store hardlinks shared between layers.
WHITEOUT_LINK_DIR = WHITEOUT_META_PREFIX + "plnk"
# Marks a directory as opaque: lower layers are not visible through it.
WHITEOUT_OPAQUE_DIR = WHITEOUT_META_PREFIX + ".opq"

_BLOCK_SIZE = 512
_ZERO_BLOCK = bytes(_BLOCK_SIZE)

_READ_ERRORS = (
    OSError,
    EOFError,
    ValueError,
    tarfile.TarError,
    lzma.LZMAError,
    zlib.error,
    zstandard.ZstdError,
)


def _read_block(reader: BinaryIO) -> bytes:
    collected = bytearray()
    while len(collected) < _BLOCK_SIZE:
        chunk = reader.read(_BLOCK_SIZE - len(collected))
        if not chunk:
            break
        collected += chunk
    if collected and len(collected) < _BLOCK_SIZE:
        raise EOFError("unexpected end of archive")
    return bytes(collected)


def _has_no_entries(reader: BinaryIO) -> bool:
    block = _read_block(reader)
    if not block:
        return True
    if block == _ZERO_BLOCK:
        second = _read_block(reader)
        if not second or second == _ZERO_BLOCK:
            return True
        raise tarfile.ReadError("invalid tar header: zero block followed by data")
    tarfile.TarInfo.frombuf(block, "utf-8", "surrogateescape")
    return False


def is_empty(stream: BinaryIO) -> bool:
    """Return whether the (possibly compressed) tar archive holds no entries.

    Raises tarfile.ReadError when the stream cannot be decompressed or its
    first header cannot be read.
    """
    try:
        reader = decompress_stream(stream)
    except _READ_ERRORS as exc:
        raise tarfile.ReadError(f"failed to decompress archive: {exc}") from exc
    with contextlib.closing(reader):
        try:
            return _has_no_entries(reader)
        except _READ_ERRORS as exc:
            raise tarfile.ReadError(f"failed to read next archive header: {exc}") from exc


@contextlib.contextmanager
def override_umask(new_mask: int) -> Iterator[int]:
    """Set the process umask for the duration of the block.

    Yields the previous mask and restores it on exit. The umask is process
    wide, so this is unsafe while other threads create files. It does
    nothing on Windows.
    """
    if os.name == "nt":
        yield 0
        return
    old_mask = os.umask(new_mask)
    try:
        yield old_mask
    finally:
        os.umask(old_mask)