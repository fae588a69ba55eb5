"""Detection, decompression and compression of tar streams."""

from __future__ import annotations

import bz2
import enum
import gzip
import io
import logging
import lzma
import os
import shutil
import subprocess
import threading
from typing import BinaryIO, Iterable

import zstandard

_log = logging.getLogger(__name__)

_CHUNK = 32 * 1024
_PEEK_SIZE = 10

DISABLE_PIGZ_ENV = "TARLAYER_DISABLE_PIGZ"

_BZIP2_MAGIC = bytes([0x42, 0x5A, 0x68])
_GZIP_MAGIC = bytes([0x1F, 0x8B, 0x08])
_XZ_MAGIC = bytes([0xFD, 0x37, 0x7A, 0x58, 0x5A, 0x00])
_ZSTD_MAGIC = bytes([0x28, 0xB5, 0x2F, 0xFD])
_ZSTD_SKIPPABLE_START = 0x184D2A50
_ZSTD_SKIPPABLE_MASK = 0xFFFFFFF0


class Compression(enum.IntEnum):
    """Compression algorithm of a tar stream."""

    NONE = 0
    BZIP2 = 1
    GZIP = 2
    XZ = 3
    ZSTD = 4

    def extension(self) -> str:
        """Return the file extension used for archives with this compression."""
        return _EXTENSIONS.get(self, "")


_EXTENSIONS = {
    Compression.NONE: "tar",
    Compression.BZIP2: "tar.bz2",
    Compression.GZIP: "tar.gz",
    Compression.XZ: "tar.xz",
    Compression.ZSTD: "tar.zst",
}


def _is_zstd(source: bytes) -> bool:
    if source.startswith(_ZSTD_MAGIC):
        return True
    if len(source) < 8:
        return False
    magic = int.from_bytes(source[:4], "little")
    return magic & _ZSTD_SKIPPABLE_MASK == _ZSTD_SKIPPABLE_START


def detect(source: bytes) -> Compression:
    """Detect the compression algorithm from the leading bytes of a stream."""
    source = bytes(source)
    if source.startswith(_BZIP2_MAGIC):
        return Compression.BZIP2
    if source.startswith(_GZIP_MAGIC):
        return Compression.GZIP
    if source.startswith(_XZ_MAGIC):
        return Compression.XZ
    if _is_zstd(source):
        return Compression.ZSTD
    return Compression.NONE


class _PrefixedReader(io.RawIOBase):
    """Raw reader that yields already-consumed bytes before the rest of a stream.

    Closing it leaves the underlying stream open.
    """

    def __init__(self, prefix: bytes, source: BinaryIO) -> None:
        super().__init__()
        self._prefix = bytes(prefix)
        self._source = source

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        if not len(view):
            return 0
        if self._prefix:
            count = min(len(view), len(self._prefix))
            view[:count] = self._prefix[:count]
            self._prefix = self._prefix[count:]
            return count
        data = self._source.read(len(view))
        if not data:
            return 0
        count = len(data)
        view[:count] = data
        return count


def _read_up_to(stream: BinaryIO, size: int) -> bytes:
    collected = bytearray()
    while len(collected) < size:
        chunk = stream.read(size - len(collected))
        if not chunk:
            break
        collected += chunk
    return bytes(collected)


def _parse_bool(value: str) -> bool:
    if value in ("1", "t", "T", "true", "TRUE", "True"):
        return True
    if value in ("0", "f", "F", "false", "FALSE", "False"):
        return False
    raise ValueError(f"invalid boolean value {value!r}")


def _gzip_decompress(reader: BinaryIO):
    setting = os.environ.get(DISABLE_PIGZ_ENV, "")
    if setting:
        try:
            disabled = _parse_bool(setting)
        except ValueError:
            _log.warning("invalid value in %s env var: %r", DISABLE_PIGZ_ENV, setting)
            disabled = False
        if disabled:
            _log.debug("use of pigz is disabled due to %s=%s", DISABLE_PIGZ_ENV, setting)
            return gzip.GzipFile(fileobj=reader, mode="rb")

    unpigz = shutil.which("unpigz")
    if unpigz is None:
        _log.debug("unpigz binary not found, falling back to the gzip module")
        return gzip.GzipFile(fileobj=reader, mode="rb")

    _log.debug("using %s to decompress", unpigz)
    return cmd_stream([unpigz, "-d", "-c"], reader)


def _xz_decompress(reader: BinaryIO):
    xz = shutil.which("xz")
    if xz is None:
        _log.debug("xz binary not found, falling back to the lzma module")
        return lzma.LZMAFile(reader, mode="rb")
    return cmd_stream([xz, "-d", "-c", "-q"], reader)


def decompress_stream(archive: BinaryIO):
    """Return a readable stream with the decompressed content of ``archive``.

    The compression is detected from the leading bytes; an empty input is
    treated as an uncompressed, empty stream.
    """
    head = _read_up_to(archive, _PEEK_SIZE)
    reader = io.BufferedReader(_PrefixedReader(head, archive), _CHUNK)
    compression = detect(head)

    if compression is Compression.NONE:
        return reader
    if compression is Compression.GZIP:
        return _gzip_decompress(reader)
    if compression is Compression.BZIP2:
        return bz2.BZ2File(reader, mode="rb")
    if compression is Compression.XZ:
        return _xz_decompress(reader)
    if compression is Compression.ZSTD:
        return zstandard.ZstdDecompressor().stream_reader(reader, read_across_frames=True)
    raise ValueError(f"unsupported compression format ({int(compression)})")


class _UnclosingWriter(io.RawIOBase):
    """Writer that passes data through and leaves the destination open on close."""

    def __init__(self, dest: BinaryIO) -> None:
        super().__init__()
        self._dest = dest

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        self._dest.write(data)
        return memoryview(data).nbytes

    def flush(self) -> None:
        if self.closed:
            return
        flush = getattr(self._dest, "flush", None)
        if flush is not None:
            flush()


def compress_stream(dest: BinaryIO, compression):
    """Return a writer that compresses into ``dest`` with the given algorithm.

    Only uncompressed and gzip output are supported.
    """
    if compression == Compression.NONE:
        return _UnclosingWriter(dest)
    if compression == Compression.GZIP:
        return gzip.GzipFile(filename="", mode="wb", fileobj=dest, mtime=0)
    if compression == Compression.BZIP2:
        raise ValueError("unsupported compression format: tar.bz2")
    if compression == Compression.XZ:
        raise ValueError("unsupported compression format: tar.xz")
    raise ValueError(f"unsupported compression format ({int(compression)})")


def _describe_exit(returncode: int) -> str:
    if returncode < 0:
        return f"signal {-returncode}"
    return f"exit status {returncode}"


class CommandStream(io.RawIOBase):
    """The standard output of a running command, read as a stream.

    When the output is exhausted the command is waited for; if it failed,
    reading raises ChildProcessError carrying whatever it wrote to stderr.
    """

    def __init__(self, args: Iterable[str], stdin: BinaryIO | None = None) -> None:
        self._proc: subprocess.Popen | None = None
        super().__init__()
        self._stderr = bytearray()
        self._error: BaseException | None = None
        self._feed_error: BaseException | None = None
        self._finished = False
        self._proc = subprocess.Popen(
            list(args),
            stdin=subprocess.PIPE if stdin is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        self._stderr_thread = threading.Thread(target=self._collect_stderr, daemon=True)
        self._stderr_thread.start()
        self._feeder = None
        if stdin is not None:
            self._feeder = threading.Thread(target=self._feed, args=(stdin,), daemon=True)
            self._feeder.start()

    def _collect_stderr(self) -> None:
        stream = self._proc.stderr
        try:
            for chunk in iter(lambda: stream.read(_CHUNK), b""):
                self._stderr += chunk
        except (OSError, ValueError):
            pass
        finally:
            stream.close()

    def _feed(self, source: BinaryIO) -> None:
        sink = self._proc.stdin
        try:
            for chunk in iter(lambda: source.read(_CHUNK), b""):
                sink.write(chunk)
        except BrokenPipeError:
            pass
        except (OSError, ValueError) as exc:
            self._feed_error = exc
        finally:
            try:
                sink.close()
            except OSError:
                pass

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        returncode = self._proc.wait()
        self._stderr_thread.join()
        if self._feeder is not None:
            self._feeder.join()
        if returncode != 0:
            message = self._stderr.decode("utf-8", errors="replace")
            self._error = ChildProcessError(f"{_describe_exit(returncode)}: {message}")
        elif self._feed_error is not None:
            self._error = self._feed_error
        if self._error is not None:
            raise self._error

    def readable(self) -> bool:
        return True

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes of output, or all of it when negative."""
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        if self._error is not None:
            raise self._error
        if size is None or size < 0:
            data = self._proc.stdout.read()
            self._finish()
            return data
        if size == 0:
            return b""
        data = self._proc.stdout.read1(size)
        if not data:
            self._finish()
        return data

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        data = self.read(len(view))
        view[: len(data)] = data
        return len(data)

    def close(self) -> None:
        """Stop reading and wait for the command to end."""
        if self.closed:
            return
        proc = self._proc
        if proc is not None:
            if proc.stdout is not None:
                proc.stdout.close()
            if proc.poll() is None:
                proc.kill()
            proc.wait()
            self._stderr_thread.join()
        super().close()


def cmd_stream(args: Iterable[str], stdin: BinaryIO | None = None) -> CommandStream:
    """Start a command and return its standard output as a stream."""
    return CommandStream(args, stdin)