"""Resolution of copy sources and destinations, and rebasing of tar entries."""

from __future__ import annotations

import dataclasses
import errno
import io
import os
import stat
import tarfile
from typing import BinaryIO, Iterator

_SEP = os.sep
_MAX_SYMLINK_ITER = 10
_BLOCK_SIZE = 512


class CopyError(Exception):
    """Base class of errors raised while preparing a copy."""

    default_message = "copy error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NotDirectoryError(CopyError):
    """A path that must be a directory is not one."""

    default_message = "not a directory"


class DirNotExistsError(CopyError):
    """The destination is asserted to be a directory but does not exist."""

    default_message = "no such directory"


class CannotCopyDirError(CopyError):
    """A directory cannot be copied onto an existing non-directory."""

    default_message = "cannot copy directory"


class InvalidCopySourceError(CopyError):
    """The content of a copy source is not valid."""

    default_message = "invalid copy source content"


@dataclasses.dataclass
class CopyInfo:
    """Basic information about the source or destination of a copy."""

    path: str
    exists: bool = False
    is_dir: bool = False
    rebase_name: str = ""


def _normalize(path: str) -> str:
    if _SEP != "/":
        return path.replace("/", _SEP)
    return path


def _clean(path: str) -> str:
    if not path:
        return "."
    cleaned = os.path.normpath(path)
    if _SEP == "/" and cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip(_SEP)
    if not stripped:
        return _SEP
    return stripped[stripped.rfind(_SEP) + 1 :]


def _dir(path: str) -> str:
    return _clean(path[: path.rfind(_SEP) + 1])


def _split(path: str) -> tuple[str, str]:
    cut = path.rfind(_SEP) + 1
    return path[:cut], path[cut:]


def _has_trailing_sep(path: str) -> bool:
    return path.endswith(_SEP)


def _specifies_current_dir(path: str) -> bool:
    return _base(path) == "."


def _asserts_directory(path: str) -> bool:
    return _has_trailing_sep(path) or _specifies_current_dir(path)


def _eval_symlinks(path: str) -> str:
    target = path or "."
    os.stat(target)
    return os.path.realpath(target)


def preserve_trailing_dot_or_separator(cleaned_path: str, original_path: str) -> str:
    """Re-append a trailing ``/.`` or ``/`` that cleaning removed from a path."""
    cleaned_path = _normalize(cleaned_path)
    original_path = _normalize(original_path)

    if not _specifies_current_dir(cleaned_path) and _specifies_current_dir(original_path):
        if not _has_trailing_sep(cleaned_path):
            cleaned_path += _SEP
        cleaned_path += "."

    if not _has_trailing_sep(cleaned_path) and _has_trailing_sep(original_path):
        cleaned_path += _SEP

    return cleaned_path


def split_path_dir_entry(path: str) -> tuple[str, str]:
    """Split a cleaned path into directory and base, keeping a trailing ``.``."""
    cleaned = _clean(_normalize(path))
    if _specifies_current_dir(path):
        cleaned += _SEP + "."
    return _dir(cleaned), _base(cleaned)


def get_rebase_name(path: str, resolved_path: str) -> tuple[str, str]:
    """Complete a resolved path with the original's suffix and name the rebase.

    Returns the resolved path and the base name entries must be renamed to,
    or an empty name when no rename is needed.
    """
    rebase_name = ""
    if _specifies_current_dir(path) and not _specifies_current_dir(resolved_path):
        resolved_path += _SEP + "."
    if _has_trailing_sep(path) and not _has_trailing_sep(resolved_path):
        resolved_path += _SEP
    if _base(path) != _base(resolved_path):
        rebase_name = _base(path)
    return resolved_path, rebase_name


def resolve_host_source_path(path: str, follow_link: bool) -> tuple[str, str]:
    """Resolve symlinks in a copy source path.

    With ``follow_link`` every symlink is resolved; otherwise only those in
    the parent directory are, and a final symlink is kept as it is. Returns
    the resolved path and the rebase name.
    """
    if follow_link:
        return get_rebase_name(path, _eval_symlinks(path))

    dir_path, base_path = _split(path)
    resolved_path = _eval_symlinks(dir_path) + _SEP + base_path
    rebase_name = ""
    if _has_trailing_sep(path) and _base(path) != _base(resolved_path):
        rebase_name = _base(path)
    return resolved_path, rebase_name


def copy_info_source_path(path: str, follow_link: bool) -> CopyInfo:
    """Describe an existing copy source; raises OSError if it cannot be found."""
    path = _normalize(path)
    resolved_path, rebase_name = resolve_host_source_path(path, follow_link)
    st = os.lstat(resolved_path)
    return CopyInfo(
        path=resolved_path,
        exists=True,
        is_dir=stat.S_ISDIR(st.st_mode),
        rebase_name=rebase_name,
    )


def _try_lstat(path: str) -> tuple[os.stat_result | None, OSError | None]:
    try:
        return os.lstat(path), None
    except OSError as exc:
        return None, exc


def copy_info_destination_path(path: str) -> CopyInfo:
    """Describe a copy destination, following symlinks at its end.

    The destination need not exist, but its parent directory must.
    """
    path = _normalize(path)
    original_path = path

    st, err = _try_lstat(path)
    if st is not None and not stat.S_ISLNK(st.st_mode):
        return CopyInfo(path=path, exists=True, is_dir=stat.S_ISDIR(st.st_mode))

    iterations = 0
    while st is not None and stat.S_ISLNK(st.st_mode):
        if iterations > _MAX_SYMLINK_ITER:
            raise OSError(errno.ELOOP, f"too many symlinks in {original_path}")
        link_target = os.readlink(path)
        if not os.path.isabs(link_target):
            parent, _ = split_path_dir_entry(path)
            link_target = _clean(os.path.join(parent, link_target))
        path = link_target
        st, err = _try_lstat(path)
        iterations += 1

    if err is not None:
        if not isinstance(err, FileNotFoundError):
            raise err
        parent, _ = split_path_dir_entry(path)
        if not stat.S_ISDIR(os.stat(parent).st_mode):
            raise NotDirectoryError()
        return CopyInfo(path=path)

    return CopyInfo(path=path, exists=True, is_dir=stat.S_ISDIR(st.st_mode))


def prepare_archive_copy(
    src_content: BinaryIO, src_info: CopyInfo, dst_info: CopyInfo
) -> tuple[str, BinaryIO]:
    """Adapt an archive of ``src_info`` for extraction towards ``dst_info``.

    Returns the directory to extract into and the possibly rebased archive.
    """
    src_path = _normalize(src_info.path)
    dst_path = _normalize(dst_info.path)

    dst_dir, dst_base = split_path_dir_entry(dst_path)
    _, src_base = split_path_dir_entry(src_path)
    if src_info.rebase_name:
        src_base = src_info.rebase_name

    if dst_info.exists and dst_info.is_dir:
        return dst_path, src_content
    if dst_info.exists and src_info.is_dir:
        raise CannotCopyDirError()
    if dst_info.exists or src_info.is_dir:
        return dst_dir, rebase_archive_entries(src_content, src_base, dst_base)
    if _asserts_directory(dst_path):
        raise DirNotExistsError()
    return dst_dir, rebase_archive_entries(src_content, src_base, dst_base)


class _Sink:
    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data) -> int:
        self._buffer += data
        return len(data)

    def drain(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


class _Prefixed:
    """Read already-consumed bytes before the rest of a stream."""

    def __init__(self, head: bytes, source: BinaryIO) -> None:
        self._head = head
        self._source = source

    def read(self, size: int = -1) -> bytes:
        if self._head:
            if size is None or size < 0:
                data, self._head = self._head + self._source.read(), b""
                return data
            data, self._head = self._head[:size], self._head[size:]
            return data
        return self._source.read(size)


def _rename(member: tarfile.TarInfo, old_base: str, new_base: str) -> None:
    member.name = member.name.replace(old_base, new_base, 1)
    if member.islnk():
        member.linkname = member.linkname.replace(old_base, new_base, 1)
    member.pax_headers = {
        key: value for key, value in member.pax_headers.items() if key not in ("path", "linkpath")
    }


def _rebase_chunks(source: BinaryIO, old_base: str, new_base: str) -> Iterator[bytes]:
    sink = _Sink()
    head = source.read(_BLOCK_SIZE)
    writer = tarfile.open(fileobj=sink, mode="w|", format=tarfile.PAX_FORMAT)
    if head:
        reader = tarfile.open(fileobj=_Prefixed(head, source), mode="r|")
        try:
            for member in reader:
                _rename(member, old_base, new_base)
                data = reader.extractfile(member) if member.isreg() else None
                writer.addfile(member, data)
                yield sink.drain()
        finally:
            reader.close()
    writer.close()
    yield sink.drain()


class _RebasedArchive(io.RawIOBase):
    """A tar stream produced entry by entry as it is read."""

    def __init__(self, chunks: Iterator[bytes]) -> None:
        self._chunks = chunks
        self._pending = memoryview(b"")
        super().__init__()

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        if not len(view):
            return 0
        while not len(self._pending):
            chunk = next(self._chunks, None)
            if chunk is None:
                return 0
            self._pending = memoryview(chunk)
        count = min(len(view), len(self._pending))
        view[:count] = self._pending[:count]
        self._pending = self._pending[count:]
        return count

    def close(self) -> None:
        if not self.closed:
            self._chunks.close()
        super().close()


def rebase_archive_entries(src_content: BinaryIO, old_base: str, new_base: str) -> BinaryIO:
    """Return a tar stream whose entry names have ``old_base`` replaced by ``new_base``.

    Only the first occurrence in each name is replaced; hard link targets are
    rewritten too. Malformed input raises tarfile.TarError while reading.
    """
    if old_base == _SEP:
        old_base = ""
    return _RebasedArchive(_rebase_chunks(src_content, old_base, new_base))