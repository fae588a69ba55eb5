"""Build tar headers from stat results without user or group lookups."""

from __future__ import annotations

import os
import stat
import sys
import tarfile


def _entry_type(name: str, mode: int) -> bytes:
    if stat.S_ISREG(mode):
        return tarfile.REGTYPE
    if stat.S_ISDIR(mode):
        return tarfile.DIRTYPE
    if stat.S_ISLNK(mode):
        return tarfile.SYMTYPE
    if stat.S_ISBLK(mode):
        return tarfile.BLKTYPE
    if stat.S_ISCHR(mode):
        return tarfile.CHRTYPE
    if stat.S_ISFIFO(mode):
        return tarfile.FIFOTYPE
    if stat.S_ISSOCK(mode):
        raise ValueError(f"{name}: sockets not supported")
    raise ValueError(f"{name}: unknown file mode {mode:o}")


def _apply_system_fields(st: os.stat_result, info: tarfile.TarInfo) -> None:
    if os.name == "nt":
        return
    # FreeBSD reports an unencodable rdev for non-device files.
    if sys.platform.startswith("freebsd") and info.type not in (tarfile.BLKTYPE, tarfile.CHRTYPE):
        return
    info.uid = st.st_uid
    info.gid = st.st_gid
    if st.st_mode & (stat.S_IFBLK | stat.S_IFCHR):
        rdev = getattr(st, "st_rdev", 0) or 0
        info.devmajor = os.major(rdev)
        info.devminor = os.minor(rdev)


def file_info_header_no_lookups(name: str, st: os.stat_result, link: str = "") -> tarfile.TarInfo:
    """Return a tar header for a file described by ``st``.

    User and group names are left empty so that no account database is
    consulted. ``link`` is the target recorded for symbolic links. Sockets
    and unknown file types raise ValueError.
    """
    entry_type = _entry_type(name, st.st_mode)
    info = tarfile.TarInfo(name)
    info.type = entry_type
    info.mode = stat.S_IMODE(st.st_mode)
    info.mtime = st.st_mtime
    info.uname = ""
    info.gname = ""
    info.size = st.st_size if entry_type == tarfile.REGTYPE else 0
    if entry_type == tarfile.SYMTYPE:
        info.linkname = link
    _apply_system_fields(st, info)
    return info