import io
import os
import stat
import tarfile
from pathlib import Path

import pytest

from tarlayer.tarheader import file_info_header_no_lookups


def test_no_user_or_group_names():
    path = Path(__file__)
    st = os.stat(path)
    info = file_info_header_no_lookups(path.name, st, "")
    assert info.uname == ""
    assert info.gname == ""


def test_regular_file_fields():
    path = Path(__file__)
    st = os.stat(path)
    info = file_info_header_no_lookups(path.name, st, "")
    assert info.type == tarfile.REGTYPE
    assert info.size == st.st_size
    assert info.mode == stat.S_IMODE(st.st_mode)
    assert info.mtime == st.st_mtime
    assert info.uid == st.st_uid
    assert info.gid == st.st_gid


def test_directory(tmp_path):
    directory = tmp_path / "d"
    directory.mkdir()
    st = os.lstat(directory)
    info = file_info_header_no_lookups("d", st, "")
    assert info.type == tarfile.DIRTYPE
    assert info.size == 0
    assert info.isdir()


def test_symlink_records_target(tmp_path):
    target = tmp_path / "target"
    target.write_bytes(b"data")
    link = tmp_path / "link"
    os.symlink("target", link)
    info = file_info_header_no_lookups("link", os.lstat(link), "target")
    assert info.type == tarfile.SYMTYPE
    assert info.linkname == "target"
    assert info.size == 0


def test_fifo(tmp_path):
    pipe = tmp_path / "pipe"
    os.mkfifo(pipe)
    info = file_info_header_no_lookups("pipe", os.lstat(pipe), "")
    assert info.type == tarfile.FIFOTYPE
    assert info.size == 0


def test_character_device_numbers():
    st = os.lstat("/dev/null")
    info = file_info_header_no_lookups("null", st, "")
    assert info.type == tarfile.CHRTYPE
    assert info.devmajor == os.major(st.st_rdev)
    assert info.devminor == os.minor(st.st_rdev)


def test_socket_is_rejected():
    st = os.stat_result((stat.S_IFSOCK | 0o755, 0, 0, 1, 0, 0, 0, 0, 0, 0))
    with pytest.raises(ValueError, match="sockets not supported"):
        file_info_header_no_lookups("sock", st, "")


def test_header_round_trip(tmp_path):
    source = tmp_path / "file.txt"
    source.write_bytes(b"hello")
    os.chmod(source, 0o640)
    info = file_info_header_no_lookups("file.txt", os.lstat(source), "")

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w", format=tarfile.PAX_FORMAT) as archive:
        archive.addfile(info, io.BytesIO(source.read_bytes()))
    buffer.seek(0)
    with tarfile.open(fileobj=buffer, mode="r") as archive:
        member = archive.getmember("file.txt")
        content = archive.extractfile(member).read()
    assert member.mode == 0o640
    assert member.size == 5
    assert content == b"hello"