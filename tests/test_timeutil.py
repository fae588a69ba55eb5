import os
from datetime import datetime, timedelta, timezone

import pytest

from tarlayer.timeutil import (
    EPOCH,
    MAX_TIME,
    MIN_TIME,
    bound_time,
    chtimes,
    latest_time,
    lchtimes,
)

UTC = timezone.utc
SAMPLE = datetime(2001, 2, 3, 4, 5, 6, tzinfo=UTC)
LATER = datetime(2005, 6, 7, 8, 9, 10, tzinfo=UTC)


def test_bound_time_keeps_epoch():
    assert bound_time(EPOCH) == EPOCH
    assert bound_time(MIN_TIME) == EPOCH


def test_bound_time_keeps_valid_time():
    assert bound_time(SAMPLE) == SAMPLE


def test_bound_time_before_epoch():
    assert bound_time(EPOCH - timedelta(seconds=1)) == MIN_TIME


def test_bound_time_after_max():
    assert bound_time(MAX_TIME + timedelta(days=1)) == MIN_TIME
    assert bound_time(MAX_TIME) == MAX_TIME


def test_bound_time_naive_is_utc():
    naive = datetime(1969, 12, 31, 23, 59, 59)
    assert bound_time(naive) == MIN_TIME


def test_latest_time():
    assert latest_time(SAMPLE, LATER) == LATER
    assert latest_time(LATER, SAMPLE) == LATER


def test_latest_time_equal_prefers_first():
    other = SAMPLE.astimezone(timezone(timedelta(hours=2)))
    assert latest_time(SAMPLE, other) is SAMPLE


def test_chtimes_sets_both(tmp_path):
    path = tmp_path / "f"
    path.write_bytes(b"x")
    chtimes(path, SAMPLE, LATER)
    st = os.stat(path)
    assert st.st_atime == SAMPLE.timestamp()
    assert st.st_mtime == LATER.timestamp()


def test_chtimes_none_leaves_time(tmp_path):
    path = tmp_path / "f"
    path.write_bytes(b"x")
    chtimes(path, SAMPLE, SAMPLE)
    chtimes(path, None, LATER)
    st = os.stat(path)
    assert st.st_atime == SAMPLE.timestamp()
    assert st.st_mtime == LATER.timestamp()


def test_chtimes_naive_as_utc(tmp_path):
    path = tmp_path / "f"
    path.write_bytes(b"x")
    chtimes(path, SAMPLE.replace(tzinfo=None), SAMPLE.replace(tzinfo=None))
    assert os.stat(path).st_mtime == SAMPLE.timestamp()


def test_chtimes_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        chtimes(tmp_path / "missing", SAMPLE, SAMPLE)


def test_lchtimes_changes_link_not_target(tmp_path):
    target = tmp_path / "target"
    target.write_bytes(b"x")
    chtimes(target, LATER, LATER)
    link = tmp_path / "link"
    os.symlink(target, link)
    lchtimes(link, SAMPLE, SAMPLE)
    assert os.lstat(link).st_mtime == SAMPLE.timestamp()
    assert os.stat(target).st_mtime == LATER.timestamp()