"""Tar archive helpers for layered filesystems: compression, whiteouts and copy path logic."""

__version__ = "0.1.0"

__all__ = ["compression", "wrap", "layer", "tarheader", "drivepath", "timeutil", "xattr", "copy"]