# tarlayer

Helpers for working with tar archives that describe filesystem layers.

## Modules

### `tarlayer.compression`

- `Compression` is an `IntEnum` with `NONE`, `BZIP2`, `GZIP`, `XZ` and `ZSTD`.
  `Compression.extension()` returns the archive extension, for example
  `"tar.gz"`.
- `detect(source)` identifies bzip2, gzip, xz and zstd data from its leading
  bytes. It also recognises zstd skippable frames. Anything else is `NONE`.
- `decompress_stream(archive)` reads the first bytes of a binary stream,
  detects the compression and returns a readable, decompressed stream. An
  empty input is treated as an empty, uncompressed stream.
  - gzip uses the `unpigz` program when it is on `PATH`. Otherwise it uses the
    `gzip` module. Set `TARLAYER_DISABLE_PIGZ=true` to always use the module.
  - xz uses the `xz` program when it is on `PATH`. Otherwise it uses the `lzma`
    module.
  - bzip2 uses the `bz2` module, and zstd uses `zstandard`.
- `compress_stream(dest, compression)` returns a writer into `dest` for
  `NONE` or `GZIP`. Closing the `NONE` writer leaves `dest` open. Other formats
  raise `ValueError`.
- `cmd_stream(args, stdin)` starts a command and returns its output as a
  `CommandStream`. When the output runs out, the command is waited for. If it
  exited unsuccessfully, reading raises `ChildProcessError`, for example
  `"exit status 1: <stderr text>"`. `close()` kills the command if it is still
  running.

### `tarlayer.wrap`

`generate("foo.txt", "hello world", "empty")` returns an in-memory tar archive
as a `BytesIO`. Its arguments alternate between a name and its content, and a
trailing name without content becomes an empty file.

### `tarlayer.layer`

- The whiteout markers used in layer archives: `WHITEOUT_PREFIX` (`.wh.`),
  `WHITEOUT_META_PREFIX`, `WHITEOUT_LINK_DIR` and `WHITEOUT_OPAQUE_DIR`
  (`.wh..wh..opq`).
- `is_empty(stream)` reports whether a tar archive, compressed or not, has no
  entries. It raises `tarfile.ReadError` if the stream cannot be decompressed
  or its first header cannot be read.
- `override_umask(new_mask)` is a context manager. It sets the process umask
  for the duration of the block, yields the previous mask and restores it on
  exit. It does nothing on Windows.

### `tarlayer.copy`

This module covers the path logic of copying a resource through a tar stream.

- `CopyInfo(path, exists, is_dir, rebase_name)` describes one side of a copy.
- `copy_info_source_path(path, follow_link)` describes an existing source.
  Pass `follow_link` to resolve a symlink at the end of the path.
- `copy_info_destination_path(path)` describes a destination. It follows
  symlinks at the end of the path, up to a limit. The destination need not
  exist, but its parent directory must.
- `prepare_archive_copy(src_content, src_info, dst_info)` returns the
  directory to extract into and the archive to extract. When the entry names
  must change, it rebases them with `rebase_archive_entries(src_content,
  old_base, new_base)`.
- `preserve_trailing_dot_or_separator`, `split_path_dir_entry`,
  `resolve_host_source_path` and `get_rebase_name` are the path helpers used
  by the functions above.
- Errors derive from `CopyError`: `NotDirectoryError`, `DirNotExistsError`,
  `CannotCopyDirError` and `InvalidCopySourceError`.

### Utilities

- `tarlayer.tarheader.file_info_header_no_lookups(name, st, link)` builds a
  `tarfile.TarInfo` from an `os.stat_result`. It does not look up user or
  group names.
- `tarlayer.drivepath.check_system_drive_and_remove_drive_letter(path)` does
  the following on Windows and returns the path unchanged elsewhere:
  - it requires any drive letter to be `C:` and strips it;
  - it converts slashes to backslashes.

  `windows_check_system_drive(path)` applies the Windows rules on any platform.
- `tarlayer.timeutil` provides:
  - `bound_time` and `latest_time`;
  - `chtimes` and `lchtimes`, which set access and modification times. A time
    of `None` leaves that timestamp unchanged.
- `tarlayer.xattr` provides `lgetxattr` and `lsetxattr`. Neither follows
  symlinks, and both do nothing where extended attributes are unavailable.

## What it does not do

The package does not create tar archives from directories. It also does not
extract archives or apply layers to a directory, and so does not act on
whiteout files when unpacking.

The copy functions stop before that point. `prepare_archive_copy` tells you
where to extract and hands back the stream, and the extraction itself is up to
you. There is no command-line program.

## Example

```python
import tarfile
from tarlayer.compression import decompress_stream
from tarlayer.wrap import generate

archive = generate("hello.txt", "hello world")
with tarfile.open(fileobj=decompress_stream(archive), mode="r|") as tar:
    for member in tar:
        print(member.name)
```

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```