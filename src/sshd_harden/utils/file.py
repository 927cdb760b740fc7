"""File management utilities."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional


def atomic_write(filepath: Path, data: bytes, mode: Optional[int] = None) -> None:
    """Replace file content without ever exposing a truncated file.

    Data goes to a temporary file in the target's directory, is flushed to
    disk and then renamed over the target.

    Args:
        filepath: File to write
        data: Full new content
        mode: Permission bits for the result; defaults to the current
            target's bits when it exists

    Raises:
        OSError: If any step fails. The temporary file is removed.
    """
    if mode is None and filepath.exists():
        mode = filepath.stat().st_mode & 0o7777

    fd, tmp_name = tempfile.mkstemp(prefix=f".{filepath.name}.", dir=str(filepath.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, filepath)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def atomic_copy(source: Path, destination: Path) -> None:
    """Copy file bytes over destination through :func:`atomic_write`.

    Args:
        source: File to copy from
        destination: File to replace
    """
    atomic_write(destination, source.read_bytes())


def copy_file(source: Path, destination: Path) -> None:
    """Copy file with metadata, removing a partial destination on failure.

    Args:
        source: File to copy from
        destination: New file path
    """
    try:
        shutil.copy2(source, destination)
    except OSError:
        if destination.exists():
            destination.unlink()
        raise
