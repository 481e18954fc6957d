"""Filesystem helpers shared by the credential store and the ledger."""

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """Replace the contents of path without ever leaving it half-written.

    The text goes to a temporary file in the same directory which is then
    renamed over the target. If anything fails the original file is left
    untouched and the temporary file is removed.

    Args:
        path: File to write
        text: Full new contents
        encoding: Text encoding
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as tmp_file:
            tmp_file.write(text)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def safe_filename(name: str) -> str:
    """Replace path separators so an attachment name stays in one directory."""
    return name.replace("/", "_").replace("\\", "_")


def unique_path(path: Path) -> Path:
    """Return path, or path with -1, -2, ... before the suffix if taken."""
    if not path.exists():
        return path
    i = 1
    while True:
        candidate = path.with_name(f"{path.stem}-{i}{path.suffix}")
        if not candidate.exists():
            return candidate
        i += 1
