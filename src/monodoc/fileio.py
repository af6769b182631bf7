"""Whole-file reads and atomic writes that keep line endings as they are."""

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, content: str) -> None:
    """Write content to path so readers see the old file or the new one.

    The temp file lives in the target directory so ``os.replace`` stays on
    one filesystem.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if path.exists():
            os.chmod(tmp_path, path.stat().st_mode & 0o777)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


def read_source(path: Path) -> str:
    """Read path as UTF-8 without newline translation, so CRLF survives."""
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()
