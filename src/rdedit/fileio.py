# fileio.py
from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
from typing import Optional


def write_atomic(path: str | Path, text: str, *, mode: Optional[int] = None) -> None:
    """
    Replace `path` with `text` so readers see either the old or the new
    content, never a partial file.

    The text goes to a uniquely named temp file next to `path`, which is
    then renamed over it. On failure the temp file is removed and `path`
    is left as it was.

    Args:
        path: File to write (its parent directory must exist)
        text: Full new content, written as UTF-8
        mode: Permission bits for the result; defaults to the mode of the
            file being replaced
    """
    path = Path(path).resolve()
    if mode is None and path.exists():
        mode = stat.S_IMODE(path.stat().st_mode)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        if mode is not None:
            os.chmod(tmp, mode)
        tmp.replace(path)
    finally:
        if tmp.exists():
            tmp.unlink(missing_ok=True)
