"""Small filesystem helpers shared by the Makefile and backup code."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List

DEFAULT_FILE_PERMISSIONS = 0o664
DEFAULT_DIR_PERMISSIONS = 0o775


def trim_right_space(s: str) -> str:
    """Strip all trailing whitespace, leading whitespace is kept."""
    return s.rstrip()


def get_file_list(path) -> List[str]:
    """Return the names of regular files in `path`.

    Sub-directories and symlinks are not included. Raises OSError if the
    directory cannot be listed.
    """
    result = []
    with os.scandir(path) as it:
        for entry in it:
            if entry.is_file(follow_symlinks=False):
                result.append(entry.name)
    return result


def get_sorted_file_list(path, suffix: str = "") -> List[str]:
    return sorted(f for f in get_file_list(path) if f.endswith(suffix))


def atomic_write_bytes(path, data: bytes, mode: int = DEFAULT_FILE_PERMISSIONS) -> None:
    """Write `data` to a temp file next to `path` and move it into place."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(p.parent), prefix="." + p.name + ".tmp.")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.chmod(tmp, mode)
        os.replace(tmp, p)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
