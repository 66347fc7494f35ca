"""Numbered, bounded backups of the CubeMX Makefile.

Backups live in ``_non_persistent/backups/makefile/`` (relative to the
Makefile) and are named ``<N>-makefile-<YYYY_MM_DD>``. N grows by one on
every call and is never reused. When the number of backups exceeds the
configured limit the file with the smallest N is removed.
"""
from __future__ import annotations

import logging
import shutil
from datetime import date
from pathlib import Path
from typing import Optional, Tuple, List

from ergomcutool.config import ToolConfig
from ergomcutool.mkf.errors import BackupError
from ergomcutool.utils.file_utils import DEFAULT_DIR_PERMISSIONS, get_file_list

logger = logging.getLogger(__name__)


def _prefix_number(file_name: str) -> Optional[int]:
    head, sep, _ = file_name.partition("-")
    if not sep or not (head.isascii() and head.isdigit()):
        return None
    return int(head)


def _prefix_range(file_names: List[str]) -> Tuple[Optional[int], int]:
    """Return (min, max) numeric prefixes; (None, 0) when there are none."""
    numbers = [n for n in map(_prefix_number, file_names) if n is not None]
    if not numbers:
        return None, 0
    return min(numbers), max(numbers)


def backup_file_name(number: int, day: date) -> str:
    return f"{number}-makefile-{day.strftime('%Y_%m_%d')}"


def backup_makefile(makefile_path, config: ToolConfig, today: Optional[date] = None) -> Path:
    """Move `makefile_path` into the backup directory and rotate old backups.

    Returns the path of the new backup. If eviction of the oldest backup
    fails the new backup stays in place and BackupError is raised.
    """
    src = Path(makefile_path)
    backup_dir = config.resolve(config.backup_dir, src.parent)
    try:
        backup_dir.mkdir(mode=DEFAULT_DIR_PERMISSIONS, parents=True, exist_ok=True)
    except OSError as err:
        raise BackupError(f"failed to create directory: {err.strerror or err}", backup_dir) from err

    try:
        existing = sorted(get_file_list(backup_dir))
    except OSError as err:
        raise BackupError(f"failed to get file list: {err.strerror or err}", backup_dir) from err

    min_prefix, max_prefix = _prefix_range(existing)
    dest = backup_dir / backup_file_name(max_prefix + 1, today or date.today())
    try:
        shutil.move(str(src), str(dest))
    except OSError as err:
        raise BackupError(f"failed to move file to {dest}: {err.strerror or err}", src) from err
    logger.info("makefile backed up to %s", dest)

    if len(existing) + 1 <= config.makefile_backups_limit:
        return dest

    least_prefix = f"{min_prefix}-"
    oldest = None
    if min_prefix is not None:
        oldest = next((f for f in existing if f.startswith(least_prefix)), None)
    if oldest is None:
        raise BackupError(f"failed to find backup file with prefix {least_prefix!r}", backup_dir)
    victim = backup_dir / oldest
    try:
        victim.unlink()
    except OSError as err:
        raise BackupError(f"failed to remove old backup: {err.strerror or err}", victim) from err
    logger.debug("removed old backup %s", victim)
    return dest
