"""Makefile side of ``update-project`` and ``cubemx-before-generate``.

update_makefile() always starts from the pristine CubeMX Makefile: on the
first run the generated file is moved to the pre-edit path and the patched
copy is written in its place; on later runs the patched file is recognised
by its auto-edited mark and the pre-edit copy is patched again instead.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from ergomcutool import tpl
from ergomcutool.config import ToolConfig
from ergomcutool.mkf import EntryNotFoundError, Makefile, MakefileError, backup_makefile
from ergomcutool.utils.file_utils import get_sorted_file_list

logger = logging.getLogger(__name__)


@dataclass
class MakefileUpdate:
    """Project additions merged into the CubeMX values."""
    c_sources: List[str] = field(default_factory=list)
    c_source_dirs: List[str] = field(default_factory=list)
    c_include_dirs: List[str] = field(default_factory=list)
    c_defs: List[str] = field(default_factory=list)
    openocd_target: str = ""
    append_prog_snippet: bool = True


@dataclass
class UpdateResult:
    makefile_path: Path
    # include dirs and defines without the -I / -D prefixes
    c_includes: List[str]
    c_defs: List[str]
    original_line_count: int
    updated_line_count: int
    from_pre_edit: bool


def merge_ordered(*groups: Iterable[str]) -> List[str]:
    """Concatenate groups, dropping repeated values; first occurrence wins."""
    return list(dict.fromkeys(v for g in groups for v in g))


def _strip_prefix(values: Iterable[str], prefix: str) -> List[str]:
    return [v[len(prefix):] if v.startswith(prefix) else v for v in values]


def _source_dir_files(dirs: Iterable[str]) -> List[str]:
    files = []
    for d in dirs:
        try:
            names = get_sorted_file_list(d, ".c")
        except OSError as err:
            raise MakefileError(f"failed to read source directory: {err.strerror or err}", Path(d)) from err
        files.extend(os.path.join(d, name) for name in names)
    return files


def render_prog_snippet(config: ToolConfig, project_root: Path, openocd_target: str) -> str:
    replacements = {
        "OpenocdInterface": config.openocd_interface,
        "OpenocdTarget": openocd_target,
    }
    snippet_dir = tpl.find_prog_snippet(project_root, config.user_config_dir)
    if snippet_dir is None:
        logger.debug("no prog snippet template found, using the built-in one")
        return tpl.instantiate_from_string(tpl.DEFAULT_PROG_SNIPPET, replacements)
    logger.debug("using prog snippet from %s", snippet_dir)
    return tpl.instantiate_to_string(snippet_dir, tpl.PROG_SNIPPET_FILE_NAME, replacements)


def _apply_build_options(makefile: Makefile, config: ToolConfig) -> None:
    bo = config.build_options
    options = [
        ("BUILD_DIR", bo.build_dir or None),
        ("DEBUG", bo.debug),
        ("OPT", bo.optimization_flags or None),
    ]
    for name, value in options:
        if value is None:
            continue
        try:
            makefile.replace_value(name, [value])
        except EntryNotFoundError:
            logger.warning("makefile has no %s entry, build option ignored", name)


def update_makefile(makefile_path, update: MakefileUpdate, config: ToolConfig) -> UpdateResult:
    """Patch the Makefile at `makefile_path` with project values."""
    path = Path(makefile_path)
    root = path.parent
    pre_edit_path = config.resolve(config.pre_edit_path, root)

    makefile = Makefile.from_file(path)
    from_pre_edit = makefile.is_auto_edited()
    if from_pre_edit:
        logger.debug("%s is already patched, reading %s", path, pre_edit_path)
        makefile = Makefile.from_file(pre_edit_path)
    original_line_count = len(makefile.lines)
    logger.debug("original makefile contains %d lines", original_line_count)

    c_sources = merge_ordered(
        makefile.read_value("C_SOURCES"),
        update.c_sources,
        _source_dir_files(update.c_source_dirs),
    )
    makefile.replace_value("C_SOURCES", c_sources)

    c_includes = merge_ordered(
        _strip_prefix(makefile.read_value("C_INCLUDES"), "-I"),
        update.c_include_dirs,
    )
    makefile.replace_value("C_INCLUDES", ["-I" + d for d in c_includes])

    c_defs = merge_ordered(
        _strip_prefix(makefile.read_value("C_DEFS"), "-D"),
        update.c_defs,
    )
    makefile.replace_value("C_DEFS", ["-D" + d for d in c_defs])

    if update.append_prog_snippet:
        snippet = render_prog_snippet(config, root, update.openocd_target)
        if snippet:
            makefile.append_string(snippet)

    _apply_build_options(makefile, config)
    makefile.insert_auto_edited_mark(config.version)

    if not from_pre_edit:
        try:
            pre_edit_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise MakefileError(f"failed to create directory: {err.strerror or err}", pre_edit_path.parent) from err
        try:
            os.replace(path, pre_edit_path)
        except OSError as err:
            raise MakefileError(f"failed to move makefile to {pre_edit_path}: {err.strerror or err}", path) from err
        logger.info("original makefile saved as %s", pre_edit_path)

    makefile.write(path)
    logger.debug("updated makefile contains %d lines", len(makefile.lines))
    return UpdateResult(
        makefile_path=path,
        c_includes=c_includes,
        c_defs=c_defs,
        original_line_count=original_line_count,
        updated_line_count=len(makefile.lines),
        from_pre_edit=from_pre_edit,
    )


def before_cubemx_generate(makefile_path, config: ToolConfig) -> Optional[Path]:
    """Back up the Makefile before CubeMX regenerates it.

    Returns the backup path, or None when there is no Makefile yet.
    """
    path = Path(makefile_path)
    if not path.is_file():
        logger.info("'cubemx-before-generate': no makefile found, backup job skipped.")
        return None
    return backup_makefile(path, config)
