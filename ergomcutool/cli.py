#!/usr/bin/env python3
"""Command line entry point.

Subcommands:

- ``cubemx-before-generate``: back up the Makefile before STM32CubeMX
  overwrites it.
- ``update-makefile``: merge project sources, include dirs and defines into
  the CubeMX Makefile, append the ``prog`` target and apply build options.

This is the only layer that turns errors into exit codes.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from ergomcutool import __version__
from ergomcutool.config import LOCAL_CONFIG_PATH, ConfigError, load_tool_config
from ergomcutool.mkf import MakefileError
from ergomcutool.patch import MakefileUpdate, before_cubemx_generate, update_makefile
from ergomcutool.tpl import TemplateError

logger = logging.getLogger("ergomcutool")


def _setup_logging(verbose: bool) -> None:
    # honor ERGOMCUTOOL_LOG_LEVEL once; --verbose wins
    lvl_name = os.getenv("ERGOMCUTOOL_LOG_LEVEL", "INFO")
    lvl = getattr(logging, lvl_name.upper(), logging.INFO)
    if not isinstance(lvl, int):
        lvl = logging.INFO
    if verbose:
        lvl = logging.DEBUG
    logging.basicConfig(level=lvl, format="%(levelname)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ergomcutool", description="STM32CubeMX project helper")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose (debug) output")
    parser.add_argument("--config", default=None, help="User configuration file (default: ~/.ergomcutool/ergomcutool_config.yaml)")
    sub = parser.add_subparsers(dest="cmd")

    p_bg = sub.add_parser("cubemx-before-generate", help="Do preliminary tasks before STM32CubeMX generates the code")
    p_bg.add_argument("-m", "--makefile", default="Makefile", help="Path to the Makefile")

    p_up = sub.add_parser("update-makefile", help="Patch the CubeMX Makefile with project values")
    p_up.add_argument("-m", "--makefile", default="Makefile", help="Path to the Makefile")
    p_up.add_argument("--c-src", dest="c_src", action="append", default=[], help="Extra C source file (repeatable)")
    p_up.add_argument("--c-src-dir", dest="c_src_dirs", action="append", default=[], help="Directory whose *.c files are added (repeatable)")
    p_up.add_argument("--include-dir", dest="include_dirs", action="append", default=[], help="Extra include directory (repeatable)")
    p_up.add_argument("--define", dest="defines", action="append", default=[], help="Extra preprocessor definition without -D (repeatable)")
    p_up.add_argument("--openocd-target", default="", help="OpenOCD target config used by the prog target")
    p_up.add_argument("--no-snippet", dest="snippet", action="store_false", help="Do not append the prog target")
    return parser


def _cmd_before_generate(args, config) -> int:
    try:
        dest = before_cubemx_generate(args.makefile, config)
    except MakefileError as err:
        logger.error("failed to backup the makefile: %s", err)
        return 1
    if dest is not None:
        logger.info("Makefile backup created successfully.")
    return 0


def _cmd_update_makefile(args, config) -> int:
    path = Path(args.makefile)
    if not path.is_file():
        logger.error("makefile doesn't exist: %s. Generate the Makefile first using STM32CubeMX.", path)
        return 1
    update = MakefileUpdate(
        c_sources=args.c_src,
        c_source_dirs=args.c_src_dirs,
        c_include_dirs=args.include_dirs,
        c_defs=args.defines,
        openocd_target=args.openocd_target,
        append_prog_snippet=args.snippet,
    )
    try:
        result = update_makefile(path, update, config)
    except (MakefileError, TemplateError) as err:
        logger.error("failed to update the makefile: %s", err)
        return 1
    logger.info("Updated %s (%d -> %d lines).", result.makefile_path, result.original_line_count, result.updated_line_count)
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if not args.cmd:
        parser.print_help()
        return 2

    try:
        # project local config lives next to the Makefile
        local_path = Path(args.makefile).parent / LOCAL_CONFIG_PATH
        config = load_tool_config(user_path=args.config, local_path=local_path)
    except ConfigError as err:
        logger.error("ergomcutool configuration validation failed: %s", err)
        return 1

    if args.cmd == "cubemx-before-generate":
        return _cmd_before_generate(args, config)
    if args.cmd == "update-makefile":
        return _cmd_update_makefile(args, config)
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
