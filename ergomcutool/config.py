"""ergomcutool configuration.

The configuration is read once per invocation and is read-only afterwards.
Values come, in increasing precedence, from the defaults below, the user
file ``~/.ergomcutool/ergomcutool_config.yaml``, the project local file
``_non_persistent/ergomcutool_config.yaml`` (next to the Makefile) and the
environment:

- ERGOMCUTOOL_BACKUPS_LIMIT  -> number of Makefile backups to keep

Relevant YAML layout (other sections are accepted and ignored):

    openocd:
      interface: interface/stlink.cfg
    build_options:
      build_dir: build
      debug: "1"
      optimization_flags: -Og
    makefile:
      backups_limit: 5
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ergomcutool import __version__

logger = logging.getLogger(__name__)

USER_CONFIG_DIR = Path.home() / ".ergomcutool"
USER_CONFIG_FILE_NAME = "ergomcutool_config.yaml"
NON_PERSISTENT_DIR = Path("_non_persistent")
LOCAL_CONFIG_PATH = NON_PERSISTENT_DIR / USER_CONFIG_FILE_NAME
LOCAL_ERGOMCU_DIR = Path("ergomcutool")

DEFAULT_MAKEFILE_BACKUPS_LIMIT = 5
DEFAULT_BACKUP_DIR = NON_PERSISTENT_DIR / "backups" / "makefile"
DEFAULT_PRE_EDIT_PATH = NON_PERSISTENT_DIR / "Makefile.pre-edit"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class BuildOptions:
    build_dir: Optional[str] = None
    debug: Optional[str] = None
    optimization_flags: Optional[str] = None

    def validate(self) -> None:
        # None means "keep the value CubeMX generated"
        if self.debug is not None and self.debug not in ("0", "1"):
            raise ConfigError("build_options:'debug' must have value '0' or '1'")


@dataclass(frozen=True)
class ToolConfig:
    version: str = __version__
    makefile_backups_limit: int = DEFAULT_MAKEFILE_BACKUPS_LIMIT
    backup_dir: Path = DEFAULT_BACKUP_DIR
    pre_edit_path: Path = DEFAULT_PRE_EDIT_PATH
    openocd_interface: str = ""
    user_config_dir: Path = USER_CONFIG_DIR
    build_options: BuildOptions = field(default_factory=BuildOptions)

    def validate(self) -> None:
        limit = self.makefile_backups_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ConfigError(f"makefile:'backups_limit' must be a positive integer, got {limit!r}")
        self.build_options.validate()

    def resolve(self, path: Path, root: Path) -> Path:
        """Resolve a configured path against the project root."""
        p = Path(path).expanduser()
        return p if p.is_absolute() else Path(root) / p


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug("config file %s not found, skipped", path)
        return {}
    except (OSError, yaml.YAMLError) as err:
        raise ConfigError(f"failed to read configuration file {path}: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"configuration file {path} must contain a mapping")
    return data


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two config documents; sections are merged key by key."""
    out = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = {**out[key], **value}
        else:
            out[key] = value
    return out


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    sec = data.get(name) or {}
    if not isinstance(sec, dict):
        raise ConfigError(f"'{name}' section must be a mapping")
    return sec


def config_from_dict(data: Dict[str, Any], base: Optional[ToolConfig] = None) -> ToolConfig:
    cfg = base or ToolConfig()
    bo = _section(data, "build_options")
    build_options = BuildOptions(
        build_dir=_opt_str(bo.get("build_dir")),
        debug=_opt_str(bo.get("debug")),
        optimization_flags=_opt_str(bo.get("optimization_flags")),
    )
    mk = _section(data, "makefile")
    oc = _section(data, "openocd")
    cfg = replace(
        cfg,
        build_options=build_options,
        makefile_backups_limit=mk.get("backups_limit", cfg.makefile_backups_limit),
        backup_dir=Path(mk.get("backup_dir", cfg.backup_dir)),
        pre_edit_path=Path(mk.get("pre_edit_path", cfg.pre_edit_path)),
        openocd_interface=str(oc.get("interface") or cfg.openocd_interface),
    )
    return cfg


def load_tool_config(
    user_path: Optional[Path] = None,
    local_path: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> ToolConfig:
    """Load, merge and validate the user and local configuration files."""
    user_path = Path(user_path) if user_path is not None else USER_CONFIG_DIR / USER_CONFIG_FILE_NAME
    local_path = Path(local_path) if local_path is not None else LOCAL_CONFIG_PATH
    env = os.environ if env is None else env

    data = _merge(_read_yaml(user_path), _read_yaml(local_path))
    cfg = config_from_dict(data, ToolConfig(user_config_dir=user_path.parent))

    limit = env.get("ERGOMCUTOOL_BACKUPS_LIMIT")
    if limit:
        try:
            cfg = replace(cfg, makefile_backups_limit=int(limit))
        except ValueError as err:
            raise ConfigError(f"ERGOMCUTOOL_BACKUPS_LIMIT must be an integer, got {limit!r}") from err

    cfg.validate()
    return cfg


__all__ = [
    "BuildOptions",
    "ConfigError",
    "ToolConfig",
    "config_from_dict",
    "load_tool_config",
]
