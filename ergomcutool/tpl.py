"""Snippet templates.

Templates use ``{{.Key}}`` or ``{{ Key }}`` placeholders. Every placeholder
must have a replacement; an unknown key is an error rather than an empty
string so a broken snippet never reaches the Makefile.

No external templating libraries; uses stdlib only.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Mapping

PROG_SNIPPET_FILE_NAME = "prog_task.txt.tmpl"

# Used when neither the project nor the user config dir provides a snippet.
DEFAULT_PROG_SNIPPET = """\
#######################################
# program the target with openocd
#######################################
prog: $(BUILD_DIR)/$(TARGET).elf
\topenocd -f {{.OpenocdInterface}} -f {{.OpenocdTarget}} -c "program $(BUILD_DIR)/$(TARGET).elf verify reset exit"
"""

_PLACEHOLDER = re.compile(r"\{\{\s*\.?([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class TemplateError(ValueError):
    pass


def instantiate_from_string(template: str, replacements: Mapping[str, object]) -> str:
    """Render `template` with `replacements`."""
    def _sub(m: re.Match) -> str:
        key = m.group(1)
        if key not in replacements:
            raise TemplateError(f"no value for template key {key!r}")
        return str(replacements[key])

    return _PLACEHOLDER.sub(_sub, template)


def instantiate_to_string(template_dir, template_file_name: str, replacements: Mapping[str, object]) -> str:
    path = Path(template_dir) / template_file_name
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as err:
        raise TemplateError(f"failed to read template {path}: {err}") from err
    try:
        return instantiate_from_string(text, replacements)
    except TemplateError as err:
        raise TemplateError(f"template execution failed for {path}: {err}") from err


def find_prog_snippet(project_root, user_config_dir):
    """Return the directory holding the prog snippet, or None.

    The project copy (``ergomcutool/assets/snippets``) wins over the one in
    the user config dir.
    """
    candidates = [
        Path(project_root) / "ergomcutool" / "assets" / "snippets",
        Path(user_config_dir) / "assets" / "snippets",
    ]
    for d in candidates:
        if (d / PROG_SNIPPET_FILE_NAME).is_file():
            return d
    return None
