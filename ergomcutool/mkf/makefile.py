"""In-memory model of a STM32CubeMX generated Makefile.

The model is a plain list of lines plus the line ending detected at load
time. It understands just enough Makefile syntax to find top-level variable
assignments by name and to rewrite their (possibly backslash-continued)
values:

    C_DEFS =  \
    -DUSE_HAL_DRIVER \
    -DSTM32G431xx

Nothing is expanded or evaluated. Entries are located by a plain prefix
match on the line, so callers must only use names that cannot be confused
with an earlier line (the CubeMX variables ``BUILD_DIR``, ``DEBUG``, ``OPT``,
``C_SOURCES``, ``C_INCLUDES`` and ``C_DEFS`` are safe).

Once patched, the file carries an auto-edited mark which lets the next run
recognise it and go back to the pristine CubeMX copy instead of patching
twice.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from ergomcutool.mkf.errors import (
    EmptyFileError,
    EntryNotFoundError,
    MakefileError,
    UnsupportedLineEndingError,
    ValueNotFoundError,
)
from ergomcutool.utils.file_utils import atomic_write_bytes, trim_right_space

AUTO_EDITED_MARK_COMMENT = "# This file was edited by ergomcutool"
AUTO_EDITED_MARK_PREFIX = "# ERGOMCUTOOL_VERSION ="
EOF_SENTINEL = "*** EOF ***"

LF = "\n"
CRLF = "\r\n"


@dataclass
class ParsedMakefile:
    is_auto_edited: bool = False
    # version of ergomcutool that edited the Makefile, empty if not edited
    ergomcutool_version: str = ""
    build_dir: str = ""
    # "1" in Debug mode, "0" in Release mode
    debug: str = ""
    opt: str = ""
    c_sources: List[str] = field(default_factory=list)
    c_defs: List[str] = field(default_factory=list)
    c_includes: List[str] = field(default_factory=list)


class Makefile:
    """Line buffer of a Makefile with value read/write operations.

    ``lines`` never contain line terminators; ``line_ending`` is either
    ``"\\n"`` or ``"\\r\\n"`` and is used for every line on output.
    """

    def __init__(self, lines: Optional[Iterable[str]] = None, line_ending: str = LF):
        if line_ending not in (LF, CRLF):
            raise ValueError(f"unsupported line ending: {line_ending!r}")
        self.lines: List[str] = list(lines) if lines is not None else []
        self.line_ending = line_ending

    # ------------------------------------------------------------------ load

    @classmethod
    def from_bytes(cls, data: bytes, path: Optional[Path] = None) -> "Makefile":
        """Build a model from raw file content.

        Line endings are detected automatically. Trailing whitespace is
        removed from every line; a trailing terminator does not produce an
        empty last line.
        """
        if len(data) == 0:
            raise EmptyFileError("empty file", path)
        text = data.decode("utf-8", errors="surrogateescape")
        segments = text.split("\n")
        if len(segments) <= 1:
            raise UnsupportedLineEndingError("unsupported line endings detected (bad file format?)", path)

        crlf = any(s.endswith("\r") for s in segments)
        lines = [trim_right_space(s) for s in segments[:-1]]
        last = trim_right_space(segments[-1])
        if last:
            lines.append(last)
        return cls(lines, CRLF if crlf else LF)

    @classmethod
    def from_file(cls, path) -> "Makefile":
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as err:
            raise MakefileError(f"failed to read makefile: {err.strerror or err}", p) from err
        return cls.from_bytes(data, path=p)

    # ---------------------------------------------------------------- lookup

    def _find_entry(self, name: str) -> int:
        for i, line in enumerate(self.lines):
            if line.startswith(name):
                return i
        raise EntryNotFoundError(f"entry {name!r} not found", entry=name)

    def _continuation_end(self, start: int) -> int:
        """Index of the last line belonging to the entry starting at `start`.

        The chain follows trailing backslashes and stops before an empty line
        or the end of the buffer.
        """
        end = start
        while self.lines[end].endswith("\\"):
            nxt = end + 1
            if nxt >= len(self.lines) or not self.lines[nxt]:
                break
            end = nxt
        return end

    def read_value(self, name: str) -> List[str]:
        """Return the values of entry `name` in file order.

        An entry that exists but has no value yields an empty list.
        """
        index = self._find_entry(name)
        line = self.lines[index]
        pos = line.find("=")
        if pos == -1:
            raise ValueNotFoundError(f"value of entry {name!r} not found", entry=name)

        value = line[pos + 1:].strip()
        if not value:
            return []
        if not value.endswith("\\"):
            return [value]

        values = []
        value = value[:-1].strip()
        if value:
            values.append(value)
        for line in self.lines[index + 1:]:
            line = trim_right_space(line)
            if not line:
                break
            if line.endswith("\\"):
                line = line[:-1].strip()
                if line:
                    values.append(line)
                continue
            # last line of the entry has no trailing backslash
            line = line.strip()
            if line:
                values.append(line)
            break
        return values

    def auto_edited_version(self) -> str:
        for line in self.lines:
            if line.startswith(AUTO_EDITED_MARK_PREFIX):
                return line[len(AUTO_EDITED_MARK_PREFIX):].strip()
        return ""

    def is_auto_edited(self) -> bool:
        return any(line.startswith(AUTO_EDITED_MARK_PREFIX) for line in self.lines)

    def parse(self) -> ParsedMakefile:
        """Read the entries ergomcutool cares about into a ParsedMakefile."""
        r = ParsedMakefile()
        r.is_auto_edited = self.is_auto_edited()
        r.ergomcutool_version = self.auto_edited_version()

        vals = self.read_value("BUILD_DIR")
        if vals:
            r.build_dir = vals[0]
        r.c_defs = self.read_value("C_DEFS")
        r.c_includes = self.read_value("C_INCLUDES")
        r.c_sources = self.read_value("C_SOURCES")
        vals = self.read_value("DEBUG")
        if vals:
            r.debug = vals[0]
        vals = self.read_value("OPT")
        if vals:
            r.opt = vals[0]
        return r

    # -------------------------------------------------------------- mutation

    def remove_value(self, name: str) -> None:
        """Remove the value of entry `name`, keeping the entry itself.

        Continuation lines are deleted, the entry collapses to ``NAME = ``.
        """
        start = self._find_entry(name)
        end = self._continuation_end(start)
        self.lines[start] = f"{name} = "
        del self.lines[start + 1:end + 1]

    def insert_value(self, name: str, values: List[str]) -> None:
        """Write `values` into the existing, empty entry `name`.

        The entry is never created. Several values are written one per line,
        joined by backslash continuations, in the given order.
        """
        index = self._find_entry(name)
        values = list(values)
        if not values:
            return
        if len(values) == 1:
            self.lines[index] += values[0]
            return
        self.lines[index] += " \\"
        block = [v + " \\" for v in values[:-1]]
        # last value must not carry a trailing backslash
        block.append(values[-1])
        self.lines[index + 1:index + 1] = block

    def replace_value(self, name: str, values: List[str]) -> None:
        self.remove_value(name)
        self.insert_value(name, values)

    def append_text_lines(self, text_lines: Iterable[str], append_blank_line_first: bool = False) -> None:
        """Append a block of lines at the end of the file.

        The block goes above the ``*** EOF ***`` line when there is one so
        that generated targets stay inside the CubeMX boilerplate.
        """
        index = len(self.lines)
        for i in range(len(self.lines) - 1, -1, -1):
            if EOF_SENTINEL in self.lines[i]:
                index = i
                break
        block = [""] if append_blank_line_first else []
        block.extend(line.rstrip("\r\n") for line in text_lines)
        self.lines[index:index] = block

    def append_string(self, text: str, append_blank_line_first: bool = False) -> None:
        """Split `text` into lines and append them.

        Only ``\\r`` and ``\\n`` are removed; indentation and other whitespace
        is kept as written (Makefile recipes need their tabs).
        """
        pieces = [p.rstrip("\r") for p in text.split("\n")]
        if pieces and pieces[-1] == "":
            pieces.pop()
        self.append_text_lines(pieces, append_blank_line_first)

    def insert_auto_edited_mark(self, version: str) -> None:
        """Insert the ergomcutool mark above the first empty line.

        Calling this twice inserts the mark twice; check is_auto_edited()
        first.
        """
        index = 0
        for i, line in enumerate(self.lines):
            if line == "":
                index = i
                break
        self.lines[index:index] = [
            "",
            AUTO_EDITED_MARK_COMMENT,
            f"{AUTO_EDITED_MARK_PREFIX} {version}",
        ]

    # ---------------------------------------------------------------- output

    def to_string(self) -> str:
        return "".join(line + self.line_ending for line in self.lines)

    def to_bytes(self) -> bytes:
        return self.to_string().encode("utf-8", errors="surrogateescape")

    def write(self, path) -> None:
        p = Path(path)
        try:
            atomic_write_bytes(p, self.to_bytes())
        except OSError as err:
            raise MakefileError(f"failed to write makefile: {err.strerror or err}", p) from err

    def __str__(self) -> str:
        return self.to_string()
