import pytest

from ergomcutool.mkf import (
    AUTO_EDITED_MARK_COMMENT,
    EmptyFileError,
    EntryNotFoundError,
    Makefile,
    MakefileError,
    UnsupportedLineEndingError,
    ValueNotFoundError,
)


def test_on_correct_sample(sample1):
    assert len(sample1.lines) == 205
    assert sample1.line_ending == "\r\n"
    assert not sample1.is_auto_edited()
    assert all(not l.endswith(("\r", "\n")) for l in sample1.lines)


def test_round_trip_crlf(sample1, sample1_path):
    assert sample1.to_bytes() == sample1_path.read_bytes()


def test_round_trip_lf():
    data = b"TARGET = x\n\nC_DEFS =  \\\n-DA \\\n-DB\n\tindented recipe\n"
    m = Makefile.from_bytes(data)
    assert m.line_ending == "\n"
    assert m.to_bytes() == data


def test_load_trims_trailing_whitespace_only():
    m = Makefile.from_bytes(b"A = 1   \n\tB = 2 \t\n")
    assert m.lines == ["A = 1", "\tB = 2"]


def test_load_without_trailing_newline_keeps_last_line():
    m = Makefile.from_bytes(b"A = 1\nB = 2")
    assert m.lines == ["A = 1", "B = 2"]
    assert m.to_bytes() == b"A = 1\nB = 2\n"


def test_load_empty_file():
    with pytest.raises(EmptyFileError):
        Makefile.from_bytes(b"")


def test_load_single_line_is_unsupported():
    with pytest.raises(UnsupportedLineEndingError):
        Makefile.from_bytes(b"A = 1")


def test_from_file_errors_name_the_path(tmp_path):
    empty = tmp_path / "Makefile"
    empty.write_bytes(b"")
    with pytest.raises(EmptyFileError) as ei:
        Makefile.from_file(empty)
    assert ei.value.path == empty
    assert str(empty) in str(ei.value)

    with pytest.raises(MakefileError):
        Makefile.from_file(tmp_path / "missing")


def test_read_value(sample1):
    assert sample1.read_value("TARGET") == ["sample1"]
    assert sample1.read_value("DEBUG") == ["1"]
    assert sample1.read_value("OPT") == ["-Og"]
    assert sample1.read_value("BUILD_DIR") == ["build"]
    assert len(sample1.read_value("C_SOURCES")) == 27
    assert sample1.read_value("C_DEFS") == ["-DUSE_HAL_DRIVER", "-DSTM32G431xx"]
    assert sample1.read_value("ASM_SOURCES") == ["startup_stm32g431xx.s"]
    # entry present, value empty
    assert sample1.read_value("AS_DEFS") == []


def test_read_value_missing_entry(sample1):
    with pytest.raises(EntryNotFoundError) as ei:
        sample1.read_value("NON_EXISTING_VALUE")
    assert ei.value.entry == "NON_EXISTING_VALUE"


def test_read_value_without_equals_sign():
    m = Makefile(["ifdef GCC_PATH", "endif"])
    with pytest.raises(ValueNotFoundError):
        m.read_value("ifdef")


def test_read_value_stops_at_empty_line():
    m = Makefile(["X = a \\", "b \\", "", "c"])
    assert m.read_value("X") == ["a", "b"]


def test_parse(sample1):
    parsed = sample1.parse()
    assert parsed.c_defs == ["-DUSE_HAL_DRIVER", "-DSTM32G431xx"]
    assert len(parsed.c_includes) == 5
    assert len(parsed.c_sources) == 27
    assert parsed.debug == "1"
    assert parsed.opt == "-Og"
    assert parsed.build_dir == "build"
    assert parsed.is_auto_edited is False
    assert parsed.ergomcutool_version == ""


def test_remove_value(sample1):
    sample1.remove_value("OPT")
    sample1.remove_value("DEBUG")
    assert sample1.read_value("OPT") == []
    assert sample1.read_value("DEBUG") == []
    with pytest.raises(EntryNotFoundError):
        sample1.remove_value("NON_EXISTING_ENTRY")


def test_remove_value_collapses_entry(sample1):
    before = len(sample1.lines)
    sample1.remove_value("C_SOURCES")
    assert len(sample1.lines) == before - 27
    idx = sample1.lines.index("C_SOURCES = ")
    # the blank line and ASM sources that followed are untouched
    assert sample1.lines[idx + 1] == ""
    assert sample1.lines[idx + 2] == "# ASM sources"
    assert sample1.read_value("C_SOURCES") == []
    assert sample1.read_value("ASM_SOURCES") == ["startup_stm32g431xx.s"]


def test_remove_value_keeps_following_blank_line():
    m = Makefile(["X = a \\", "b \\", "", "Y = 1"])
    m.remove_value("X")
    assert m.lines == ["X = ", "", "Y = 1"]


def test_insert_value_requires_entry():
    m = Makefile(["A = "])
    with pytest.raises(EntryNotFoundError):
        m.insert_value("B", ["1"])


def test_insert_value_single_and_multiple():
    m = Makefile(["A = ", "B = ", "end"])
    m.insert_value("A", ["1"])
    m.insert_value("B", ["x", "y", "z"])
    assert m.lines == ["A = 1", "B =  \\", "x \\", "y \\", "z", "end"]


def test_replace_value(sample1):
    sample1.replace_value("OPT", ["dummy-opt-option"])
    sample1.replace_value("DEBUG", ["0"])
    assert sample1.read_value("OPT") == ["dummy-opt-option"]
    assert sample1.read_value("DEBUG") == ["0"]

    values = sample1.read_value("C_SOURCES") + ["/dummy/file1.c", "file2.c"]
    sample1.replace_value("C_SOURCES", values)
    assert sample1.read_value("C_SOURCES") == values

    with pytest.raises(EntryNotFoundError):
        sample1.replace_value("NON_EXISTING_ENTRY", ["dummy"])


def test_replace_with_same_values_is_identity(sample1, sample1_path):
    for name in ("C_SOURCES", "C_INCLUDES", "C_DEFS", "DEBUG", "OPT"):
        sample1.replace_value(name, sample1.read_value(name))
    assert sample1.to_bytes() == sample1_path.read_bytes()


def test_replace_value_preserves_order(sample1):
    new = ["-DZ", "-DA", "-DM"]
    sample1.replace_value("C_DEFS", new)
    assert sample1.read_value("C_DEFS") == new


def test_insert_auto_edited_mark(sample1):
    assert not sample1.is_auto_edited()
    sample1.insert_auto_edited_mark("1.2.3")
    assert sample1.is_auto_edited()
    assert sample1.auto_edited_version() == "1.2.3"
    # inserted just above the first empty line (line 4 of the sample)
    assert sample1.lines[3:7] == ["", AUTO_EDITED_MARK_COMMENT, "# ERGOMCUTOOL_VERSION = 1.2.3", ""]
    assert sample1.parse().ergomcutool_version == "1.2.3"


def test_insert_auto_edited_mark_without_empty_line():
    m = Makefile(["A = 1", "B = 2"])
    m.insert_auto_edited_mark("1.0.0")
    assert m.lines[:3] == ["", AUTO_EDITED_MARK_COMMENT, "# ERGOMCUTOOL_VERSION = 1.0.0"]
    assert m.lines[3:] == ["A = 1", "B = 2"]


def test_append_text_lines_above_eof(sample1):
    lines = ["# This is a test entry:", "TEST_ENTRY: \\", "\tTEST_VALUE"]
    sample1.append_text_lines(lines, True)
    assert sample1.lines[-1] == "# *** EOF ***"
    assert sample1.lines[-5:-1] == [""] + lines


def test_append_text_lines_without_eof():
    m = Makefile(["A = 1", "B = 2"])
    m.append_text_lines(["C = 3"])
    assert m.lines == ["A = 1", "B = 2", "C = 3"]


def test_append_string(sample1):
    s = "# This is a test entry:\r\nTEST_ENTRY_2: \\\n\tTEST_VALUE_2  \n"
    sample1.append_string(s)
    assert sample1.lines[-4:] == [
        "# This is a test entry:",
        "TEST_ENTRY_2: \\",
        "\tTEST_VALUE_2  ",
        "# *** EOF ***",
    ]


def test_write_is_loadable(tmp_path, sample1):
    sample1.replace_value("DEBUG", ["0"])
    out = tmp_path / "out" / "Makefile"
    sample1.write(out)
    again = Makefile.from_file(out)
    assert again.read_value("DEBUG") == ["0"]
    assert again.line_ending == "\r\n"


def test_remove_value_dangling_backslash_at_end_of_buffer():
    m = Makefile(["A = 1", "X = a \\", "b \\"])
    m.remove_value("X")
    assert m.lines == ["A = 1", "X = "]
    assert m.read_value("X") == []

    m = Makefile(["A = 1", "X = a \\"])
    m.remove_value("X")
    assert m.lines == ["A = 1", "X = "]
