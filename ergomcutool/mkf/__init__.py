from .errors import (
    BackupError,
    EmptyFileError,
    EntryNotFoundError,
    MakefileError,
    UnsupportedLineEndingError,
    ValueNotFoundError,
)
from .makefile import (
    AUTO_EDITED_MARK_COMMENT,
    AUTO_EDITED_MARK_PREFIX,
    EOF_SENTINEL,
    Makefile,
    ParsedMakefile,
)
from .backup import backup_makefile

__all__ = [
    "AUTO_EDITED_MARK_COMMENT",
    "AUTO_EDITED_MARK_PREFIX",
    "EOF_SENTINEL",
    "BackupError",
    "EmptyFileError",
    "EntryNotFoundError",
    "Makefile",
    "MakefileError",
    "ParsedMakefile",
    "UnsupportedLineEndingError",
    "ValueNotFoundError",
    "backup_makefile",
]
