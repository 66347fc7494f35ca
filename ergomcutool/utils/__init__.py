from .file_utils import (
    atomic_write_bytes,
    get_file_list,
    get_sorted_file_list,
    trim_right_space,
)

__all__ = [
    "atomic_write_bytes",
    "get_file_list",
    "get_sorted_file_list",
    "trim_right_space",
]
