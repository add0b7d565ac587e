"""Naming domain: case conventions for files and folders."""

from repopolicy.naming.cases import (
    VALID_CASES,
    file_base_name,
    is_valid_case,
    is_valid_file_name,
)

__all__ = [
    "VALID_CASES",
    "file_base_name",
    "is_valid_case",
    "is_valid_file_name",
]
