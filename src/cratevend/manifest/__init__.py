"""Manifest rendering and output helpers."""

from .checksums import ChecksumTableRow, checksum_rows, render_table
from .writer import write_atomic, write_lines

__all__ = [
    "ChecksumTableRow",
    "checksum_rows",
    "render_table",
    "write_atomic",
    "write_lines",
]
