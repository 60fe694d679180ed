"""Checksum table built from a lockfile snapshot."""

from __future__ import annotations

from dataclasses import dataclass

from cratevend.lockfile.model import LockSnapshot

COLUMN_SEPARATOR = "  "


@dataclass(frozen=True, slots=True)
class ChecksumTableRow:
    name: str
    checksum: str

    def columns(self) -> tuple[str, str]:
        return (self.name, self.checksum)


def checksum_rows(snapshot: LockSnapshot) -> tuple[ChecksumTableRow, ...]:
    """One row per checksum-bearing registry record, in lockfile order."""
    return tuple(
        ChecksumTableRow(name=record.slug, checksum=record.checksum)
        for record in snapshot.checksum_records()
    )


def render_table(rows: tuple[ChecksumTableRow, ...] | list[ChecksumTableRow]) -> str:
    if not rows:
        return ""
    table = [row.columns() for row in rows]
    widths = [max(len(columns[index]) for columns in table) for index in range(len(table[0]))]

    lines: list[str] = []
    for columns in table:
        # last column is never padded
        padded = [cell.ljust(width) for cell, width in zip(columns[:-1], widths[:-1], strict=True)]
        lines.append(COLUMN_SEPARATOR.join([*padded, columns[-1]]))
    return "\n".join(lines) + "\n"
