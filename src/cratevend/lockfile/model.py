"""Lockfile typed model."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

REGISTRY_SOURCE_PREFIXES = ("registry+", "sparse+")


@dataclass(frozen=True, slots=True)
class DependencyRecord:
    name: str
    version: str
    source: str = ""
    checksum: str = ""

    @property
    def slug(self) -> str:
        return f"{self.name}-{self.version}"

    @property
    def from_registry(self) -> bool:
        return self.source.startswith(REGISTRY_SOURCE_PREFIXES)

    @property
    def has_checksum(self) -> bool:
        return self.from_registry and bool(self.checksum)


@dataclass(frozen=True, slots=True)
class LockSnapshot:
    """One read of the lockfile; every step of a run consumes the same snapshot."""

    path: Path
    raw: bytes
    digest: str
    version: int
    records: tuple[DependencyRecord, ...] = field(default_factory=tuple)

    def checksum_records(self) -> tuple[DependencyRecord, ...]:
        return tuple(record for record in self.records if record.has_checksum)
