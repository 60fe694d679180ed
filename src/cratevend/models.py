"""Core typed dataclasses for vendoring requests and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from cratevend.lockfile.model import LockSnapshot


@dataclass(frozen=True, slots=True)
class VendoredPackage:
    name: str
    version: str
    path: Path
    checksum: str = ""

    @property
    def slug(self) -> str:
        return f"{self.name}-{self.version}"


@dataclass(frozen=True, slots=True)
class VendorRequest:
    root: Path
    manifest_path: Path
    vendor_dir: Path
    snapshot: LockSnapshot


@dataclass(frozen=True, slots=True)
class VendorResult:
    config_text: str
    packages: tuple[VendoredPackage, ...] = field(default_factory=tuple)

    def package_for(self, slug: str) -> VendoredPackage | None:
        for package in self.packages:
            if package.slug == slug:
                return package
        return None


@dataclass(frozen=True, slots=True)
class LicenseEntry:
    package: str
    identifier: str
