"""Workspace configuration: file names resolved against an explicit root."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path

from cratevend.errors import ValidationError

DEFAULT_UNKNOWN_LICENSE = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class VendorConfig:
    root: Path = Path(".")
    manifest: str = "Cargo.toml"
    lockfile: str = "Cargo.lock"
    vendor_dir: str = "vendor"
    config_file: str = "config"
    license_manifest: str = "licenses.txt"
    checksum_manifest: str = "README.txt"
    unknown_license: str = DEFAULT_UNKNOWN_LICENSE

    def with_root(self, root: str | Path) -> VendorConfig:
        return replace(self, root=Path(root))

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest

    @property
    def lockfile_path(self) -> Path:
        return self.root / self.lockfile

    @property
    def vendor_path(self) -> Path:
        return self.root / self.vendor_dir

    @property
    def config_path(self) -> Path:
        return self.root / self.config_file

    @property
    def license_manifest_path(self) -> Path:
        return self.root / self.license_manifest

    @property
    def checksum_manifest_path(self) -> Path:
        return self.root / self.checksum_manifest

    def output_paths(self) -> tuple[Path, ...]:
        """Manifest-like outputs a build may overwrite."""
        return (self.config_path, self.license_manifest_path, self.checksum_manifest_path)

    def validate(self) -> None:
        for item in fields(self):
            if item.name == "root":
                continue
            value = getattr(self, item.name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(
                    f"Configuration value `{item.name}` must be a non-empty string.",
                    context={"field": item.name},
                )
            if item.name != "unknown_license" and Path(value).is_absolute():
                raise ValidationError(
                    f"Configuration value `{item.name}` must be relative to the working root.",
                    hint="Pass --root to point at another directory instead.",
                    context={"field": item.name, "value": value},
                )
        if any(ch.isspace() for ch in self.unknown_license):
            raise ValidationError(
                "Unknown-license marker must be a single token.",
                context={"field": "unknown_license", "value": self.unknown_license},
            )
