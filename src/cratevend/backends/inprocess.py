"""In-process vendoring backend for testing and development.

Stages package directories straight from the lockfile snapshot without
invoking cargo or touching the network.  Each staged package gets a minimal
``Cargo.toml`` and a ``.cargo-checksum.json`` carrying the locked checksum,
which is what the real engine leaves behind.  This makes it suitable for:
- Unit tests that exercise the whole build/test workflow
- Development machines without a Rust toolchain
- CI jobs running without network access
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from cratevend.backends.base import (
    CHECKSUM_FILENAME,
    collect_vendored_packages,
    render_source_config,
)
from cratevend.errors import VendoringError
from cratevend.lockfile.model import DependencyRecord
from cratevend.models import VendorRequest, VendorResult


@dataclass(slots=True)
class InProcessVendorBackend:
    """Backend that stages placeholder packages in-process."""

    name: str = "inprocess"
    # license expression per package name; missing names get no license key
    licenses: Mapping[str, str] = field(default_factory=dict)
    failing: tuple[str, ...] = ()

    def vendor(self, request: VendorRequest) -> VendorResult:
        records = [record for record in request.snapshot.records if record.source]
        slugs: set[str] = set()
        for record in records:
            if record.name in self.failing or record.slug in self.failing:
                raise VendoringError(
                    f"failed to download `{record.slug}`.",
                    hint="Simulated engine failure.",
                    context={"backend": self.name, "operation": "vendor", "package": record.slug},
                )
            if record.slug in slugs:
                raise VendoringError(
                    f"`{record.slug}` is locked from more than one source.",
                    hint="Pin one source for the package in Cargo.toml.",
                    context={"backend": self.name, "operation": "vendor", "package": record.slug},
                )
            slugs.add(record.slug)

        if request.vendor_dir.exists():
            shutil.rmtree(request.vendor_dir)
        request.vendor_dir.mkdir(parents=True)
        for record in records:
            self._stage(request.vendor_dir / record.slug, record)

        return VendorResult(
            config_text=render_source_config(_display_path(request.vendor_dir, request.root)),
            packages=collect_vendored_packages(request.vendor_dir),
        )

    def _stage(self, package_dir: Path, record: DependencyRecord) -> None:
        package_dir.mkdir(parents=True)
        lines = [
            "[package]",
            f'name = "{record.name}"',
            f'version = "{record.version}"',
        ]
        license_expr = self.licenses.get(record.name)
        if license_expr:
            lines.append(f'license = "{license_expr}"')
        (package_dir / "Cargo.toml").write_text("\n".join(lines) + "\n", encoding="utf-8")

        checksum = {"files": {}, "package": record.checksum or None}
        (package_dir / CHECKSUM_FILENAME).write_text(
            json.dumps(checksum, sort_keys=True),
            encoding="utf-8",
        )


def _display_path(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)
