"""Protocol for vendoring engines and shared vendor-tree helpers."""

from __future__ import annotations

import json
import re
import tomllib
from pathlib import Path
from typing import Protocol

from cratevend.errors import VendoringError
from cratevend.lockfile.model import LockSnapshot
from cratevend.models import VendoredPackage, VendorRequest, VendorResult

CHECKSUM_FILENAME = ".cargo-checksum.json"

# `<name>-<version>` as written by --versioned-dirs; the version may carry
# pre-release and build suffixes that contain dashes themselves.
_VERSIONED_DIR = re.compile(r"^(?P<name>.+)-(?P<version>\d+\.\d+\.\d+(?:[-+].*)?)$")


class VendorBackend(Protocol):
    name: str

    def vendor(self, request: VendorRequest) -> VendorResult:
        """Stage every locked dependency under ``request.vendor_dir``."""


def render_source_config(vendor_dir: str) -> str:
    """Source replacement snippet in the shape ``cargo vendor`` prints it."""
    return (
        "[source.crates-io]\n"
        'replace-with = "vendored-sources"\n'
        "\n"
        "[source.vendored-sources]\n"
        f'directory = "{vendor_dir}"\n'
    )


def collect_vendored_packages(vendor_dir: Path) -> tuple[VendoredPackage, ...]:
    """Scan *vendor_dir* for staged package directories."""
    if not vendor_dir.is_dir():
        return ()
    packages: list[VendoredPackage] = []
    for entry in sorted(vendor_dir.iterdir()):
        if not entry.is_dir() or entry.name.startswith("."):
            continue
        name, version = _package_identity(entry)
        packages.append(
            VendoredPackage(
                name=name,
                version=version,
                path=entry,
                checksum=_package_checksum(entry),
            )
        )
    return tuple(packages)


def _package_identity(package_dir: Path) -> tuple[str, str]:
    manifest = package_dir / "Cargo.toml"
    if manifest.is_file():
        try:
            data = tomllib.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
            raise VendoringError(
                "Vendored package manifest is unreadable.",
                hint=str(exc),
                context={"operation": "collect", "path": str(manifest)},
            ) from exc
        section = data.get("package", {})
        if isinstance(section, dict):
            name = section.get("name")
            version = section.get("version")
            if isinstance(name, str) and isinstance(version, str):
                return name, version

    match = _VERSIONED_DIR.match(package_dir.name)
    if match is None:
        return package_dir.name, ""
    return match["name"], match["version"]


def _package_checksum(package_dir: Path) -> str:
    checksum_path = package_dir / CHECKSUM_FILENAME
    if not checksum_path.is_file():
        return ""
    try:
        contents = json.loads(checksum_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise VendoringError(
            "Vendored package checksum file is not valid JSON.",
            hint="Remove the vendor directory and vendor again.",
            context={"operation": "collect", "path": str(checksum_path)},
        ) from exc
    value = contents.get("package") if isinstance(contents, dict) else None
    return value if isinstance(value, str) else ""


def verify_vendored_tree(snapshot: LockSnapshot, result: VendorResult) -> None:
    """Check every checksum record is staged with the locked checksum."""
    for record in snapshot.checksum_records():
        package = result.package_for(record.slug)
        if package is None:
            raise VendoringError(
                f"Locked package `{record.slug}` is missing from the vendor tree.",
                hint="Remove the vendor directory and vendor again.",
                context={"operation": "verify", "package": record.slug},
            )
        if package.checksum != record.checksum:
            raise VendoringError(
                f"Vendored package `{record.slug}` does not match the lockfile checksum.",
                hint="Remove the vendor directory and vendor again.",
                context={
                    "operation": "verify",
                    "package": record.slug,
                    "expected": record.checksum,
                    "actual": package.checksum,
                },
            )
