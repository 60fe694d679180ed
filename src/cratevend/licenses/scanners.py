"""License scanners for vendored packages."""

from __future__ import annotations

import shutil
import subprocess
import tomllib
from dataclasses import dataclass
from typing import Protocol

from cratevend.errors import ScanError
from cratevend.models import VendoredPackage

_OPERATORS = frozenset({"OR", "AND"})

# Attribution license files some crates ship instead of a `license` key.
_LICENSE_FILE_HINTS: tuple[tuple[str, str], ...] = (
    ("-APACHE", "Apache-2.0"),
    ("-MIT", "MIT"),
    ("-BSD", "BSD-3-Clause"),
    ("-ISC", "ISC"),
    ("-ZLIB", "Zlib"),
)


class LicenseScanner(Protocol):
    name: str

    def scan(self, package: VendoredPackage) -> tuple[str, ...]:
        """Return every license identifier the package declares."""


def split_license_expression(expression: str) -> tuple[str, ...]:
    """Split an SPDX-ish expression into individual identifiers.

    ``MIT OR Apache-2.0`` yields two identifiers; ``WITH`` exceptions stay
    attached to their license and the legacy ``MIT/Apache-2.0`` form is
    treated like ``OR``.
    """
    normalized = expression.replace("(", " ").replace(")", " ").replace("/", " OR ")
    identifiers: list[str] = []
    current: list[str] = []
    tokens = iter(normalized.split())
    for token in tokens:
        if token.upper() in _OPERATORS:
            if current:
                identifiers.append(" ".join(current))
                current = []
            continue
        if token.upper() == "WITH":
            exception = next(tokens, "")
            if current and exception:
                current.extend(["WITH", exception])
            continue
        current.append(token)
    if current:
        identifiers.append(" ".join(current))

    unique: list[str] = []
    for identifier in identifiers:
        if identifier not in unique:
            unique.append(identifier)
    return tuple(unique)


@dataclass(slots=True)
class CommandLicenseScanner:
    """Runs an external helper once per package and parses its stdout."""

    command: tuple[str, ...]
    name: str = "command"

    def scan(self, package: VendoredPackage) -> tuple[str, ...]:
        if not self.command or shutil.which(self.command[0]) is None:
            raise ScanError(
                "License helper is not executable.",
                hint="Check --license-helper points at an executable.",
                context={"scanner": self.name, "helper": " ".join(self.command)},
            )
        cmd = [*self.command, str(package.path)]
        try:
            result = subprocess.run(cmd, capture_output=True, check=False)
        except OSError as exc:
            raise ScanError(
                "License helper could not be started.",
                hint=str(exc),
                context={"scanner": self.name, "package": package.slug, "command": " ".join(cmd)},
            ) from exc
        if result.returncode != 0:
            raise ScanError(
                "License helper failed.",
                context={
                    "scanner": self.name,
                    "package": package.slug,
                    "returncode": str(result.returncode),
                    "stderr": _decode_lossy(result.stderr)[:2000],
                    "command": " ".join(cmd),
                },
            )
        try:
            output = result.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ScanError(
                "License helper printed non-UTF-8 output.",
                hint=str(exc),
                context={"scanner": self.name, "package": package.slug, "command": " ".join(cmd)},
            ) from exc

        identifiers: list[str] = []
        for line in output.splitlines():
            for identifier in split_license_expression(line):
                if identifier not in identifiers:
                    identifiers.append(identifier)
        return tuple(identifiers)


@dataclass(slots=True)
class CargoManifestLicenseScanner:
    """Reads the license declared in the vendored package's Cargo.toml."""

    name: str = "cargo-manifest"

    def scan(self, package: VendoredPackage) -> tuple[str, ...]:
        manifest = package.path / "Cargo.toml"
        try:
            data = tomllib.loads(manifest.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ScanError(
                "Vendored package has no Cargo.toml.",
                context={"scanner": self.name, "package": package.slug},
            ) from exc
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
            raise ScanError(
                "Vendored package Cargo.toml is unreadable.",
                hint=str(exc),
                context={"scanner": self.name, "package": package.slug},
            ) from exc

        section = data.get("package", {})
        if not isinstance(section, dict):
            return ()
        expression = section.get("license")
        if isinstance(expression, str) and expression.strip():
            return split_license_expression(expression)
        license_file = section.get("license-file")
        if isinstance(license_file, str):
            return _guess_from_license_file(license_file)
        return ()


def _guess_from_license_file(license_file: str) -> tuple[str, ...]:
    upper = license_file.upper()
    for marker, identifier in _LICENSE_FILE_HINTS:
        if marker in upper:
            return (identifier,)
    return ()


def _decode_lossy(payload: bytes | None) -> str:
    return payload.decode("utf-8", errors="replace") if payload else ""
