"""Aggregation of per-package license identifiers into one sorted list."""

from __future__ import annotations

from collections.abc import Iterable

from cratevend.errors import ScanError
from cratevend.licenses.scanners import LicenseScanner
from cratevend.models import LicenseEntry, VendoredPackage
from cratevend.observability import StructuredLogger


def collect_licenses(
    packages: Iterable[VendoredPackage],
    scanner: LicenseScanner,
    *,
    unknown: str,
    logger: StructuredLogger | None = None,
    operation: str = "build",
) -> tuple[LicenseEntry, ...]:
    """Scan every package; sort entries by identifier.

    A package that reports nothing, or whose scan fails, contributes a single
    *unknown* entry so the list never has fewer entries than packages.
    """
    entries: list[LicenseEntry] = []
    for package in packages:
        try:
            identifiers = scanner.scan(package)
        except ScanError as exc:
            _warn(logger, operation, package, f"license scan failed: {exc}", unknown)
            identifiers = ()
        else:
            if not identifiers:
                _warn(logger, operation, package, "no license declared", unknown)

        if not identifiers:
            entries.append(LicenseEntry(package=package.slug, identifier=unknown))
            continue
        entries.extend(
            LicenseEntry(package=package.slug, identifier=identifier) for identifier in identifiers
        )
    return tuple(sorted(entries, key=lambda entry: (entry.identifier, entry.package)))


def license_lines(entries: Iterable[LicenseEntry]) -> list[str]:
    return [entry.identifier for entry in entries]


def _warn(
    logger: StructuredLogger | None,
    operation: str,
    package: VendoredPackage,
    message: str,
    unknown: str,
) -> None:
    if logger is None:
        return
    logger.log(
        operation=operation,
        step="collect-licenses",
        package=package.slug,
        message=message,
        level="warning",
        extra={"recorded_as": unknown},
    )
