"""License scanning and aggregation."""

from .collector import collect_licenses, license_lines
from .scanners import (
    CargoManifestLicenseScanner,
    CommandLicenseScanner,
    LicenseScanner,
    split_license_expression,
)

__all__ = [
    "CargoManifestLicenseScanner",
    "CommandLicenseScanner",
    "LicenseScanner",
    "collect_licenses",
    "license_lines",
    "split_license_expression",
]
