"""Vendoring engine interfaces and implementations."""

from .base import (
    VendorBackend,
    collect_vendored_packages,
    render_source_config,
    verify_vendored_tree,
)
from .cargo import CargoVendorBackend
from .inprocess import InProcessVendorBackend

__all__ = [
    "CargoVendorBackend",
    "InProcessVendorBackend",
    "VendorBackend",
    "collect_vendored_packages",
    "render_source_config",
    "verify_vendored_tree",
]
