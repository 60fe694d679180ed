"""Public package entrypoint for cratevend."""

from .config import VendorConfig
from .errors import (
    LockfileError,
    ManifestWriteError,
    ScanError,
    ValidationError,
    VendorError,
    VendoringError,
)
from .lockfile import DependencyRecord, LockSnapshot
from .models import LicenseEntry, VendoredPackage, VendorRequest, VendorResult
from .report import RunReport
from .workflow import OperationResult, StepResult, Workflow

__all__ = [
    "DependencyRecord",
    "LicenseEntry",
    "LockSnapshot",
    "LockfileError",
    "ManifestWriteError",
    "OperationResult",
    "RunReport",
    "ScanError",
    "StepResult",
    "ValidationError",
    "VendorConfig",
    "VendorError",
    "VendorRequest",
    "VendorResult",
    "VendoredPackage",
    "VendoringError",
    "Workflow",
]
