"""Build, test and clean operations as ordered lists of named steps.

Every operation reads the lockfile once and hands the same snapshot to all
later steps.  Manifests are computed in full before the first one is
written, so a failure anywhere before the write phase leaves the previous
outputs untouched; they are reported back as possibly stale.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TypeVar

from cratevend.backends.base import VendorBackend, verify_vendored_tree
from cratevend.backends.cargo import CargoVendorBackend
from cratevend.config import VendorConfig
from cratevend.errors import LockfileError, ManifestWriteError, ValidationError, VendorError
from cratevend.licenses.collector import collect_licenses, license_lines
from cratevend.licenses.scanners import CargoManifestLicenseScanner, LicenseScanner
from cratevend.lockfile.io import lockfile_digest, read_lockfile
from cratevend.lockfile.model import LockSnapshot
from cratevend.manifest.checksums import ChecksumTableRow, checksum_rows, render_table
from cratevend.manifest.writer import write_atomic, write_lines
from cratevend.models import LicenseEntry, VendorRequest, VendorResult
from cratevend.observability import StructuredLogger
from cratevend.report import RunReport, digest_file

OperationName = Literal["build", "test", "clean"]

T = TypeVar("T")


@dataclass(slots=True)
class RunState:
    snapshot: LockSnapshot | None = None
    vendored: VendorResult | None = None
    licenses: tuple[LicenseEntry, ...] | None = None
    rows: tuple[ChecksumTableRow, ...] = ()
    checksum_table: str | None = None
    written: list[Path] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Step:
    name: str
    run: Callable[[RunState], None]


@dataclass(frozen=True, slots=True)
class StepResult:
    name: str
    ok: bool
    error: VendorError | None = None


@dataclass(frozen=True, slots=True)
class OperationResult:
    operation: OperationName
    steps: tuple[StepResult, ...]
    error: VendorError | None = None
    stale_outputs: tuple[Path, ...] = ()
    report: RunReport | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def step_names(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.steps)


def run_steps(
    operation: OperationName,
    steps: tuple[Step, ...],
    state: RunState,
    *,
    logger: StructuredLogger,
) -> tuple[tuple[StepResult, ...], VendorError | None]:
    """Run *steps* in order, stopping at the first one that raises."""
    results: list[StepResult] = []
    for step in steps:
        logger.log(operation=operation, step=step.name, message="started")
        try:
            step.run(state)
        except VendorError as exc:
            results.append(StepResult(name=step.name, ok=False, error=exc))
            logger.log(
                operation=operation,
                step=step.name,
                message=str(exc),
                level="error",
                extra={"code": exc.code},
            )
            return tuple(results), exc
        results.append(StepResult(name=step.name, ok=True))
        logger.log(operation=operation, step=step.name, message="completed")
    return tuple(results), None


@dataclass(slots=True)
class Workflow:
    config: VendorConfig = field(default_factory=VendorConfig)
    backend: VendorBackend = field(default_factory=CargoVendorBackend)
    scanner: LicenseScanner = field(default_factory=CargoManifestLicenseScanner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def build(self) -> OperationResult:
        steps = (
            Step("validate-config", self._validate_config),
            Step("read-lockfile", self._read_lockfile),
            Step("vendor", self._vendor),
            Step("verify-vendor", self._verify_vendor),
            Step("collect-licenses", self._collect_licenses),
            Step("render-checksums", self._render_checksums),
            Step("write-config", self._write_config),
            Step("write-licenses", self._write_licenses),
            Step("write-checksums", self._write_checksums),
        )
        return self._run("build", steps)

    def test(self) -> OperationResult:
        steps = (
            Step("validate-config", self._validate_config),
            Step("read-lockfile", self._read_lockfile),
            Step("vendor", self._vendor),
            Step("verify-vendor", self._verify_vendor),
            Step("render-checksums", self._render_checksums),
            Step("write-config", self._write_config),
            Step("write-checksums", self._write_checksums),
        )
        return self._run("test", steps)

    def clean(self) -> OperationResult:
        steps = (
            Step("validate-config", self._validate_config),
            Step("remove-vendor", self._remove_vendor),
            Step("remove-lockfile", self._remove_lockfile),
        )
        return self._run("clean", steps)

    def _run(self, operation: OperationName, steps: tuple[Step, ...]) -> OperationResult:
        state = RunState()
        results, error = run_steps(operation, steps, state, logger=self.logger)
        if error is not None:
            # an invalid config names no trustworthy output paths
            stale = (
                ()
                if isinstance(error, ValidationError)
                else self._stale_outputs(operation, state)
            )
            for path in stale:
                self.logger.log(
                    operation=operation,
                    step=None,
                    message=f"{path} was not regenerated and may be out of date",
                    level="warning",
                )
            return OperationResult(
                operation=operation,
                steps=results,
                error=error,
                stale_outputs=stale,
            )
        report = None if operation == "clean" else self._report(operation, state)
        return OperationResult(operation=operation, steps=results, report=report)

    def _validate_config(self, state: RunState) -> None:
        self.config.validate()

    def _read_lockfile(self, state: RunState) -> None:
        state.snapshot = read_lockfile(self.config.lockfile_path)

    def _vendor(self, state: RunState) -> None:
        snapshot = _require(state.snapshot, "snapshot")
        request = VendorRequest(
            root=self.config.root,
            manifest_path=self.config.manifest_path,
            vendor_dir=self.config.vendor_path,
            snapshot=snapshot,
        )
        state.vendored = self.backend.vendor(request)
        if lockfile_digest(snapshot.path) != snapshot.digest:
            raise LockfileError(
                "Lockfile changed while vendoring.",
                hint="Re-run once the lockfile is stable; the engine must run in --locked mode.",
                context={"path": str(snapshot.path)},
            )

    def _verify_vendor(self, state: RunState) -> None:
        snapshot = _require(state.snapshot, "snapshot")
        verify_vendored_tree(snapshot, _require(state.vendored, "vendored"))

    def _collect_licenses(self, state: RunState) -> None:
        vendored = _require(state.vendored, "vendored")
        state.licenses = collect_licenses(
            vendored.packages,
            self.scanner,
            unknown=self.config.unknown_license,
            logger=self.logger,
        )

    def _render_checksums(self, state: RunState) -> None:
        state.rows = checksum_rows(_require(state.snapshot, "snapshot"))
        state.checksum_table = render_table(state.rows)

    def _write_config(self, state: RunState) -> None:
        vendored = _require(state.vendored, "vendored")
        state.written.append(write_atomic(self.config.config_path, vendored.config_text))

    def _write_licenses(self, state: RunState) -> None:
        lines = license_lines(_require(state.licenses, "licenses"))
        state.written.append(write_lines(self.config.license_manifest_path, lines))

    def _write_checksums(self, state: RunState) -> None:
        table = _require(state.checksum_table, "checksum_table")
        state.written.append(write_atomic(self.config.checksum_manifest_path, table))

    def _remove_vendor(self, state: RunState) -> None:
        _remove(self.config.vendor_path)

    def _remove_lockfile(self, state: RunState) -> None:
        _remove(self.config.lockfile_path)

    def _stale_outputs(self, operation: OperationName, state: RunState) -> tuple[Path, ...]:
        if operation == "clean":
            return ()
        candidates = [self.config.config_path, self.config.checksum_manifest_path]
        if operation == "build":
            candidates.append(self.config.license_manifest_path)
        return tuple(
            path for path in sorted(candidates) if path.exists() and path not in state.written
        )

    def _report(self, operation: Literal["build", "test"], state: RunState) -> RunReport:
        snapshot = _require(state.snapshot, "snapshot")
        vendored = _require(state.vendored, "vendored")
        return RunReport(
            operation=operation,
            lock_digest=snapshot.digest,
            packages=tuple(package.slug for package in vendored.packages),
            licenses=tuple(license_lines(state.licenses or ())),
            checksums={row.name: row.checksum for row in state.rows},
            outputs={path.name: digest_file(path) for path in state.written},
        )


def _require(value: T | None, name: str) -> T:
    if value is None:
        raise RuntimeError(f"step ordering error: `{name}` has not been produced yet")
    return value


def _remove(path: Path) -> None:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except OSError as exc:
        raise ManifestWriteError(
            "Failed to remove generated artifact.",
            hint=str(exc),
            context={"path": str(path)},
        ) from exc
