import os
import sys
from dataclasses import dataclass
from pathlib import Path

from cratevend.backends import InProcessVendorBackend
from cratevend.config import VendorConfig
from cratevend.errors import LockfileError, ManifestWriteError, ValidationError, VendoringError
from cratevend.licenses import CommandLicenseScanner
from cratevend.models import VendorRequest, VendorResult
from cratevend.workflow import Workflow


def test_build_writes_config_licenses_and_checksums(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    result = Workflow(config=config, backend=inprocess_backend).build()

    assert result.ok
    assert result.exit_code == 0
    assert result.step_names() == (
        "validate-config",
        "read-lockfile",
        "vendor",
        "verify-vendor",
        "collect-licenses",
        "render-checksums",
        "write-config",
        "write-licenses",
        "write-checksums",
    )
    assert config.license_manifest_path.read_text(encoding="utf-8") == (
        "Apache-2.0\nApache-2.0\nMIT\nMIT\nUNKNOWN\n"
    )
    assert config.checksum_manifest_path.read_text(encoding="utf-8") == (
        "anyhow-1.0.75  a4668cab20f66d8d020e1fbc0ebe47217433c1b6c8f2040faf858554e394ace6\n"
        "serde-1.0.188  cf9e0fcba69a370eed61bcf2b728575f726b50b55cba78064753d708ddc7549e\n"
    )
    assert "[source.vendored-sources]" in config.config_path.read_text(encoding="utf-8")


def test_build_twice_produces_identical_manifests(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    workflow = Workflow(config=config, backend=inprocess_backend)

    workflow.build()
    first = _read_outputs(config)
    workflow.build()
    second = _read_outputs(config)

    assert first == second


def test_test_operation_skips_license_manifest(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    result = Workflow(config=config, backend=inprocess_backend).test()

    assert result.ok
    assert "collect-licenses" not in result.step_names()
    assert "write-licenses" not in result.step_names()
    assert config.checksum_manifest_path.exists()
    assert not config.license_manifest_path.exists()


def test_test_operation_leaves_existing_license_manifest_untouched(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    config.license_manifest_path.write_text("hand-written\n", encoding="utf-8")
    os.utime(config.license_manifest_path, ns=(1_000_000_000, 1_000_000_000))
    before = config.license_manifest_path.stat()

    Workflow(config=config, backend=inprocess_backend).test()

    after = config.license_manifest_path.stat()
    assert after.st_mtime_ns == before.st_mtime_ns
    assert config.license_manifest_path.read_text(encoding="utf-8") == "hand-written\n"


def test_vendoring_failure_leaves_previous_manifests_unmodified(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    assert Workflow(config=config, backend=inprocess_backend).build().ok
    previous = _read_outputs(config)

    result = Workflow(config=config, backend=InProcessVendorBackend(failing=("anyhow",))).build()

    assert not result.ok
    assert result.exit_code == 1
    assert isinstance(result.error, VendoringError)
    assert result.steps[-1].name == "vendor"
    assert _read_outputs(config) == previous
    assert set(result.stale_outputs) == {
        config.config_path,
        config.license_manifest_path,
        config.checksum_manifest_path,
    }
    assert result.report is None


def test_missing_lockfile_aborts_before_any_output(tmp_path: Path) -> None:
    config = VendorConfig(root=tmp_path)

    result = Workflow(config=config, backend=InProcessVendorBackend()).build()

    assert isinstance(result.error, LockfileError)
    assert result.step_names() == ("validate-config", "read-lockfile")
    assert list(tmp_path.iterdir()) == []


def test_lockfile_changed_during_vendoring_fails(config: VendorConfig) -> None:
    result = Workflow(config=config, backend=_RewritingBackend()).test()

    assert isinstance(result.error, LockfileError)
    assert "changed" in str(result.error)
    assert not config.checksum_manifest_path.exists()


def test_unwritable_manifest_reports_path(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    config.checksum_manifest_path.mkdir()

    result = Workflow(config=config, backend=inprocess_backend).test()

    assert isinstance(result.error, ManifestWriteError)
    assert result.error.context["path"] == str(config.checksum_manifest_path)
    assert not list(config.root.glob(".*.tmp"))


def test_clean_removes_vendor_tree_and_lockfile(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    workflow = Workflow(config=config, backend=inprocess_backend)
    workflow.build()

    result = workflow.clean()

    assert result.ok
    assert not config.vendor_path.exists()
    assert not config.lockfile_path.exists()
    assert config.checksum_manifest_path.exists()


def test_clean_is_idempotent_on_empty_directory(tmp_path: Path) -> None:
    workflow = Workflow(config=VendorConfig(root=tmp_path))

    first = workflow.clean()
    second = workflow.clean()

    assert first.exit_code == 0
    assert second.exit_code == 0
    assert second.step_names() == ("validate-config", "remove-vendor", "remove-lockfile")


def test_build_report_matches_written_outputs(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    result = Workflow(config=config, backend=inprocess_backend).build()

    report = result.report
    assert report is not None
    assert report.operation == "build"
    assert set(report.outputs) == {"config", "licenses.txt", "README.txt"}
    assert report.packages == ("anyhow-1.0.75", "serde-1.0.188", "tinyvec_local-0.3.0")
    assert list(report.checksums) == ["anyhow-1.0.75", "serde-1.0.188"]
    assert len(report.lock_digest) == 64


def test_structured_logs_cover_every_step(
    config: VendorConfig,
    inprocess_backend: InProcessVendorBackend,
) -> None:
    workflow = Workflow(config=config, backend=inprocess_backend)
    workflow.build()

    for step in ("read-lockfile", "vendor", "write-checksums"):
        messages = [record["message"] for record in workflow.logger.records_for_step(step)]
        assert messages[0] == "started"
        assert messages[-1] == "completed"
    unknown = workflow.logger.warnings()
    assert [record["package"] for record in unknown] == ["tinyvec_local-0.3.0"]


def test_invalid_config_is_returned_as_failed_step(tmp_path: Path) -> None:
    (tmp_path / "README.txt").write_text("old\n", encoding="utf-8")
    config = VendorConfig(root=tmp_path, vendor_dir="/abs/vendor")

    result = Workflow(config=config, backend=InProcessVendorBackend()).build()

    assert isinstance(result.error, ValidationError)
    assert result.exit_code == 1
    assert result.step_names() == ("validate-config",)
    assert result.stale_outputs == ()
    assert (tmp_path / "README.txt").read_text(encoding="utf-8") == "old\n"


def test_non_utf8_license_helper_output_records_unknown(config: VendorConfig) -> None:
    helper = config.root / "lic.py"
    helper.write_text("import sys\nsys.stdout.buffer.write(b'MIT \\xff\\n')\n", encoding="utf-8")
    workflow = Workflow(
        config=config,
        backend=InProcessVendorBackend(),
        scanner=CommandLicenseScanner(command=(sys.executable, str(helper))),
    )

    result = workflow.build()

    assert result.ok
    assert config.license_manifest_path.read_text(encoding="utf-8") == (
        "UNKNOWN\nUNKNOWN\nUNKNOWN\n"
    )


@dataclass(slots=True)
class _RewritingBackend:
    name: str = "rewriting"

    def vendor(self, request: VendorRequest) -> VendorResult:
        with request.snapshot.path.open("a", encoding="utf-8") as handle:
            handle.write("\n# touched\n")
        return VendorResult(config_text="")


def _read_outputs(config: VendorConfig) -> dict[str, bytes]:
    return {path.name: path.read_bytes() for path in config.output_paths() if path.exists()}
