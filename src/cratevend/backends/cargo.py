"""Vendoring through ``cargo vendor``.

Runs cargo on the host with ``--locked`` so the engine can never rewrite the
lockfile it was handed, and ``--versioned-dirs`` so every staged directory is
named ``<name>-<version>``.  Whatever cargo prints on stdout (the
``[source.*]`` replacement snippet) is returned as the configuration text.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field

from cratevend.backends.base import collect_vendored_packages
from cratevend.errors import VendoringError
from cratevend.models import VendorRequest, VendorResult


@dataclass(slots=True)
class CargoVendorBackend:
    name: str = "cargo"
    tool: str = "cargo"
    vendor_args: list[str] = field(default_factory=list)

    def command(self, request: VendorRequest) -> list[str]:
        return [
            self.tool,
            "vendor",
            "--locked",
            "--versioned-dirs",
            f"--manifest-path={request.manifest_path}",
            *self.vendor_args,
            str(request.vendor_dir),
        ]

    def vendor(self, request: VendorRequest) -> VendorResult:
        self._ensure_tool()
        if not request.manifest_path.is_file():
            raise VendoringError(
                "Project manifest does not exist.",
                hint="Run from the crate root or pass --root.",
                context={"backend": self.name, "path": str(request.manifest_path)},
            )

        cmd = self.command(request)
        try:
            result = subprocess.run(
                cmd,
                cwd=str(request.root),
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise VendoringError(
                "cargo vendor could not be started.",
                hint=str(exc),
                context={"backend": self.name, "operation": "vendor", "command": " ".join(cmd)},
            ) from exc
        if result.returncode != 0:
            raise VendoringError(
                "cargo vendor failed.",
                hint="Check cargo output for the crate that could not be fetched or verified.",
                context={
                    "backend": self.name,
                    "operation": "vendor",
                    "returncode": str(result.returncode),
                    "stderr": _decode_lossy(result.stderr)[:2000],
                    "command": " ".join(cmd),
                },
            )
        try:
            config_text = result.stdout.decode("utf-8") if result.stdout else ""
        except UnicodeDecodeError as exc:
            raise VendoringError(
                "cargo vendor printed a non-UTF-8 source configuration.",
                hint=str(exc),
                context={"backend": self.name, "operation": "vendor", "command": " ".join(cmd)},
            ) from exc

        return VendorResult(
            config_text=config_text,
            packages=collect_vendored_packages(request.vendor_dir),
        )

    def _ensure_tool(self) -> None:
        if shutil.which(self.tool) is None:
            raise VendoringError(
                f"Vendoring requires `{self.tool}` in PATH.",
                hint="Install a Rust toolchain (rustup) or pass --cargo.",
                context={"backend": self.name, "operation": "vendor"},
            )


def _decode_lossy(payload: bytes | None) -> str:
    return payload.decode("utf-8", errors="replace") if payload else ""
