"""Machine-readable run report with stable JSON and CBOR encodings."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import cbor2

from cratevend.manifest.writer import write_atomic

Operation = Literal["build", "test"]


def digest_file(path: str | Path) -> str:
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()


@dataclass(frozen=True, slots=True)
class RunReport:
    operation: Operation
    lock_digest: str
    packages: tuple[str, ...] = ()
    licenses: tuple[str, ...] = ()
    checksums: dict[str, str] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)
    schema_version: int = 1

    def to_json(self, path: str | Path | None = None) -> str:
        payload = self._payload()
        encoded = json.dumps(payload, indent=2, sort_keys=True) + "\n"
        if path is not None:
            write_atomic(path, encoded)
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        payload = self._payload()
        encoded = cbor2.dumps(payload, canonical=True)
        if path is not None:
            write_atomic(path, encoded)
        return encoded

    def write(self, path: str | Path) -> Path:
        """Atomically write in the encoding the file suffix asks for."""
        output_path = Path(path)
        if output_path.suffix == ".cbor":
            return write_atomic(output_path, self.to_cbor())
        return write_atomic(output_path, self.to_json())

    def _payload(self) -> dict[str, object]:
        return {
            "schema_version": self.schema_version,
            "operation": self.operation,
            "lock_digest": self.lock_digest,
            "packages": list(self.packages),
            "licenses": list(self.licenses),
            "checksums": dict(sorted(self.checksums.items())),
            "outputs": dict(sorted(self.outputs.items())),
        }
