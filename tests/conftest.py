"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from cratevend.backends import InProcessVendorBackend
from cratevend.config import VendorConfig

CRATES_IO = "registry+https://github.com/rust-lang/crates.io-index"

LOCKFILE = f"""\
# This file is automatically @generated by Cargo.
# It is not intended for manual editing.
version = 3

[[package]]
name = "anyhow"
version = "1.0.75"
source = "{CRATES_IO}"
checksum = "a4668cab20f66d8d020e1fbc0ebe47217433c1b6c8f2040faf858554e394ace6"

[[package]]
name = "demo"
version = "0.1.0"
dependencies = [
 "anyhow",
 "serde",
 "tinyvec_local",
]

[[package]]
name = "serde"
version = "1.0.188"
source = "{CRATES_IO}"
checksum = "cf9e0fcba69a370eed61bcf2b728575f726b50b55cba78064753d708ddc7549e"

[[package]]
name = "tinyvec_local"
version = "0.3.0"
source = "git+https://example.invalid/tinyvec#2f1e0a9"
"""

MANIFEST = """\
[package]
name = "demo"
version = "0.1.0"
edition = "2021"
"""


@pytest.fixture
def crate_root(tmp_path: Path) -> Path:
    """A crate root holding Cargo.toml and a v3 Cargo.lock."""
    root = tmp_path / "crate"
    root.mkdir()
    (root / "Cargo.toml").write_text(MANIFEST, encoding="utf-8")
    (root / "Cargo.lock").write_text(LOCKFILE, encoding="utf-8")
    return root


@pytest.fixture
def config(crate_root: Path) -> VendorConfig:
    return VendorConfig(root=crate_root)


@pytest.fixture
def inprocess_backend() -> InProcessVendorBackend:
    """Vendoring backend that stages packages without cargo."""
    return InProcessVendorBackend(
        licenses={"anyhow": "MIT OR Apache-2.0", "serde": "MIT OR Apache-2.0"},
    )
