"""Cargo.lock parser.

Cargo writes the lockfile as TOML: one ``[[package]]`` table per resolved
crate.  Version 2 and later carry the content hash in a ``checksum`` key
on the package table.  Version 1 lockfiles keep them in a ``[metadata]``
table keyed by ``"checksum <name> <version> (<source>)"``; both layouts are
understood here.
"""

from __future__ import annotations

import hashlib
import tomllib
from pathlib import Path
from typing import Any

from cratevend.errors import LockfileError
from cratevend.lockfile.model import DependencyRecord, LockSnapshot

_METADATA_CHECKSUM_PREFIX = "checksum "
_MISSING_CHECKSUM = "<none>"


def digest_bytes(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def lockfile_digest(path: str | Path) -> str | None:
    """Digest of the lockfile currently on disk, or None if it is gone."""
    try:
        return digest_bytes(Path(path).read_bytes())
    except FileNotFoundError:
        return None


def read_lockfile(path: str | Path) -> LockSnapshot:
    lock_path = Path(path)
    try:
        raw = lock_path.read_bytes()
    except FileNotFoundError as exc:
        raise LockfileError(
            "Lockfile does not exist.",
            hint="Run `cargo generate-lockfile` before vendoring.",
            context={"path": str(lock_path)},
        ) from exc
    except OSError as exc:
        raise LockfileError(
            "Lockfile could not be read.",
            hint=str(exc),
            context={"path": str(lock_path)},
        ) from exc

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise LockfileError(
            "Lockfile is not valid UTF-8.",
            context={"path": str(lock_path)},
        ) from exc

    version, records = parse_lockfile(text, path=lock_path)
    return LockSnapshot(
        path=lock_path,
        raw=raw,
        digest=digest_bytes(raw),
        version=version,
        records=records,
    )


def parse_lockfile(
    raw: str,
    *,
    path: Path | None = None,
) -> tuple[int, tuple[DependencyRecord, ...]]:
    context = {"path": str(path)} if path is not None else {}
    try:
        payload = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise LockfileError("Invalid lockfile TOML.", hint=str(exc), context=context) from exc

    packages_raw = payload.get("package", [])
    if not isinstance(packages_raw, list):
        raise LockfileError("Invalid lockfile `package` value.", context=context)

    metadata_checksums = _metadata_checksums(payload.get("metadata", {}))
    records = tuple(
        _parse_package(item, metadata_checksums, context=context) for item in packages_raw
    )

    version = payload.get("version")
    if version is None:
        version = 1 if metadata_checksums else 2
    if not isinstance(version, int) or isinstance(version, bool):
        raise LockfileError("Invalid lockfile `version` value.", context=context)
    return version, records


def _parse_package(
    item: Any,
    metadata_checksums: dict[tuple[str, str, str], str],
    *,
    context: dict[str, str],
) -> DependencyRecord:
    if not isinstance(item, dict):
        raise LockfileError("Invalid package entry in lockfile.", context=context)
    name = _required_str(item, "name", context=context)
    version = _required_str(item, "version", context=context)
    source = _optional_str(item, "source", context=context)
    checksum = _optional_str(item, "checksum", context=context)
    if not checksum:
        checksum = metadata_checksums.get((name, version, source), "")
    return DependencyRecord(name=name, version=version, source=source, checksum=checksum)


def _metadata_checksums(metadata: Any) -> dict[tuple[str, str, str], str]:
    if not isinstance(metadata, dict):
        return {}
    checksums: dict[tuple[str, str, str], str] = {}
    for key, value in metadata.items():
        if not isinstance(key, str) or not key.startswith(_METADATA_CHECKSUM_PREFIX):
            continue
        parts = key.split(" ", 3)
        if len(parts) != 4 or not isinstance(value, str) or value == _MISSING_CHECKSUM:
            continue
        _, name, version, source = parts
        if not (source.startswith("(") and source.endswith(")")):
            continue
        checksums[(name, version, source[1:-1])] = value
    return checksums


def _required_str(payload: dict[str, Any], key: str, *, context: dict[str, str]) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise LockfileError(f"Invalid lockfile package `{key}` value.", context=context)
    return value


def _optional_str(payload: dict[str, Any], key: str, *, context: dict[str, str]) -> str:
    value = payload.get(key, "")
    if not isinstance(value, str):
        raise LockfileError(f"Invalid lockfile package `{key}` value.", context=context)
    return value
