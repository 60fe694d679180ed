"""Cargo lockfile model and reader."""

from .io import digest_bytes, lockfile_digest, parse_lockfile, read_lockfile
from .model import DependencyRecord, LockSnapshot

__all__ = [
    "DependencyRecord",
    "LockSnapshot",
    "digest_bytes",
    "lockfile_digest",
    "parse_lockfile",
    "read_lockfile",
]
