"""All-or-nothing output file replacement."""

from __future__ import annotations

import os
from pathlib import Path

from cratevend.errors import ManifestWriteError


def write_atomic(path: str | Path, content: str | bytes) -> Path:
    """Write *content* next to *path* and rename it into place.

    Readers see either the previous file or the complete new one.
    """
    target = Path(path)
    temp_path = target.with_name(f".{target.name}.tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            temp_path.write_bytes(content)
        else:
            temp_path.write_text(content, encoding="utf-8")
        os.replace(temp_path, target)
    except OSError as exc:
        if temp_path.is_file():
            temp_path.unlink()
        raise ManifestWriteError(
            "Failed to write output file.",
            hint=str(exc),
            context={"path": str(target)},
        ) from exc
    return target


def write_lines(path: str | Path, lines: list[str] | tuple[str, ...]) -> Path:
    content = "".join(f"{line}\n" for line in lines)
    return write_atomic(path, content)
