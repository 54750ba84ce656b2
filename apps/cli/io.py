"""CLI I/O helpers for atomic output writing."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.zpl.reports import EditOutput


@dataclass(frozen=True)
class OutputPaths:
    """Fixed output artifact paths for one edit run."""

    zpl: Path
    edit_report: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    """Build fixed output file paths under out_dir."""

    return OutputPaths(
        zpl=out_dir / "out.zpl",
        edit_report=out_dir / "out.edit_report.json",
    )


def existing_output_files(paths: OutputPaths) -> list[Path]:
    """Return existing output files among fixed artifact paths."""

    return [path for path in (paths.zpl, paths.edit_report) if path.exists()]


def read_label(path: Path) -> str:
    """Read label text exactly as stored (no newline translation)."""

    with path.open("r", encoding="utf-8", newline="") as handle:
        return handle.read()


def read_json_object(path: Path, what: str) -> dict[str, Any]:
    """Load a JSON object from ``path``."""

    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{what} JSON must be an object")
    return raw


def write_edit_output_atomic(paths: OutputPaths, output: EditOutput) -> None:
    """Write the rewritten label and its report using temporary files + replace."""

    paths.zpl.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_bytes(paths.zpl, output.zpl.encode("utf-8"))
    write_json_atomic(paths.edit_report, output.report.model_dump(mode="json"))


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write one JSON document atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    tmp_path.replace(path)


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """Write binary output (preview images) atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_bytes(path, data)


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        tmp_path.write_bytes(data)
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise
