from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Iterable

from .utils import slugify


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def file_digest(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def _entry(path: str) -> dict:
    p = Path(path)
    entry = {"path": path}
    # mtime is left out: a fresh checkout of identical content must hash the same
    if p.exists() and p.is_file():
        entry["digest"] = file_digest(p)
        entry["size"] = p.stat().st_size
    else:
        entry["digest"] = None
        entry["size"] = None
    return entry


def compute_task_hash(
    name: str, input_paths: Iterable[Path], code_paths: Iterable[Path], config: dict
) -> str:
    payload: dict = {
        "name": name,
        "inputs": [_entry(p) for p in sorted({str(p) for p in input_paths})],
        "code": [_entry(p) for p in sorted({str(p) for p in code_paths})],
        "config": config,
    }
    data = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return sha256_bytes(data)


def marker_path(state_dir: Path, task_name: str) -> Path:
    """Where the hash of the last successful publish of `task_name` is kept.

    Published outputs live on a remote, so the marker sits in the local state dir.
    """
    return Path(state_dir) / "cache" / f"{slugify(task_name)}.hash"


def is_cached(task_hash: str, marker: Path) -> bool:
    if not marker.exists():
        return False
    try:
        cached = marker.read_text(encoding="utf-8").strip()
    except OSError:
        return False
    return cached == task_hash


def write_marker(task_hash: str, marker: Path) -> None:
    marker.parent.mkdir(parents=True, exist_ok=True)
    marker.write_text(task_hash, encoding="utf-8")
