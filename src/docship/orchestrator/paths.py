from __future__ import annotations

"""Glob expansion for task inputs and publisher file selections."""

from pathlib import Path
from typing import Iterable, List, Union

_GLOB_CHARS = "*?["


def is_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in _GLOB_CHARS)


def selection_base(pattern: str) -> Path:
    """Static directory prefix of a glob, e.g. `target/apidocs/**/*` -> `target/apidocs`."""
    if not is_glob(pattern):
        p = Path(pattern)
        return p if not p.suffix else p.parent
    parts: list[str] = []
    for part in Path(pattern).parts:
        if is_glob(part):
            break
        parts.append(part)
    return Path(*parts) if parts else Path(".")


def expand_globs(patterns: Iterable[str], root: Union[str, Path] = ".") -> List[Path]:
    """Expand glob patterns into a sorted, de-duplicated list of files.

    `**` matches zero or more directories. Non-glob patterns are passed through
    as paths whether or not they exist, so a missing input still changes the
    content hash.
    """
    root = Path(root)
    found: dict[str, Path] = {}
    for pat in patterns:
        pat = str(pat)
        if is_glob(pat):
            if Path(pat).is_absolute():
                anchor = Path(Path(pat).anchor)
                matches = anchor.glob(str(Path(pat).relative_to(anchor)))
            else:
                matches = root.glob(pat)
            for p in matches:
                if p.is_file():
                    found.setdefault(str(p), p)
        else:
            p = Path(pat) if Path(pat).is_absolute() else root / pat
            found.setdefault(str(p), p)
    return [found[k] for k in sorted(found)]
