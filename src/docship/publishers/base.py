from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Protocol, Sequence


class PublishError(Exception):
    """A remote publish failed: bad credentials, unreachable or invalid target."""

    def __init__(self, message: str, target: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.target = target
        self.status = status


class SnippetParseError(PublishError):
    pass


class DocPublisher(Protocol):
    def publish(self, files: Sequence[Path], base_dir: Path) -> bool:
        """Replace the destination contents with `files`; False when nothing changed."""
        ...


class SnippetPublisher(Protocol):
    def publish(self, path: Path, content: str) -> List[str]:
        """Create or update snippets for one file; returns the snippet ids touched."""
        ...
