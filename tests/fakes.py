# tests/fakes.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests


@dataclass
class DocPublish:
    files: list[str]
    base_dir: Path


class RecordingDocPublisher:
    """Stands in for the gh-pages publisher and remembers every call."""

    def __init__(self, changed: bool = True, error: Exception | None = None) -> None:
        self.changed = changed
        self.error = error
        self.calls: list[DocPublish] = []
        self._lock = threading.Lock()

    def publish(self, files, base_dir) -> bool:
        with self._lock:
            self.calls.append(
                DocPublish(files=sorted(Path(f).as_posix() for f in files), base_dir=Path(base_dir))
            )
        if self.error is not None:
            raise self.error
        return self.changed


@dataclass
class SnippetPublish:
    path: Path
    content: str


class RecordingSnippetPublisher:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[SnippetPublish] = []
        self._lock = threading.Lock()

    def publish(self, path, content: str) -> list[str]:
        with self._lock:
            self.calls.append(SnippetPublish(path=Path(path), content=content))
        if self.error is not None:
            raise self.error
        return ["fake-gist"]


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self.payload = payload if payload is not None else {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self) -> Any:
        return self.payload


@dataclass
class SentRequest:
    method: str
    url: str
    json: Any
    headers: dict
    timeout: float | None


@dataclass
class FakeSession:
    """
    Minimal requests.Session replacement.

    Responses are served from `responses` in order; once exhausted every call
    answers 200 with `default`.
    """

    responses: list[FakeResponse] = field(default_factory=list)
    default: FakeResponse = field(default_factory=lambda: FakeResponse(200, {"id": "new-gist"}))
    error: Exception | None = None
    sent: list[SentRequest] = field(default_factory=list)

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.sent.append(SentRequest(method, url, json, dict(headers or {}), timeout))
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return self.default
