"""GitHub gist publisher.

A source file may carry gist markers in line comments::

    // startgist:9b08c18ad53ba62736b7:prismic-api.java
    Api api = Api.get("https://lesbonneschoses.prismic.io/api");
    // endgist

Each marked block is dedented and written to the named file of the named gist,
so re-publishing updates the same gists. A file without markers is uploaded
whole as a new gist.
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import requests

from ..orchestrator.logging import get_logger
from .base import PublishError, SnippetParseError

log = get_logger("docship.publishers.gist")

_COMMENT = r"^\s*(?://|#|--|;|/\*)\s*"
_START = re.compile(_COMMENT + r"startgist:(?P<id>[0-9A-Za-z]+):(?P<filename>[^\s*]+)")
_END = re.compile(_COMMENT + r"endgist\b")


@dataclass(frozen=True)
class Snippet:
    gist_id: str
    filename: str
    content: str
    line: int


def extract_snippets(content: str, source: str = "<string>") -> List[Snippet]:
    snippets: List[Snippet] = []
    open_block = None
    lines: List[str] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        start = _START.match(line)
        if start:
            if open_block is not None:
                raise SnippetParseError(
                    f"{source}:{lineno}: startgist inside the block opened at line {open_block[2]}"
                )
            open_block = (start.group("id"), start.group("filename"), lineno)
            lines = []
            continue
        if _END.match(line):
            if open_block is None:
                raise SnippetParseError(f"{source}:{lineno}: endgist without startgist")
            body = textwrap.dedent("\n".join(lines)).strip("\n")
            snippets.append(
                Snippet(gist_id=open_block[0], filename=open_block[1], content=body + "\n", line=open_block[2])
            )
            open_block = None
            continue
        if open_block is not None:
            lines.append(line)
    if open_block is not None:
        raise SnippetParseError(f"{source}:{open_block[2]}: startgist is never closed")
    return snippets


def _group_by_gist(snippets: List[Snippet], source: str) -> Dict[str, Dict[str, str]]:
    grouped: Dict[str, Dict[str, str]] = {}
    for s in snippets:
        files = grouped.setdefault(s.gist_id, {})
        if s.filename in files:
            raise SnippetParseError(
                f"{source}:{s.line}: {s.filename} appears twice for gist {s.gist_id}"
            )
        files[s.filename] = s.content
    return grouped


class GistPublisher:
    def __init__(
        self,
        token: Optional[str],
        api_url: str = "https://api.github.com",
        public: bool = True,
        description: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.public = public
        self.description = description
        self.timeout = timeout
        self.session = session or requests.Session()

    def publish(self, path: Path, content: str) -> List[str]:
        if not self.token:
            raise PublishError("No GitHub token configured (set GITHUB_TOKEN)", target=self.api_url)
        path = Path(path)
        snippets = extract_snippets(content, source=str(path))
        if not snippets:
            gist = self._request(
                "POST",
                "/gists",
                {
                    "description": self.description or path.name,
                    "public": self.public,
                    "files": {path.name: {"content": content}},
                },
            )
            gist_id = gist.get("id")
            log.info("Created gist %s for %s", gist_id, path)
            return [gist_id] if gist_id else []

        touched: List[str] = []
        for gist_id, files in _group_by_gist(snippets, str(path)).items():
            payload: dict = {"files": {name: {"content": body} for name, body in files.items()}}
            if self.description:
                payload["description"] = self.description
            self._request("PATCH", f"/gists/{gist_id}", payload)
            log.info("Updated gist %s (%s)", gist_id, ", ".join(files))
            touched.append(gist_id)
        return touched

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
        }

    def _request(self, method: str, endpoint: str, payload: dict) -> dict:
        url = self.api_url + endpoint
        try:
            resp = self.session.request(
                method, url, json=payload, headers=self._headers(), timeout=self.timeout
            )
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise PublishError(f"{method} {url} failed with HTTP {status}", target=url, status=status) from e
        except requests.RequestException as e:
            raise PublishError(f"{method} {url} failed: {e}", target=url) from e
        try:
            return resp.json() or {}
        except ValueError:
            return {}
