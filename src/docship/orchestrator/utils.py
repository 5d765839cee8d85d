from __future__ import annotations

"""Small helpers for reading settings out of the parsed config params."""

import re
from pathlib import Path
from typing import Dict


def _get(d: Dict, *keys, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict):
            return default
        cur = cur.get(k)
        if cur is None:
            return default
    return cur


def slugify(s: str) -> str:
    # ':' shows up in task names like deploy:doc
    s = (s or "").strip().lower().replace(" ", "_").replace("/", "-").replace("\\", "-")
    return re.sub(r"[^a-z0-9_.-]", "-", s)


def state_dir(p: Dict) -> Path:
    return Path(_get(p, "project", "state_dir", default=".docship"))


def docs_source(p: Dict) -> str:
    return _get(p, "docs", "source", default="target/apidocs/**/*")


def docs_repo(p: Dict) -> str:
    return _get(p, "docs", "repo", default=".")


def docs_remote(p: Dict) -> str:
    return _get(p, "docs", "remote", default="origin")


def docs_branch(p: Dict) -> str:
    return _get(p, "docs", "branch", default="gh-pages")


def docs_message(p: Dict) -> str:
    return _get(p, "docs", "message", default="Update documentation")


def docs_push(p: Dict) -> bool:
    return bool(_get(p, "docs", "push", default=True))


def docs_cache_dir(p: Dict) -> Path:
    return Path(_get(p, "docs", "cache_dir", default=str(state_dir(p) / "gh-pages")))


def gist_source(p: Dict) -> str:
    return _get(p, "gist", "source", default="src/test/java/io/prismic/DocTest.java")


def gist_api_url(p: Dict) -> str:
    return _get(p, "gist", "api_url", default="https://api.github.com").rstrip("/")


def gist_public(p: Dict) -> bool:
    return bool(_get(p, "gist", "public", default=True))


def gist_description(p: Dict):
    return _get(p, "gist", "description")


def gist_timeout(p: Dict) -> float:
    return float(_get(p, "gist", "timeout", default=30.0))
