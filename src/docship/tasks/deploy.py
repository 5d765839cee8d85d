"""Deployment tasks.

`deploy:doc` pushes the generated API docs to the hosting branch, `deploy:gist`
publishes the documentation test snippets. `dist` runs both; `default` only
publishes the snippets.
"""

import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from ..orchestrator import TaskRegistry, task
from ..orchestrator.logging import get_logger
from ..orchestrator.paths import expand_globs, is_glob, selection_base
from ..orchestrator.utils import (
    docs_branch,
    docs_cache_dir,
    docs_message,
    docs_push,
    docs_remote,
    docs_repo,
    docs_source,
    gist_api_url,
    gist_description,
    gist_public,
    gist_source,
    gist_timeout,
    _get,
)
from ..publishers import GhPagesPublisher, GistPublisher, PublishError
from ..publishers.base import DocPublisher, SnippetPublisher

load_dotenv()


def make_doc_publisher(params: Dict[str, Any]) -> DocPublisher:
    injected = _get(params, "publishers", "doc")
    if injected is not None:
        return injected
    return GhPagesPublisher(
        repo_path=docs_repo(params),
        remote=docs_remote(params),
        branch=docs_branch(params),
        cache_dir=docs_cache_dir(params),
        message=docs_message(params),
        push=docs_push(params),
        remote_url=_get(params, "docs", "remote_url"),
    )


def make_gist_publisher(params: Dict[str, Any]) -> SnippetPublisher:
    injected = _get(params, "publishers", "gist")
    if injected is not None:
        return injected
    return GistPublisher(
        token=os.getenv("GITHUB_TOKEN") or os.getenv("GIST_TOKEN"),
        api_url=gist_api_url(params),
        public=gist_public(params),
        description=gist_description(params),
        timeout=gist_timeout(params),
    )


def _doc_pattern(params: Dict[str, Any]) -> str:
    # A plain directory means its whole tree
    source = docs_source(params)
    if not is_glob(source) and Path(source).is_dir():
        return f"{source.rstrip('/')}/**/*"
    return source


@task(name="deploy:doc", inputs=lambda p: [_doc_pattern(p)])
def deploy_doc(params: Dict[str, Any]):
    """Push the generated API documentation to the hosting branch."""
    logger = get_logger("docship.deploy.doc")
    pattern = _doc_pattern(params)
    base = selection_base(pattern)
    files = [p for p in expand_globs([pattern]) if p.is_file()]
    if not files:
        raise PublishError(
            f"No documentation files match {docs_source(params)}", target=docs_branch(params)
        )

    logger.info("Publishing %d files from %s", len(files), base)
    changed = make_doc_publisher(params).publish(files, base)
    if not changed:
        logger.info("Documentation already up to date")


@task(name="deploy:gist", inputs=lambda p: [gist_source(p)])
def deploy_gist(params: Dict[str, Any]):
    """Publish the documentation test snippets as gists."""
    logger = get_logger("docship.deploy.gist")
    path = Path(gist_source(params))
    if not path.is_file():
        raise FileNotFoundError(f"Snippet source not found: {path}")

    content = path.read_text(encoding="utf-8")
    ids = make_gist_publisher(params).publish(path, content)
    logger.info("Published %s to %d gist(s)", path, len(ids))


def build_registry() -> TaskRegistry:
    registry = TaskRegistry()
    registry.add_function(deploy_doc)
    registry.add_function(deploy_gist)
    registry.register(
        "dist", deps=["deploy:doc", "deploy:gist"], description="Deploy documentation and gists"
    )
    # Documentation deployment is opt-in: default only ships the gists
    registry.register("default", deps=["deploy:gist"], description="Deploy gists")
    return registry
