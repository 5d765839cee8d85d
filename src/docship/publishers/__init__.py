"""Integrations that turn local files into a remote side effect."""

from .base import PublishError, SnippetParseError
from .ghpages import GhPagesPublisher
from .gist import GistPublisher, Snippet, extract_snippets

__all__ = [
    "PublishError",
    "SnippetParseError",
    "GhPagesPublisher",
    "GistPublisher",
    "Snippet",
    "extract_snippets",
]
