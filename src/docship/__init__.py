"""docship: publish generated API docs to a hosting branch and doc snippets as gists."""

__version__ = "0.1.0"
