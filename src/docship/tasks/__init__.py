"""Task modules live here.

Task functions are decorated with `@task(name=..., deps=[...], inputs=[...])` and
registered explicitly by `build_registry()`.
"""

from .deploy import build_registry

__all__ = ["build_registry"]
