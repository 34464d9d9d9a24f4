"""
Request handlers.

Only one kind of content is served: files under the document root.
"""

from .static import StaticFileHandler, ResolvedResource, serve_static

__all__ = [
    "StaticFileHandler",
    "ResolvedResource",
    "serve_static",
]
