# matchpod/__init__.py

"""
MatchPod API backend package.

This package contains:
- api: FastAPI app factory, routes, middleware and exception handlers
- config: settings and constants
- core: shutdown coordinator, HTTP listener, Redis and MongoDB handlers
- security: CORS policy
"""

__all__ = ["__version__"]

__version__ = "1.0.0"
