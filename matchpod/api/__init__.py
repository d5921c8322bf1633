"""
================================================================================
FILE: matchpod/api/__init__.py
================================================================================

PURPOSE:
    Package initialization for API layer. Exports the app factory:
    from matchpod.api import create_app
"""

from matchpod.api.main import create_app

__all__ = ["create_app"]
