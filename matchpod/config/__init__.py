"""
================================================================================
FILE: matchpod/config/__init__.py
================================================================================

PURPOSE:
    Package initialization for configuration layer. Enables clean imports:
    from matchpod.config import Settings, load_settings
"""

from matchpod.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
