"""
================================================================================
FILE: matchpod/core/__init__.py
================================================================================

PURPOSE:
    Core layer: process lifecycle and backing-service handlers.

    - exceptions: application error hierarchy
    - shutdown: graceful shutdown coordinator, safety net, signal wiring
    - server: uvicorn-backed HTTP listener with an explicit close outcome
    - redis_handler: Redis client lifecycle
    - mongo_handler: MongoDB client lifecycle

KEY FACTS:
    - Import submodules directly (from matchpod.core.shutdown import ...);
      this file re-exports nothing so settings.py can import exceptions
      without a cycle
"""
