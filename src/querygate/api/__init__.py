"""
REST API layer for querygate.

Provides a FastAPI application factory.  Dispatch logic lives in
``querygate.dispatch``; this package handles only HTTP transport
concerns: body reading, caller identity, error mapping and streaming.

Quick start::

    from querygate.api import create_app

    app = create_app()  # ready for uvicorn
"""

from querygate.api.app import create_app

__all__ = ["create_app"]
