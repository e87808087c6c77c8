"""
CLI layer for querygate.

Entry point::

    querygate --help
"""

from querygate.cli.app import app

__all__ = ["app"]
