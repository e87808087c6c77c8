"""querygate core -- errors, logging, settings and health primitives.

Foundation for the ``domain``, ``dispatch`` and ``api`` layers; nothing here
imports from them at runtime.

Architecture::

    errors.py      Structured error hierarchy (QueryGateError, NotFoundError, ...)
    logging.py     structlog configuration and helpers
    settings.py    pydantic-settings base class
    health.py      /health router factory and registry probes
"""
