"""querygate — asynchronous request-dispatch façade for multi-engine reporting queries.

Accepts a raw reporting request, normalizes it against per-call overrides
(debug, forced engine, forced revision, caller identity), submits it once
to an asynchronous query processor, and delivers exactly one terminal
outcome: a streamed JSON result or an error.

Packages::

    querygate.core       errors, logging, settings, health
    querygate.domain     engines, schemas, ReportingRequest
    querygate.dispatch   overrides, bucketing, outcome resolution, streaming, façade
    querygate.api        FastAPI transport
    querygate.cli        Typer CLI
"""

__version__ = "0.1.0"
