"""
Centralized logging configuration for WorldForge.

Call setup_logging() once at startup (the FastAPI lifespan handler or
the CLI entry point).  Every source module then gets its own logger:

    import logging
    logger = logging.getLogger(__name__)

Level mapping:
  DEBUG   – prompt sizes, parsed payload sizes, cache hits
  INFO    – phase start/finish, job claims, enqueue transitions
  WARNING – JSON repairs, dropped references, degraded coherence audits
  ERROR   – failed jobs, provider errors
"""

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger and quiet noisy third-party loggers."""
    fmt = "[%(name)s] %(message)s"
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=fmt,
        stream=sys.stdout,
        force=True,
    )

    for name in (
        "httpx",
        "httpcore",
        "uvicorn.access",
        "openai",
        "anthropic",
        "google_genai",
        "sqlalchemy.engine",
        "alembic.runtime.migration",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)
