"""Logfire cloud observability initialization and instrumentation."""

import logging
from typing import Optional

import logfire
from fastapi import FastAPI

from clutch import __version__
from clutch.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings, app: Optional[FastAPI] = None) -> bool:
    """
    Initialize Logfire and bridge application logging to it.

    Call once at startup, before the first request is served. Instruments:
    - FastAPI (request spans), when an app is given
    - SQLAlchemy (query spans on the configured engine)
    - Python logging (ledger deltas and settlements become Logfire records)

    Args:
        settings: Application settings containing the Logfire token
        app: The FastAPI application to instrument, if any

    Returns:
        True when Logfire was configured.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="clutch",
            service_version=__version__,
            environment=settings.environment,
        )

        if app is not None:
            logfire.instrument_fastapi(app)

        from clutch.database import get_engine

        logfire.instrument_sqlalchemy(engine=get_engine().sync_engine)

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire cloud tracking initialized")
        return True

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        # Continue running - observability is optional
        return False
