"""
Wayfarer Backend — Process Supervisor
=======================================

What:  Runs the uvicorn server and decides how the process ends.
Why:   A fault nobody handled must never leave the process half-alive.

Failure policy:
    Uncaught synchronous exception   logged through sys.excepthook; the
                                     interpreter then exits non-zero.
    Unhandled asynchronous failure   (an exception from a task nobody awaited)
                                     logged, the server is asked to shut down,
                                     in-flight requests drain, exit status 1.
    Normal shutdown (SIGINT/SIGTERM) exit status 0.

Usage:
    python -m app
"""

import asyncio
import logging
import sys
from types import TracebackType
from typing import Any, Dict, Optional, Type

import uvicorn

from app.config import settings
from app.main import setup_logging

logger = logging.getLogger(__name__)


def log_uncaught_exception(
    exc_type: Type[BaseException],
    exc: BaseException,
    tb: Optional[TracebackType],
) -> None:
    """sys.excepthook: record the fault; Python exits with status 1 afterwards."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.critical("UNCAUGHT EXCEPTION! Shutting down...", exc_info=(exc_type, exc, tb))


class ProcessSupervisor:
    """
    Owns the uvicorn server for the lifetime of the process.

    Args:
        server: The uvicorn.Server to run.
    """

    def __init__(self, server: uvicorn.Server):
        self.server = server
        self.exit_code = 0

    def handle_async_failure(
        self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]
    ) -> None:
        """Event-loop exception handler: log, then drain and stop."""
        exc = context.get("exception")
        logger.critical(
            "UNHANDLED ASYNC FAILURE! Shutting down... %s",
            context.get("message", ""),
            exc_info=exc,
        )
        self.exit_code = 1
        self.server.should_exit = True

    async def serve(self) -> int:
        asyncio.get_running_loop().set_exception_handler(self.handle_async_failure)
        await self.server.serve()
        return self.exit_code


def build_server() -> uvicorn.Server:
    config = uvicorn.Config(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
    return uvicorn.Server(config)


def run() -> None:
    """Entry point for `python -m app`."""
    setup_logging()
    sys.excepthook = log_uncaught_exception

    supervisor = ProcessSupervisor(build_server())
    exit_code = asyncio.run(supervisor.serve())
    if exit_code:
        logger.info("Exiting with status %d.", exit_code)
    sys.exit(exit_code)
