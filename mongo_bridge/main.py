import asyncio
import logging
import signal
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional, TextIO

from pydantic import ValidationError

from .config import BridgeConfig
from .dispatcher import Dispatcher
from .protocol import LineProtocol
from .services.mongo import MongoGateway
from .utils import redact_uri

logger = logging.getLogger("mongo_bridge")


def setup_logging(config: BridgeConfig) -> None:
    logger.setLevel(config.log_level.upper())
    if logger.handlers:
        return
    # stdout carries responses only; diagnostics go to stderr
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        handlers.append(RotatingFileHandler(config.log_file, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)


async def serve(
    config: BridgeConfig,
    gateway: Optional[MongoGateway] = None,
    reader: Optional[TextIO] = None,
    writer: Optional[TextIO] = None,
) -> int:
    """Run the bridge until EOF or SIGTERM/SIGINT; return the exit status."""
    if gateway is None:
        gateway = MongoGateway.from_config(config)
    try:
        await gateway.connect()
    except Exception:
        logger.exception("MongoDB connection error (%s)", redact_uri(config.uri))
        try:
            await gateway.close()
        except Exception as e:
            logger.warning("Error closing client after failed startup: %s", e)
        return 1

    dispatcher = Dispatcher(gateway, config.default_db)
    protocol = LineProtocol(
        dispatcher,
        reader or sys.stdin,
        writer or sys.stdout,
        ordered=config.ordered,
        request_timeout=config.request_timeout,
    )

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    installed = []
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            logger.debug("Cannot install handler for %s", sig)

    serve_task = asyncio.create_task(protocol.serve())
    stop_task = asyncio.create_task(stop.wait())
    await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    if stop.is_set():
        logger.info("Received termination signal, shutting down")
    for task in (serve_task, stop_task):
        if not task.done():
            task.cancel()
    await asyncio.gather(serve_task, stop_task, return_exceptions=True)
    if not serve_task.cancelled() and serve_task.exception() is not None:
        logger.error("Input loop failed: %s", serve_task.exception())
    for sig in installed:
        loop.remove_signal_handler(sig)

    # EOF lets in-flight requests finish; a signal bounds the wait
    await protocol.shutdown(config.shutdown_grace if stop.is_set() else None)
    try:
        await gateway.close()
    except Exception:
        logger.exception("Error during shutdown")
        return 1
    return 0


def run() -> None:
    try:
        config = BridgeConfig.from_env()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    setup_logging(config)
    sys.exit(asyncio.run(serve(config)))


if __name__ == "__main__":
    run()
