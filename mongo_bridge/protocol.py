"""
Newline-delimited JSON request/response loop.

Each input line is handled by its own asyncio task and yields exactly one
output line, ``{"result": ...}`` or ``{"error": "..."}``. Lines are read in
arrival order. Responses are written as soon as they are ready, so a fast
request can overtake a slow one; pass ``ordered=True`` to write responses in
arrival order instead.
"""

import asyncio
import json
import logging
import threading
from typing import IO, Any, Dict, Optional, Set, Union

from pymongo.errors import PyMongoError

from .errors import BridgeError
from .schemas import parse_command
from .utils import to_jsonable

logger = logging.getLogger(__name__)


class LineProtocol:
    def __init__(
        self,
        dispatcher: Any,
        reader: IO,
        writer: IO,
        *,
        ordered: bool = False,
        request_timeout: Optional[float] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._reader = reader
        self._writer = writer
        self._ordered = ordered
        self._request_timeout = request_timeout or None
        self._in_flight: Set[asyncio.Task] = set()
        self._lines: Optional[asyncio.Queue] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._writer_task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def handle_line(self, line: Union[str, bytes]) -> Dict[str, Any]:
        """Decode, validate and dispatch one line into a response envelope."""
        try:
            if isinstance(line, bytes):
                # Undecodable bytes fail this line only
                line = line.decode("utf-8")
            command = parse_command(json.loads(line))
            if self._request_timeout:
                result = await asyncio.wait_for(self._dispatcher.dispatch(command), self._request_timeout)
            else:
                result = await self._dispatcher.dispatch(command)
        except asyncio.TimeoutError:
            logger.warning("Request timed out after %ss: %.200s", self._request_timeout, line)
            return {"error": f"Request timed out after {self._request_timeout:g}s"}
        except (ValueError, BridgeError, PyMongoError) as e:
            # JSONDecodeError and UnicodeDecodeError are ValueErrors
            logger.warning("Error processing request: %s", e)
            return {"error": str(e)}
        except Exception as e:
            logger.exception("Unexpected error processing request")
            return {"error": str(e) or type(e).__name__}
        return {"result": to_jsonable(result)}

    @staticmethod
    def encode(envelope: Dict[str, Any]) -> str:
        try:
            return json.dumps(envelope, default=str, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            logger.exception("Could not encode response")
            return json.dumps({"error": f"Could not encode response: {e}"}, separators=(",", ":"))

    async def serve(self) -> None:
        """Read lines until EOF, starting one task per line."""
        loop = asyncio.get_running_loop()
        self._lines = asyncio.Queue()
        if self._ordered:
            self._outbox = asyncio.Queue()
            self._writer_task = asyncio.create_task(self._write_in_order())
        self._start_reader(loop, self._lines)

        while True:
            line = await self._lines.get()
            if line is None:
                logger.info("Input closed")
                return
            self._submit(line.rstrip(b"\r\n" if isinstance(line, bytes) else "\r\n"))

    async def shutdown(self, grace: Optional[float] = None) -> None:
        """Give in-flight requests ``grace`` seconds (None: no limit) to finish, then cancel the rest."""
        pending = set(self._in_flight)
        if pending:
            logger.info("Waiting for %d in-flight request(s)", len(pending))
            _, pending = await asyncio.wait(pending, timeout=grace)
        if pending:
            logger.warning("Cancelling %d request(s) still running at shutdown", len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        if self._writer_task is not None:
            self._outbox.put_nowait(None)
            await self._writer_task
            self._writer_task = None

    def _submit(self, line: Union[str, bytes]) -> None:
        if self._ordered:
            task = asyncio.create_task(self._respond(line))
            self._outbox.put_nowait(task)
        else:
            task = asyncio.create_task(self._respond_and_write(line))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _respond(self, line: Union[str, bytes]) -> str:
        return self.encode(await self.handle_line(line))

    async def _respond_and_write(self, line: Union[str, bytes]) -> None:
        self._write(await self._respond(line))

    async def _write_in_order(self) -> None:
        while True:
            task = await self._outbox.get()
            if task is None:
                return
            await asyncio.wait({task})
            if task.cancelled():
                continue
            self._write(task.result())

    def _write(self, text: str) -> None:
        self._writer.write(text + "\n")
        self._writer.flush()

    def _start_reader(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
        # Blocking reads stay off the event loop; a daemon thread never holds up exit
        def post(item: Union[str, bytes, None]) -> bool:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, item)
                return True
            except RuntimeError:
                # Event loop already closed
                return False

        # Read raw bytes when the stream has them so decoding happens per line
        source = getattr(self._reader, "buffer", self._reader)

        def pump() -> None:
            try:
                while True:
                    line = source.readline()
                    if not line:
                        break
                    if not post(line):
                        return
            except (OSError, ValueError) as e:
                logger.error("Failed reading input: %s", e)
            post(None)

        threading.Thread(target=pump, name="line-reader", daemon=True).start()
