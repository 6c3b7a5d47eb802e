"""Line-oriented stdio transport.

One JSON request per input line, exactly one JSON response line per
request, nothing else ever written to the protocol stream. Requests are
handled strictly one at a time, so responses come out in input order.
"""

import asyncio
import signal
import sys
from typing import Any, Awaitable, Callable, TextIO

from loguru import logger

from sqlapigate.api.rpc.protocol import INTERNAL_ERROR, PARSE_ERROR, encode_response, error_response, rpc_error

# Longest request line accepted by the pipe reader.
MAX_LINE_BYTES = 16 * 1024 * 1024

ReadLine = Callable[[], Awaitable[str | None]]
WriteLine = Callable[[str], Any]


class LineTooLongError(ValueError):
    """An input line exceeded MAX_LINE_BYTES."""


async def _emit(write_line: WriteLine, text: str) -> None:
    outcome = write_line(text)
    if asyncio.iscoroutine(outcome):
        await outcome


async def run_stdio_loop(dispatcher: Any, read_line: ReadLine, write_line: WriteLine) -> int:
    """Serve requests until EOF. Returns the number of responses written.

    ``read_line`` returns the next line (or None at EOF) and raises
    LineTooLongError for a line over the length limit.
    """
    written = 0
    while True:
        try:
            line = await read_line()
        except LineTooLongError as e:
            logger.warning("Request line rejected: {}", e)
            await _emit(
                write_line,
                encode_response(error_response(None, rpc_error(PARSE_ERROR, "Request line exceeds maximum length"))),
            )
            written += 1
            continue

        if line is None:
            logger.info("EOF received on stdin. Shutting down.")
            return written
        if not line.strip():
            continue

        try:
            response = await dispatcher.handle_line(line)
        except Exception as e:
            logger.exception("Error processing request: {}", e)
            response = error_response(None, rpc_error(INTERNAL_ERROR, "Internal error"))
        if response is None:
            continue
        await _emit(write_line, encode_response(response))
        written += 1


async def _discard_rest_of_line(reader: asyncio.StreamReader) -> None:
    """Drop buffered and incoming bytes up to and including the next newline."""
    while True:
        try:
            await reader.readuntil(b"\n")
            return
        except asyncio.LimitOverrunError as e:
            await reader.readexactly(e.consumed)
        except asyncio.IncompleteReadError:
            return


async def _open_pipe_reader(stdin: TextIO) -> ReadLine | None:
    """Non-blocking reader over a pipe/tty stdin; None when stdin is not pipe-like."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, stdin)
    except (ValueError, OSError, NotImplementedError) as e:
        logger.debug("stdin pipe reader unavailable ({}); using thread reader", e)
        return None

    async def read_line() -> str | None:
        try:
            data = await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            data = e.partial
        except asyncio.LimitOverrunError as e:
            # The tail of the line must not be read as a request of its own.
            await _discard_rest_of_line(reader)
            raise LineTooLongError(str(e)) from e
        if not data:
            return None
        return data.decode("utf-8", errors="replace")

    return read_line


def _thread_reader(stdin: TextIO) -> ReadLine:
    """Blocking reader for stdin that is not pipe-like (e.g. a redirected file)."""
    raw = getattr(stdin, "buffer", None)

    def _read() -> str | None:
        if raw is None:
            return stdin.readline() or None
        data = raw.readline(MAX_LINE_BYTES + 1)
        if not data:
            return None
        if len(data) > MAX_LINE_BYTES and not data.endswith(b"\n"):
            while True:
                rest = raw.readline(MAX_LINE_BYTES)
                if not rest or rest.endswith(b"\n"):
                    break
            raise LineTooLongError(f"line longer than {MAX_LINE_BYTES} bytes")
        return data.decode("utf-8", errors="replace")

    async def read_line() -> str | None:
        return await asyncio.to_thread(_read)

    return read_line


def _stream_writer(stdout: TextIO) -> WriteLine:
    def write_line(text: str) -> None:
        stdout.write(text + "\n")
        stdout.flush()

    return write_line


async def serve_stdio(dispatcher: Any, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    """Run the stdio transport on real streams until EOF or SIGINT/SIGTERM.

    ``stdout`` must be the protocol stream captured before any rebinding of
    ``sys.stdout``.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    read_line = await _open_pipe_reader(stdin) or _thread_reader(stdin)

    loop = asyncio.get_running_loop()
    loop_task = asyncio.create_task(run_stdio_loop(dispatcher, read_line, _stream_writer(stdout)))
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, loop_task.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError, ValueError):
            pass

    logger.info("stdio transport ready. Reading from stdin...")
    try:
        return await loop_task
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if current is not None and current.cancelling():
            raise
        logger.info("stdio transport shutting down due to cancellation.")
        return 0
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
