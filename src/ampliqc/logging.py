"""Logging setup for ampliqc.

Log records of the main process and of the worker processes are pickled
over a local TCP socket to a listener thread. The listener writes them to
the terminal and, when requested, to a log file, so that the output of
concurrent samples never interleaves mid-line.

Copyright © 2025 Pixelgen Technologies AB.
"""

import logging
import pickle
import socketserver
import struct
import sys
import threading
import traceback
from logging.handlers import SocketHandler
from pathlib import Path
from typing import Optional

import click

from ampliqc.types import PathType

LOCALHOST = "localhost"
LISTENER_LOGGER = "ampliqc-log-listener"
LOG_FILE_FORMAT = "%(asctime)s %(processName)-10s %(name)s %(levelname)-8s %(message)s"

# exceptions that click reports itself
HANDLED_BY_CLICK = (click.exceptions.ClickException, click.exceptions.Exit, SystemExit)

# cutadapt reports every modifier it sets up at info level
logging.getLogger("cutadapt").setLevel(logging.WARNING)


class ConsoleFormatter(logging.Formatter):
    """Format records for the terminal.

    Info records are printed as they are and other levels get a level
    prefix. In verbose mode every line starts with a timestamp and the
    colored level name.
    """

    LEVEL_COLORS = {"DEBUG": "blue", "INFO": "green", "WARNING": "yellow"}

    def __init__(self, verbose: bool = False):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.verbose = verbose

    def format(self, record: logging.LogRecord) -> str:
        if record.exc_info:
            return super().format(record)

        msg = record.getMessage()
        level = record.levelname
        if not self.verbose:
            return msg if level == "INFO" else f"{level}: {msg}"

        styled = click.style(f"{level:<10}", fg=self.LEVEL_COLORS.get(level, "red"))
        prefix = f"{self.formatTime(record, self.datefmt)} [{styled}]  "
        return "\n".join(prefix + line for line in msg.splitlines())


class ClickHandler(logging.Handler):
    """Write records to the terminal with `click.echo`."""

    def __init__(self, level: int = logging.NOTSET, err: bool = True):
        super().__init__(level=level)
        self.err = err

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=self.err)
        except Exception:
            self.handleError(record)


class _RecordStreamHandler(socketserver.BaseRequestHandler):
    """Read the records sent by one `SocketHandler` connection."""

    # seconds between checks of the stop flag while a connection is idle
    poll_interval = 1.0

    def _recv(self, size: int) -> bytes:
        data = b""
        while len(data) < size:
            chunk = self.request.recv(size - len(data))
            if not chunk:
                break
            data += chunk
        return data

    def handle(self) -> None:
        self.request.settimeout(self.poll_interval)
        logger = logging.getLogger(LISTENER_LOGGER)
        while True:
            try:
                header = self._recv(4)
            except TimeoutError:
                if self.server.stopping.is_set():
                    return
                continue
            if len(header) < 4:
                return
            (size,) = struct.unpack(">L", header)
            payload = self._recv(size)
            logger.handle(logging.makeLogRecord(pickle.loads(payload)))


class LogListener(socketserver.ThreadingTCPServer):
    """Receive pickled log records on a local port.

    `serve_forever` runs in its own thread and `stop` must be called from
    another one. Stopping waits for the open connections to drain, so no
    record sent before the senders closed is lost.
    """

    allow_reuse_address = True
    daemon_threads = False
    block_on_close = True

    def __init__(
        self, handlers: list[logging.Handler], host: str = LOCALHOST, port: int = 0
    ):
        self.stopping = threading.Event()
        logger = logging.getLogger(LISTENER_LOGGER)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.handlers = list(handlers)
        super().__init__((host, port), _RecordStreamHandler)

    @property
    def port(self) -> int:
        return self.server_address[1]

    def stop(self) -> None:
        self.stopping.set()
        self.shutdown()
        self.server_close()
        logger = logging.getLogger(LISTENER_LOGGER)
        for handler in logger.handlers:
            handler.flush()
            handler.close()
        logger.handlers = []


class LoggingSetup:
    """Route the log records of ampliqc and its worker processes.

    Used as a context manager around a command. The root logger sends its
    records to a :class:`LogListener`, and worker processes attach to the
    same listener through `port`, see
    :func:`ampliqc.utils.get_process_pool_executor`. An exception escaping
    the command is written to the log before the listener stops.
    """

    def __init__(
        self,
        log_file: Optional[PathType] = None,
        verbose: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the logging setup.

        :param log_file: also write the records to this file
        :param verbose: log debug records and timestamp the console output
        :param logger: the logger to configure, default is the root logger
        """
        self.log_file = Path(log_file) if log_file is not None else None
        self.verbose = verbose
        self.port: Optional[int] = None
        self._logger = logger or logging.getLogger()
        self._listener: Optional[LogListener] = None
        self._thread: Optional[threading.Thread] = None
        self._socket_handler: Optional[SocketHandler] = None

    @property
    def log_level(self) -> int:
        """Return the level of the configured logger."""
        return self._logger.level

    def _handlers(self) -> list[logging.Handler]:
        console = ClickHandler()
        console.setFormatter(ConsoleFormatter(verbose=self.verbose))
        handlers: list[logging.Handler] = [console]
        if self.log_file is not None:
            file_handler = logging.FileHandler(self.log_file, mode="w")
            file_handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT))
            handlers.append(file_handler)
        return handlers

    def initialize(self) -> None:
        """Start the listener and attach the logger to it."""
        self._listener = LogListener(self._handlers())
        self.port = self._listener.port
        self._thread = threading.Thread(
            target=self._listener.serve_forever, name=LISTENER_LOGGER, daemon=True
        )
        self._thread.start()

        self._socket_handler = SocketHandler(LOCALHOST, self.port)
        self._logger.addHandler(self._socket_handler)
        self._logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

    def close(self) -> None:
        """Detach the logger and stop the listener."""
        if self._socket_handler is not None:
            self._logger.removeHandler(self._socket_handler)
            self._socket_handler.close()
            self._socket_handler = None
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
        if self._thread is not None:
            self._thread.join(timeout=1)
            self._thread = None

    def log_exception(self, exc_type, exc_value, tb) -> None:
        """Write an unhandled exception and its traceback to the log."""
        self._logger.critical("Unhandled exception of type: %s", exc_type.__name__)
        self._logger.critical("Exception message was: %s", exc_value)
        text = "".join(traceback.format_exception(exc_type, exc_value, tb))
        for line in text.splitlines():
            self._logger.critical(line)

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_value, tb):
        # click closes its resources without passing on the active exception
        if exc_type is None:
            exc_type, exc_value, tb = sys.exc_info()
        try:
            if exc_type is not None and not issubclass(exc_type, HANDLED_BY_CLICK):
                self.log_exception(exc_type, exc_value, tb)
        finally:
            self.close()
        return False
