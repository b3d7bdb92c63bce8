import logging
import queue
import threading
from typing import Any, Iterator, Optional

from ..errors import Error
from .parser import LineReader, LogRecord, PrefixPattern, SlowLogParser

logger = logging.getLogger(__name__)

# Marks the end of the record channel.
_CLOSED = object()


class Scanner:
    """Scan a log stream in a background thread.

    Records are handed over to the consumer one at a time: the scanning
    thread waits for the consumer to take a record before queuing the next
    one.

    .. code-block:: python

        scanner = open_scanner(fo, "%m [%p] ")
        scanner.start()
        for record in scanner:
            ...

    :meth:`start` then iteration is the only way to scan: records are
    handed over to another thread. Iterating the scanner raises the error
    which aborted the scan, if any, once all records emitted before it are
    consumed. Drain a scanner from a single thread.

    :param parser: A :class:`SlowLogParser` instance.
    :param fo: The stream to scan.

    .. attribute:: error

        Exception which aborted the scan, or ``None``.
    """

    def __init__(self, parser: SlowLogParser, fo: LineReader) -> None:
        self.parser = parser
        self.fo = fo
        self.error: Optional[Exception] = None
        self._channel: "queue.Queue[Any]" = queue.Queue(maxsize=1)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    def __repr__(self) -> str:
        return "<%s '%s' %d bytes>" % (
            self.__class__.__name__,
            self.parser.prefix.prefix_fmt,
            self.read_bytes,
        )

    def __enter__(self) -> "Scanner":
        self.start()
        return self

    def __exit__(self, *a: Any) -> None:
        self.close()

    @property
    def read_bytes(self) -> int:
        """Number of bytes read from the stream so far."""
        return self.parser.read_bytes

    def start(self) -> threading.Thread:
        """Start scanning in a daemon thread."""
        if self._thread is not None:
            raise RuntimeError("scanner already started")
        self._thread = threading.Thread(
            target=self._run, name="pgslowlog-scanner", daemon=True
        )
        self._thread.start()
        return self._thread

    def _run(self) -> None:
        # Body of the scanning thread. Blocks on each record until the
        # consumer takes it. The channel is closed in any case.
        try:
            for record in self.parser.parse(self.fo, stop=self._stop):
                self._channel.put(record)
        except Error as e:
            logger.error("Scan aborted: %s", e)
            self.error = e
        except Exception as e:
            logger.exception("Unexpected error while scanning:")
            self.error = e
        finally:
            self._channel.put(_CLOSED)

    def stop(self) -> None:
        """Request scan to end.

        The scanning thread checks for this request before reading each line,
        then emits the pending record, if any, and closes the channel.
        """
        logger.debug("Stopping %r.", self)
        self._stop.set()

    def records(self) -> Iterator[LogRecord]:
        """Yield records until scan ends."""
        while not self._closed:
            item = self._channel.get()
            if item is _CLOSED:
                self._closed = True
                break
            yield item
        if self.error is not None:
            raise self.error

    __iter__ = records

    def close(self) -> None:
        """Stop scanning, discard pending records and wait for the thread."""
        self.stop()
        if self._thread is None:
            return
        while not self._closed:
            self._closed = self._channel.get() is _CLOSED
        self._thread.join()


def open_scanner(
    fo: LineReader, log_line_prefix: str, encoding: str = "utf-8"
) -> Scanner:
    """Build a :class:`Scanner` for ``fo``.

    :param fo: A file-like object, preferably opened in binary mode.
    :param log_line_prefix: ``log_line_prefix`` PostgreSQL setting.
    :raises CompileError: if ``log_line_prefix`` is invalid.
    """
    prefix = PrefixPattern.from_configuration(log_line_prefix)
    return Scanner(SlowLogParser(prefix, encoding), fo)
