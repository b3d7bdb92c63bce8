import logging
import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import (
    Dict,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Pattern,
    Union,
)

from typing_extensions import Protocol

from ..errors import CompileError, DurationParseError, ReadError

logger = logging.getLogger(__name__)

NS_PER_MS = 1000000

# Message following the prefix of a line logged by log_min_duration_statement.
SLOWLOG_PAT = (
    r"LOG:\s+duration:\s+(?P<duration>[0-9.]+)\s+ms\s+"
    r"(?:statement|execute \S+):\s+(?P<statement>.*)"
)


class LineReader(Protocol):
    def readline(self) -> Union[bytes, str]:
        ...


class StopFlag(Protocol):
    def is_set(self) -> bool:
        ...


def parse_duration(raw: str) -> int:
    """Convert a duration in milliseconds, as logged, to nanoseconds.

    >>> parse_duration("1009.444")
    1009444000
    """
    try:
        ms = Decimal(raw)
    except InvalidOperation:
        raise ValueError("%r is not a duration" % raw)
    if not ms.is_finite():
        raise ValueError("%r is not a duration" % raw)
    return int(ms * NS_PER_MS)


class PrefixPattern:
    """Regular expression matching the prefix of log lines.

    .. automethod:: from_configuration
    """

    # cf.
    # https://www.postgresql.org/docs/current/static/runtime-config-logging.html#GUC-LOG-LINE-PREFIX

    _datetime_pat = r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d+)? [A-Za-z0-9+-]+"
    _tokens: Mapping[str, str] = MappingProxyType(
        {
            # Application name
            "%a": r"\S*",
            # User name
            "%u": r"\S*",
            # Database name
            "%d": r"\S*",
            # Remote host name or IP address, and remote port
            "%r": r"\S*",
            # Remote host name or IP address
            "%h": r"\S*",
            # Backend type
            "%b": r"(?:\S+|\S+ \S+|\S+ \S+ \S+)",
            # Process ID
            "%p": r"\d+",
            # Process ID of the parallel group leader
            "%P": r"\d*",
            # Time stamp without milliseconds
            "%t": _datetime_pat,
            # Time stamp with milliseconds
            "%m": _datetime_pat,
            # Time stamp with milliseconds (as a Unix epoch)
            "%n": r"\d+(?:\.\d*)?",
            # Command tag: type of session's current command
            "%i": r"\S*",
            # SQLSTATE error code
            "%e": r"\S+",
            # Session ID
            "%c": r"\S+",
            # Number of the log line for each session or process, starting at 1
            "%l": r"\d+",
            # Process start time stamp
            "%s": _datetime_pat,
            # Virtual transaction ID (backendID/localXID)
            "%v": r"\S*",
            # Transaction ID (0 if none is assigned)
            "%x": r"\S+",
            # Query identifier, signed 64 bits
            "%Q": r"-?\d*",
            # Literal %
            "%%": "%",
        }
    )
    # re to search for %… in log_line_prefix.
    _token_re = re.compile(r"%(.)", re.DOTALL)

    @classmethod
    def mkpattern(cls, prefix: str) -> str:
        # Builds a pattern from literal text and known escapes. Literal
        # segments are escaped one by one so that escaping never sees a
        # token. Everything after %q is missing from non-session processes
        # lines and thus optional.
        segments = cls._token_re.split(prefix)
        fixed: List[str] = []
        optional: Optional[List[str]] = None
        for i, segment in enumerate(segments):
            out = fixed if optional is None else optional
            if not i % 2:
                out.append(re.escape(segment))
            elif segment == "q":
                if optional is None:
                    optional = []
            else:
                token = "%" + segment
                out.append(cls._tokens.get(token, re.escape(token)))

        pattern = "".join(fixed)
        if optional:
            pattern += "(?:" + "".join(optional) + ")?"
        return pattern

    @classmethod
    def from_configuration(cls, log_line_prefix: str) -> "PrefixPattern":
        """Factory from log_line_prefix

        :param log_line_prefix: ``log_line_prefix`` PostgreSQL setting.
        :return: A :class:`PrefixPattern` instance.
        :raises CompileError: if the resulting pattern is invalid.
        """
        pattern = cls.mkpattern(log_line_prefix)
        return cls(cls.compile(log_line_prefix, pattern), log_line_prefix)

    @staticmethod
    def compile(prefix_fmt: str, pattern: str) -> Pattern[str]:
        try:
            return re.compile(pattern)
        except re.error as e:
            raise CompileError(prefix_fmt, str(e)) from e

    def __init__(self, re_: Pattern[str], prefix_fmt: Optional[str] = None) -> None:
        self.re_ = re_
        self.prefix_fmt = prefix_fmt

    def __repr__(self) -> str:
        return "<%s '%s'>" % (self.__class__.__name__, self.prefix_fmt)

    @property
    def pattern(self) -> str:
        return self.re_.pattern

    def match(self, line: str) -> bool:
        """Tells whether *line* starts a new log record."""
        return self.re_.match(line) is not None

    def extend(self, suffix: str) -> Pattern[str]:
        """Compile prefix pattern followed by *suffix* pattern."""
        return self.compile(self.prefix_fmt or self.pattern, self.pattern + suffix)


class LogRecord(NamedTuple):
    """A slow query extracted from log.

    .. attribute:: duration

        Query duration, in nanoseconds.

    .. attribute:: statement

        SQL text, continuation lines joined with ``\\n``.

    .. attribute:: read_bytes

        Number of bytes of the log lines holding this record.
    """

    duration: int
    statement: str
    read_bytes: int = 0

    def __repr__(self) -> str:
        return "<%s %s ms: %.32s...>" % (
            self.__class__.__name__,
            self.duration_ms,
            self.statement.replace("\n", " "),
        )

    @property
    def duration_ms(self) -> float:
        return self.duration / NS_PER_MS

    def as_timedelta(self) -> timedelta:
        """Returns duration as a :class:`datetime.timedelta`.

        timedelta resolution is the microsecond: remaining nanoseconds are
        truncated.
        """
        return timedelta(microseconds=self.duration // 1000)

    def as_dict(self) -> Dict[str, Union[int, float, str]]:
        """Returns record fields as a :class:`dict`."""
        return dict(
            duration=self.duration,
            duration_ms=self.duration_ms,
            statement=self.statement,
            read_bytes=self.read_bytes,
        )


class _RecordBuilder:
    # Record being accumulated, until next prefixed line or end of stream.

    __slots__ = ("duration", "lines", "read_bytes")

    def __init__(self, duration: int, statement: str, read_bytes: int) -> None:
        self.duration = duration
        self.lines = [statement]
        self.read_bytes = read_bytes

    def append(self, line: str, read_bytes: int) -> None:
        if line.startswith("\t"):
            line = line[1:]
        self.lines.append(line)
        self.read_bytes += read_bytes

    def finalize(self) -> LogRecord:
        statement = "\n".join(self.lines).rstrip("\n")
        return LogRecord(self.duration, statement, self.read_bytes)


class SlowLogParser:
    """Slow query log scanning logic.

    Scans a stream line by line. A line matching the prefix pattern starts a
    new record, other lines continue the current one. Since PostgreSQL does
    not terminate statements, a record is emitted only when the next prefixed
    line comes or the stream ends.

    :param prefix: A :class:`PrefixPattern` instance.
    :param encoding: Encoding of the log, for bytes streams.

    .. attribute:: read_bytes

        Number of bytes read so far, including lines not belonging to any
        record.
    """

    def __init__(self, prefix: PrefixPattern, encoding: str = "utf-8") -> None:
        self.prefix = prefix
        self.encoding = encoding
        self.slowlog_re = prefix.extend(r"\s*" + SLOWLOG_PAT)
        self.read_bytes = 0

    def __repr__(self) -> str:
        return "<%s '%s'>" % (self.__class__.__name__, self.prefix.prefix_fmt)

    def readline(self, fo: LineReader) -> Optional[str]:
        # Read and decode one line, accounting its size. Returns None on end
        # of stream.
        try:
            raw = fo.readline()
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(str(e)) from e
        if not raw:
            return None

        if isinstance(raw, bytes):
            self.read_bytes += len(raw)
            line = raw.decode(self.encoding, errors="replace")
        else:
            self.read_bytes += len(raw.encode(self.encoding, errors="replace"))
            line = raw

        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
        return line

    def parse(
        self, fo: LineReader, stop: Optional[StopFlag] = None
    ) -> Iterator[LogRecord]:
        """Yield :class:`LogRecord` from file-like object ``fo``.

        :param fo: An object with a ``readline()`` method, preferably
            returning bytes.
        :param stop: An object like :class:`threading.Event`. Once set,
            pending record is yielded and parsing ends.
        :raises ReadError: if reading ``fo`` fails.
        :raises DurationParseError: if a duration is not a number.
        """
        # Fast access variables to avoid attribute access overhead on each
        # line.
        match_prefix = self.prefix.re_.match
        match_slowlog = self.slowlog_re.match
        readline = self.readline

        current: Optional[_RecordBuilder] = None
        lineno = 0
        while True:
            if stop is not None and stop.is_set():
                logger.debug("Stop requested after line %d.", lineno)
                break

            start = self.read_bytes
            line = readline(fo)
            if line is None:
                break
            lineno += 1
            size = self.read_bytes - start

            if match_prefix(line) is None:
                # Lines before the first record are dropped.
                if current is not None:
                    current.append(line, size)
                continue

            if current is not None:
                yield current.finalize()
                current = None

            m = match_slowlog(line)
            if m is None:
                continue

            try:
                duration = parse_duration(m.group("duration"))
            except ValueError as e:
                raise DurationParseError(lineno, line, str(e)) from e
            current = _RecordBuilder(duration, m.group("statement"), size)

        if current is not None:
            yield current.finalize()
        logger.debug("Read %d lines, %d bytes.", lineno, self.read_bytes)


def parse(
    fo: LineReader, prefix_fmt: str, encoding: str = "utf-8"
) -> Iterator[LogRecord]:
    """Parses log lines and yield :class:`LogRecord` objects.

    This is a helper around :class:`SlowLogParser` and
    :class:`PrefixPattern`.

    :param fo: A file-like object, preferably opened in binary mode.
    :param prefix_fmt: is exactly the value of ``log_line_prefix`` Postgresql
        settings.
    :raises CompileError: immediately, if ``prefix_fmt`` is invalid.
    """
    parser = SlowLogParser(PrefixPattern.from_configuration(prefix_fmt), encoding)
    return parser.parse(fo)
