from __future__ import annotations


class Error(Exception):
    """Base class for pgslowlog errors."""


class ParseError(Error):
    def __init__(self, lineno: int, line: str, message: str) -> None:
        self.message = message
        super().__init__(self.message)
        self.lineno = lineno
        self.line = line

    def __repr__(self) -> str:
        return "<%s at line %d: %.32s>" % (
            self.__class__.__name__,
            self.lineno,
            self.message,
        )

    def __str__(self) -> str:
        return "Bad line #{} '{:.32}': {}".format(
            self.lineno,
            self.line.strip(),
            self.message,
        )


class DurationParseError(ParseError):
    """A slow query line carries a duration which is not a number."""


class CompileError(Error):
    """log_line_prefix can't be turned into a regular expression."""

    def __init__(self, prefix_fmt: str, message: str) -> None:
        self.prefix_fmt = prefix_fmt
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return "Invalid log_line_prefix {!r}: {}".format(self.prefix_fmt, self.message)


class ReadError(Error):
    """Reading the log stream failed."""
