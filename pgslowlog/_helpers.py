import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any, Iterator, Optional, Union


def strtobool(value: str) -> bool:
    # Same truth values as distutils.util.strtobool, which is gone since
    # Python 3.12.
    value = value.lower()
    if value in ("y", "yes", "t", "true", "on", "1"):
        return True
    elif value in ("n", "no", "f", "false", "off", "0"):
        return False
    raise ValueError("invalid truth value %r" % value)


def open_or_stdin(filename: str, stdin: Optional[IO[bytes]] = None) -> IO[bytes]:
    # Log files are read as bytes to count consumed bytes exactly.
    if filename == "-":
        fo = stdin if stdin is not None else sys.stdin.buffer
    else:
        fo = open(filename, "rb")
    return fo


@contextmanager
def open_or_return(fo_or_path: Union[str, Path, IO[str]]) -> Iterator[IO[str]]:
    # A path is opened for reading and closed on exit, a file-object is kept
    # open.
    if isinstance(fo_or_path, (str, Path)):
        with open(fo_or_path) as fo:
            yield fo
    else:
        yield fo_or_path


class Timer:
    """Measure wall time of a block, in seconds."""

    def __enter__(self) -> "Timer":
        self.start = time.monotonic()
        self.elapsed = 0.0
        return self

    def __exit__(self, *a: Any) -> None:
        self.elapsed = time.monotonic() - self.start
