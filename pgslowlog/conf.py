"""\
.. currentmodule:: pgslowlog.conf

Minimal ``postgresql.conf`` reader. Scanning a log requires the
``log_line_prefix`` value used by the server writing it. This module reads it,
along with any other setting, from the configuration file.


API Reference
-------------

.. autofunction:: parse
.. autofunction:: parse_string
.. autofunction:: get_log_line_prefix
.. autoclass:: Configuration

"""

import pathlib
import re
from typing import IO, Dict, Iterable, Iterator, Optional, Union

from ._helpers import open_or_return
from .errors import ParseError

# Default value of log_line_prefix since PostgreSQL 10.
DEFAULT_LOG_LINE_PREFIX = "%m [%p] "

Value = Union[str, bool, float, int]


def parse(fo: Union[str, pathlib.Path, IO[str]]) -> "Configuration":
    """Parse a configuration file.

    Include directives are not followed.

    :param fo: A line iterator such as a file-like object or a path.
    :returns: A :class:`Configuration` containing parsed configuration.
    """
    with open_or_return(fo) as f:
        conf = Configuration(getattr(f, "name", None))
        conf.parse(f)
    return conf


def parse_string(string: str, source: Optional[str] = None) -> "Configuration":
    """Parse configuration data from a string."""
    conf = Configuration(source)
    conf.parse(string.splitlines(keepends=True))
    return conf


def get_log_line_prefix(conf: "Configuration") -> str:
    """Returns ``log_line_prefix`` from *conf* or PostgreSQL default."""
    value = conf.get("log_line_prefix")
    if value is None:
        return DEFAULT_LOG_LINE_PREFIX
    return str(value)


def parse_value(raw: str) -> Value:
    # Ref.
    # https://www.postgresql.org/docs/current/static/config-setting.html#CONFIG-SETTING-NAMES-VALUES

    if raw.startswith("'"):
        if len(raw) < 2 or not raw.endswith("'"):
            raise ValueError(raw)
        # Quoted values are always strings, even '5432'.
        return raw[1:-1].replace("''", "'").replace(r"\'", "'")

    if raw in ("true", "yes", "on"):
        return True
    elif raw in ("false", "no", "off"):
        return False
    try:
        return int(raw)
    except ValueError:
        try:
            return float(raw)
        except ValueError:
            return raw


class Configuration:
    r"""Holds settings read from a ``postgresql.conf``.

    >>> conf = parse_string("log_line_prefix = '%m [%p] '  # prefix\nport=5432\n")
    >>> conf["log_line_prefix"]
    '%m [%p] '
    >>> conf.port
    5432
    >>> conf.get("ssl", False)
    False

    .. attribute:: path

        Path of the parsed file, if any.
    """

    _parameter_re = re.compile(
        r"^(?P<name>[a-z_.0-9]+)(?: +(?!=)| *= *)"
        r"(?P<value>'(?:[^'\\]|\\.|'')*'|[^#\s]*)"
        r"\s*(?P<comment>#.*)?$"
    )

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        self.entries: Dict[str, Value] = {}

    def __repr__(self) -> str:
        return "<%s %s>" % (self.__class__.__name__, self.path or "(string)")

    def parse(self, fo: Iterable[str]) -> None:
        for lineno, raw_line in enumerate(fo, 1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            m = self._parameter_re.match(line)
            if not m:
                raise ParseError(lineno, raw_line, "malformed setting")
            try:
                value = parse_value(m.group("value"))
            except ValueError:
                raise ParseError(lineno, raw_line, "unterminated quoted value")
            # Last occurence wins, just like PostgreSQL.
            self.entries[m.group("name")] = value

    def __getattr__(self, name: str) -> Value:
        try:
            return self.__dict__["entries"][name]
        except KeyError:
            raise AttributeError(name)

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __getitem__(self, key: str) -> Value:
        return self.entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def get(self, key: str, default: Optional[Value] = None) -> Optional[Value]:
        return self.entries.get(key, default)

    def as_dict(self) -> Dict[str, Value]:
        return dict(self.entries)
