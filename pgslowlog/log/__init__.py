"""\
.. currentmodule:: pgslowlog.log

With ``log_min_duration_statement`` set, PostgreSQL logs every statement
running longer than the threshold along with its duration. :mod:`pgslowlog.log`
extracts these slow queries from a log stream, as it is written.


Configuration
-------------

Postgres log records have a prefix, configured with ``log_line_prefix`` cluster
setting. The scanner needs this value to tell a new record from the
continuation of a multi-line statement. :func:`pgslowlog.conf.parse` can read
it from ``postgresql.conf``.


Streaming
---------

A statement has no terminator in logs: a record is complete only when the next
prefixed line shows up or when the stream ends. :class:`Scanner` reads the
stream in a thread and hands records one by one to the consumer. Each record
knows how many bytes of log it spans, and the scanner counts every byte read,
so that an application can save an offset and resume scanning later.

Lines with a matching prefix but another message, like checkpoint or
connection messages, are ignored. So are lines before the first record.


API Reference
-------------

.. autofunction:: open_scanner
.. autofunction:: parse
.. autoclass:: Scanner
.. autoclass:: SlowLogParser
.. autoclass:: PrefixPattern
.. autoclass:: LogRecord


Example
-------

.. code-block:: python

    with open('postgresql.log', 'rb') as fo:
        with open_scanner(fo, '%m [%p] ') as scanner:
            for record in scanner:
                print(record.duration_ms, record.statement)


Using :mod:`pgslowlog.log` as a script
--------------------------------------

You can use this module to dump slow queries as JSON using the following
usage::

    python -m pgslowlog.log [--config <postgresql.conf>] [--offset <bytes>] [<log_line_prefix>] [<filename>]

.. code:: console

    $ python -m pgslowlog.log '%m [%p] ' data/postgresql.log
    {"duration": 1009444000, "duration_ms": 1009.444, "statement": "SELECT\\npg_sleep(1)", "read_bytes": 93}
    {"duration": 1002257000, "duration_ms": 1002.257, "statement": "SELECT * FROM users;", "read_bytes": 94}

"""  # noqa

from .parser import (
    LogRecord,
    PrefixPattern,
    SlowLogParser,
    parse,
)
from .scanner import Scanner, open_scanner


__all__ = [
    o.__name__  # type: ignore[attr-defined]
    for o in [
        LogRecord,
        PrefixPattern,
        Scanner,
        SlowLogParser,
        open_scanner,
        parse,
    ]
]
