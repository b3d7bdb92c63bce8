import bdb
import json
import logging
import os
import pdb
import sys
from argparse import ArgumentParser
from typing import List, MutableMapping, Optional

from .. import conf
from .._helpers import Timer, open_or_stdin, strtobool
from .scanner import Scanner, open_scanner

logger = logging.getLogger(__name__)


def main(
    argv: List[str] = sys.argv[1:],
    environ: MutableMapping[str, str] = os.environ,
) -> int:
    debug = strtobool(environ.get("DEBUG", "n"))
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname).1s: %(message)s",
    )
    parser = ArgumentParser(prog="python -m pgslowlog.log")
    parser.add_argument(
        "-p",
        "--log-line-prefix",
        metavar="LOG_LINE_PREFIX",
        help="log_line_prefix as configured in PostgreSQL. "
        "default: read from --config or '%s'" % conf.DEFAULT_LOG_LINE_PREFIX,
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="POSTGRESQL_CONF",
        help="postgresql.conf to read log_line_prefix from.",
    )
    parser.add_argument(
        "--offset",
        type=int,
        default=0,
        metavar="BYTES",
        help="Start scanning at this offset. default: %(default)s",
    )
    parser.add_argument(
        "filename",
        nargs="?",
        default="-",
        metavar="FILENAME",
        help="Log filename or - for stdin. default: %(default)s",
    )
    args = parser.parse_args(argv)
    if args.offset and args.filename == "-":
        parser.error("--offset requires a log filename")

    counter = 0
    scanner: Optional[Scanner] = None
    try:
        log_line_prefix = args.log_line_prefix
        if log_line_prefix is None:
            if args.config:
                log_line_prefix = conf.get_log_line_prefix(conf.parse(args.config))
            else:
                log_line_prefix = conf.DEFAULT_LOG_LINE_PREFIX
        logger.debug("Using log_line_prefix '%s'.", log_line_prefix)

        with open_or_stdin(args.filename) as fo:
            if args.offset:
                fo.seek(args.offset)
            scanner = open_scanner(fo, log_line_prefix)
            with Timer() as timer, scanner:
                for record in scanner:
                    counter += 1
                    print(json.dumps(record.as_dict()))
        logger.info(
            "Parsed %d records up to offset %d in %.3fs.",
            counter,
            args.offset + scanner.read_bytes,
            timer.elapsed,
        )
    except (KeyboardInterrupt, bdb.BdbQuit):  # pragma: nocover
        if scanner is not None:
            logger.info("Interrupted at offset %d.", args.offset + scanner.read_bytes)
        else:
            logger.info("Interrupted.")
        return 1
    except Exception:
        logger.exception("Unhandled error:")
        if debug:  # pragma: nocover
            pdb.post_mortem(sys.exc_info()[2])
        return 1
    return 0


if "__main__" == __name__:  # pragma: nocover
    sys.exit(main(argv=sys.argv[1:], environ=os.environ))
