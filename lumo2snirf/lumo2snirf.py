"""
Main entrypoint for LUMO to SNIRF conversion when run as a script.
"""

import logging
import sys

from .args import ArgumentError, Arguments
from .error import Lumo2SnirfError
from .log import config_logger
from .lumo import read_lumo
from .snirf import lumo_to_nirs, write_snirf

HINT = (
    "Increase verbosity (-v, -vv, -vvv) for more details. "
    "Use --log to log messages to a file."
)


def main() -> int:
    """
    LUMO to SNIRF conversion script.

    Run as `python -m lumo2snirf`, it:

    1. Parses command-line arguments
    2. Configures logging based on user preferences
    3. Reads the LUMO file
    4. Converts it to the SNIRF data model
    5. Writes the SNIRF file

    Returns
    -------
    int
        Exit code: 0 for success, 1 for failure.

    Notes
    -----
    End users only see a concise error message. Details, including stack
    traces, go to the log when verbosity is increased.
    """
    log = None
    try:
        args = Arguments().parse(sys.argv[1:])

        config_logger(file_logging=args.log, verbosity_level=args.verbosity)
        log = logging.getLogger(__name__)
        log.info("Logger configured")
        log.debug("Parsed arguments: %r", args)

        log.info("Reading LUMO file")
        lumo = read_lumo(args.source_file, ignore_memory=args.ignore_memory)

        log.info("Converting to SNIRF")
        nirs = lumo_to_nirs(
            lumo, subject_id=args.subject_id, use_layout=not args.no_layout
        )

        log.info("Writing SNIRF file")
        write_snirf(nirs, args.target_file)

        log.info("Successfully completed conversion")
        return 0

    except ArgumentError as e:
        print(f"Argument error: {e}")
        return 1
    except Lumo2SnirfError as e:
        if log is not None:
            log.exception("%s", e)
        print(f"Conversion failed: {e}\n{HINT}")
        return 1
    except Exception as e:  # pylint: disable=W0718
        print(f"Something went wrong. {HINT}")
        if log is not None:
            log.exception("Exception received. Error message: %s", e)
        else:
            print("Logging not configured, dumping exception:")
            raise
        return 1


if __name__ == "__main__":
    sys.exit(main())
