"""
Logging configuration utilities for the lumo2snirf package.
"""

from logging import (
    CRITICAL,
    DEBUG,
    INFO,
    WARNING,
    FileHandler,
    Formatter,
    Handler,
    StreamHandler,
    getLogger,
)

LOGFILE_NAME = "lumo2snirf.log"

# index = verbosity level
VERBOSITY_LEVELS = (CRITICAL + 1, WARNING, INFO, DEBUG)

FILE_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s %(funcName)s:%(lineno)d] %(message)s"
STREAM_FORMAT = "%(levelname)-8s [%(name)s] %(message)s"

# third-party loggers that are too chatty at DEBUG level
QUIET_LOGGERS = ("h5py",)


def config_logger(file_logging: bool = False, verbosity_level: int = 0) -> None:
    """
    Configure the root logger for the application.

    Parameters
    ----------
    file_logging : bool, default = False
        If True, log messages are appended to ``lumo2snirf.log`` in the current
        directory. If False, log messages are printed to the console.
    verbosity_level : int, default = 0
        The verbosity level of the log messages. Must be between 0 and 3.
        0: disabled (no logging)
        1: WARNING (warnings and above)
        2: INFO (informational messages and above)
        3: DEBUG (debugging messages and above)

    Raises
    ------
    ValueError
        If ``verbosity_level`` is out of range.

    Notes
    -----
    Call this once, at the start of the script. Library code only ever uses
    `getLogger(__name__)` and inherits the configuration set here.
    """
    if not 0 <= verbosity_level < len(VERBOSITY_LEVELS):
        raise ValueError("verbosity_level must be between 0 and 3")
    loglevel = VERBOSITY_LEVELS[verbosity_level]

    handler: Handler
    if file_logging:
        handler = FileHandler(LOGFILE_NAME, mode="a")
        handler.setFormatter(Formatter(fmt=FILE_FORMAT, datefmt="%H:%M:%S"))
    else:
        handler = StreamHandler()
        handler.setFormatter(Formatter(fmt=STREAM_FORMAT))

    # level is set on the root logger only, handlers pass everything through
    root = getLogger()
    root.setLevel(loglevel)
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        getLogger(name).setLevel(max(loglevel, WARNING))
