"""
Module for handling command-line arguments.
"""

import argparse
from pathlib import Path
from typing import Self

from .error import Lumo2SnirfError


class ArgumentError(Lumo2SnirfError):
    """Error indicating invalid command-line arguments."""


def _dir_must_exist(path_str: str) -> Path:
    """
    Validate that a LUMO file (a directory) exists.

    Used as an argparse type validator.

    Parameters
    ----------
    path_str : str
        String representation of the path to validate.

    Returns
    -------
    Path
        Validated Path object.

    Raises
    ------
    ArgumentError
        If the path is empty, does not exist, or is not a directory.
    """
    if not path_str:
        raise ArgumentError("Path must not be empty.")
    path = Path(path_str)
    if not path.is_dir():
        raise ArgumentError(
            f"LUMO file '{path_str}' does not exist or is not a directory."
        )
    return path


def _file_must_not_exist(path_str: str) -> Path:
    """
    Validate that a file path does not already exist, preventing accidental overwrites.

    Raises
    ------
    ArgumentError
        If the path is empty or already exists.
    """
    if not path_str:
        raise ArgumentError("Path must not be empty.")
    path = Path(path_str)
    if path.exists():
        raise ArgumentError(f"Path '{path_str}' already exists.")
    return path


def _subject_id(value: str) -> str:
    value = value.strip()
    if not value:
        raise ArgumentError("Subject ID must not be empty.")
    return value


class Arguments:
    """
    Class to handle configuration and parsing of command-line arguments.

    Parameters
    ----------
    progname : str or None, default=__package__
        Program name to display in help message. If None, defaults to package name.
    """

    parser: argparse.ArgumentParser
    source_file: Path
    target_file: Path
    ignore_memory: bool
    no_layout: bool
    subject_id: str
    log: bool
    verbosity: int

    def __init__(self, progname: str | None = __package__):
        parser = argparse.ArgumentParser(
            description="Convert LUMO files to SNIRF format.",
            allow_abbrev=False,
            prog=progname if progname else "lumo2snirf",
        )
        parser.add_argument(
            "source_file",
            help="path to LUMO file (*.lumo directory)",
            type=_dir_must_exist,
        )
        parser.add_argument(
            "target_file",
            help="path to output file (*.snirf); if not specified, output is written "
            "to the current directory as <out.snirf>",
            nargs="?",
            default="out.snirf",
            type=_file_must_not_exist,
        )
        parser.add_argument(
            "--ignore-memory",
            action="store_true",
            help="Load the intensity data even if it exceeds the available system memory.",
        )
        parser.add_argument(
            "--no-layout",
            action="store_true",
            help="Don't use the template layout embedded in the LUMO file; "
            "all optode positions are set to 0.",
        )
        parser.add_argument(
            "--subject-id",
            help="Subject ID to store in the SNIRF metadata (default: unknown).",
            type=_subject_id,
            default="unknown",
        )
        parser.add_argument(
            "-v",
            "--verbose",
            action="count",
            help="Increase verbosity of output, can be used multiple times. "
            "-v for WARNING level, -vv for INFO level, -vvv for DEBUG level. "
            "Combine with --log to redirect log output to file.",
            default=0,
            dest="verbosity",
        )
        parser.add_argument(
            "--log",
            action="store_true",
            help="Redirects logging to file lumo2snirf.log in the current directory. "
            "Logging level is controlled by -v/--verbose. Specifying --log implies -v.",
        )

        self.parser = parser

    def parse(self, args: list[str]) -> Self:
        """
        Parse command-line arguments and populate the Arguments object.

        Parameters
        ----------
        args : list[str]
            List of command-line arguments to parse. If empty, shows help.

        Returns
        -------
        Self
            Self with parsed argument values set as attributes.

        Notes
        -----
        If --log is specified, verbosity is automatically set to at least 1,
        and capped at 3.
        """
        parser = self.parser
        del self.parser
        parser.parse_args(args=args or ["-h"], namespace=self)

        if self.log:
            self.verbosity = max(self.verbosity, 1)
        self.verbosity = min(self.verbosity, 3)

        return self

    def __repr__(self) -> str:
        return f"Arguments({self.__dict__!r})"
