"""
Base error class for the lumo2snirf package.
"""


class Lumo2SnirfError(Exception):
    """Base class for all errors raised by lumo2snirf."""
