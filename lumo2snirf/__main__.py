"""
Entry point for running lumo2snirf as a module.

This module provides the main entry point when the package is executed
with `python -m lumo2snirf`.
"""

import sys

if __name__ == "__main__":
    from .lumo2snirf import main

    sys.exit(main())
