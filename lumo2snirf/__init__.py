"""
Read LUMO files and convert them to SNIRF format.

A LUMO file is a directory container written by the Gowerlabs LUMO
high-density diffuse optical tomography system. This package decodes its
metadata into a canonical, node-local enumeration of the system (hub, tiles,
sources, detectors, optodes, channels), decodes the binary channel intensity
stream, and can export the result to the Shared Near Infrared Spectroscopy
Format (SNIRF).

Main modules
------------
- lumo: Loading a complete LUMO file (entry point for library use)
- manifest: Validating the container and its file references
- enumeration: Building the canonical enumeration from the hardware metadata
- topology: Fixed hardware description of a LUMO tile
- intensity: Decoding the binary intensity stream
- events: Reading the event log
- layout: Reading the embedded template layout
- snirf: Converting to and writing SNIRF/HDF5 files
- model: Data models
- lumo2snirf: Entrypoint when run as a script
- args: Command-line argument parsing
- log: Logging configuration for command-line usage
"""

from .lumo import read_lumo

__all__ = ["read_lumo"]
