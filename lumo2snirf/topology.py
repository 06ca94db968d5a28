"""
Fixed hardware description of a LUMO tile.

Every tile carries 6 sources (3 source optodes x 2 wavelengths), 4 detectors
and 7 optodes. The hardware file identifies sources and detectors by their
hardware IDs; the tables below translate those into node-local indices.
They encode the physical wiring of the tile and only change with a revision
of the hardware format.
"""

from typing import Final, NamedTuple

from .error import Lumo2SnirfError

N_SOURCES: Final[int] = 6
N_DETECTORS: Final[int] = 4
N_OPTODES: Final[int] = 7

# wavelength slot (1-based) -> wavelength in nm
WAVELENGTHS: Final[tuple[int, int]] = (735, 850)


class TopologyError(Lumo2SnirfError):
    """Error in the hardware topology of a tile."""


class UnrecognizedSourceId(TopologyError):
    """Hardware source ID (or its description) is not part of the tile topology."""


class UnrecognizedDetectorId(TopologyError):
    """Hardware detector ID (or its description) is not part of the tile topology."""


class OptodeDescriptor(NamedTuple):
    name: str
    type: str


class SourceDescriptor(NamedTuple):
    idx: int
    wl: int
    wl_slot: int
    optode_idx: int
    description: str


class DetectorDescriptor(NamedTuple):
    idx: int
    optode_idx: int
    description: str


def optode_descriptor(optode_idx: int) -> OptodeDescriptor:
    """Return name and type ('S' or 'D') of the optode at index 1-7.

    Raises
    ------
    TopologyError
        If the index is outside 1-7.
    """
    match optode_idx:
        case 1:
            return OptodeDescriptor("0", "D")
        case 2:
            return OptodeDescriptor("1", "D")
        case 3:
            return OptodeDescriptor("2", "D")
        case 4:
            return OptodeDescriptor("3", "D")
        case 5:
            return OptodeDescriptor("A", "S")
        case 6:
            return OptodeDescriptor("B", "S")
        case 7:
            return OptodeDescriptor("C", "S")
        case _:
            raise TopologyError(
                f"Invalid optode index {optode_idx}, expected 1-{N_OPTODES}"
            )


def source_descriptor(source_id: int) -> SourceDescriptor:
    """Translate a hardware source ID into its node-local description.

    Hardware IDs are single bits, one per (optode, wavelength) pair. Node-local
    indices put all 735 nm sources first (1-3), then all 850 nm sources (4-6).

    Parameters
    ----------
    source_id : int
        The ``id`` field of a source in the hardware file.

    Returns
    -------
    SourceDescriptor
        Node-local index, wavelength, wavelength slot, optode index and
        the expected description string of the source.

    Raises
    ------
    UnrecognizedSourceId
        If ``source_id`` is not one of the six known IDs.
    """
    match source_id:
        case 1:
            return SourceDescriptor(1, 735, 1, 5, "SRCA_735nm")
        case 2:
            return SourceDescriptor(4, 850, 2, 5, "SRCA_850nm")
        case 4:
            return SourceDescriptor(2, 735, 1, 6, "SRCB_735nm")
        case 8:
            return SourceDescriptor(5, 850, 2, 6, "SRCB_850nm")
        case 16:
            return SourceDescriptor(3, 735, 1, 7, "SRCC_735nm")
        case 32:
            return SourceDescriptor(6, 850, 2, 7, "SRCC_850nm")
        case _:
            raise UnrecognizedSourceId(f"Unrecognized hardware source id {source_id!r}")


def detector_descriptor(detector_id: int) -> DetectorDescriptor:
    """Translate a hardware detector ID (ADC channel 0-3) into its node-local description.

    Raises
    ------
    UnrecognizedDetectorId
        If ``detector_id`` is not one of the four known IDs.
    """
    match detector_id:
        case 0:
            return DetectorDescriptor(1, 1, "ADC Detector Channel 0")
        case 1:
            return DetectorDescriptor(2, 2, "ADC Detector Channel 1")
        case 2:
            return DetectorDescriptor(3, 3, "ADC Detector Channel 2")
        case 3:
            return DetectorDescriptor(4, 4, "ADC Detector Channel 3")
        case _:
            raise UnrecognizedDetectorId(
                f"Unrecognized hardware detector id {detector_id!r}"
            )
