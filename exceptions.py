"""Exception hierarchy for the Zip solver."""


class ZipSolverError(Exception):
    """Base exception for solver failures."""


class InvalidGridError(ZipSolverError):
    """Raised when grid values or the wall map cannot describe a puzzle."""


class PuzzleFormatError(ZipSolverError):
    """Raised when a puzzle document is missing fields or malformed."""
