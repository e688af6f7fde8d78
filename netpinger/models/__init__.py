"""Value types shared by the prober, detector and record store."""
from .outcome import NetworkError, Outcome, Success, UnexpectedStatus
from .record import Record

__all__ = [
    "NetworkError",
    "Outcome",
    "Record",
    "Success",
    "UnexpectedStatus",
]
