"""
Calibration error kinds.

The estimator raises these; the calibration session catches them and
returns them inside an `Outcome` so the UI can show `error.message`.
"""
from __future__ import annotations
from enum import Enum


class ErrorKind(Enum):
    INSUFFICIENT_POINTS      = "insufficient_points"
    DEGENERATE_CONFIGURATION = "degenerate_configuration"
    DUPLICATE_POINT          = "duplicate_point"
    UNKNOWN_POINT_ID         = "unknown_point_id"
    INVALID_POINT            = "invalid_point"
    UNKNOWN_MODE             = "unknown_mode"
    INVALID_TRANSITION       = "invalid_transition"
    STALE_FRAME              = "stale_frame"


class CalibrationError(Exception):
    """Base class. `kind` identifies the failure, `message` is user-facing."""

    kind: ErrorKind = ErrorKind.DEGENERATE_CONFIGURATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class InsufficientPoints(CalibrationError):
    kind = ErrorKind.INSUFFICIENT_POINTS


class DegenerateConfiguration(CalibrationError):
    kind = ErrorKind.DEGENERATE_CONFIGURATION


class DuplicatePoint(CalibrationError):
    kind = ErrorKind.DUPLICATE_POINT


class UnknownPointId(CalibrationError):
    kind = ErrorKind.UNKNOWN_POINT_ID


class InvalidPoint(CalibrationError):
    kind = ErrorKind.INVALID_POINT


class UnknownMode(CalibrationError):
    kind = ErrorKind.UNKNOWN_MODE


class InvalidTransition(CalibrationError):
    kind = ErrorKind.INVALID_TRANSITION


class StaleFrame(CalibrationError):
    kind = ErrorKind.STALE_FRAME
