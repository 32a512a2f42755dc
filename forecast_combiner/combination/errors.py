"""errors.py — Exceptions raised by the forecast combiner."""
from __future__ import annotations


class CombinationError(ValueError):
    """Base class for every precondition the combiner refuses to paper over."""


class InvalidErrorMeasureError(CombinationError):
    """A candidate's held-out RMSE is zero, negative or not finite."""


class MisalignedInputsError(CombinationError):
    """Candidate forecasts (or fitted values) do not share one time index."""


class DegenerateCorrectionError(CombinationError):
    """The bias-correction factor cannot be formed (combined[0] == 0)."""
