"""
combiner.py
-----------
Inverse-error weighted forecast combination with last-observation bias correction.

Pipeline (every step is a pure function over immutable records):

    CandidateResult(s) ──► WeightSet ──► CombinedForecast ──► CorrectedForecast

  1. Weights      : w_i = (1/e_i) / Σ_j (1/e_j), e_i = held-out RMSE of model i
  2. Aggregation  : combined[k] = Σ_i w_i · forecast_i[k], step by step
  3. Correction   : factor = actual_last / combined[0]
                    corrected[k] = factor · combined[k] for k ≥ 1

The first step is reported uncorrected: factor · combined[0] is actual_last
by construction.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from forecast_combiner.combination.errors import (
    DegenerateCorrectionError,
    InvalidErrorMeasureError,
    MisalignedInputsError,
)

logger = logging.getLogger(__name__)


# ── Records ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CandidateResult:
    """
    Output of one externally fitted candidate model.

    Args:
        name     : model identifier, unique within a combination
        fitted   : in-sample fitted values indexed by the history dates
        forecast : out-of-sample forecast indexed by the H dates after history
        rmse     : RMSE of the model's held-out forecast against observed truth
    """
    name: str
    fitted: pd.Series
    forecast: pd.Series
    rmse: float

    @property
    def horizon(self) -> int:
        return len(self.forecast)


@dataclass(frozen=True)
class WeightSet:
    """Read-only mapping of model name → combination weight (sums to 1)."""
    weights: Mapping[str, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))

    def __getitem__(self, name: str) -> float:
        return self.weights[name]

    def __iter__(self):
        return iter(self.weights)

    def __len__(self) -> int:
        return len(self.weights)

    @property
    def names(self) -> list[str]:
        return list(self.weights)

    def as_series(self) -> pd.Series:
        return pd.Series(dict(self.weights), name="weight", dtype=float)


@dataclass(frozen=True)
class CombinedForecast:
    values: pd.Series
    weights: WeightSet

    @property
    def first_step(self) -> float:
        return float(self.values.iloc[0])


@dataclass(frozen=True)
class CorrectedForecast:
    """Steps 2..H of the combined forecast, rescaled to the last actual."""
    factor: float
    actual_last: float
    first_step: float
    values: pd.Series


@dataclass
class CombinationResult:
    """Everything a caller needs to report one combination run."""
    weights: WeightSet
    combined: CombinedForecast
    corrected: Optional[CorrectedForecast] = None
    correction_flagged: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def point_forecast(self) -> pd.Series:
        """Uncorrected first step followed by corrected steps (plain combined if flagged)."""
        if self.corrected is None:
            return self.combined.values.copy()
        head = self.combined.values.iloc[:1]
        return pd.concat([head, self.corrected.values]).rename("forecast")

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame({"combined": self.combined.values})
        df["corrected"] = np.nan
        if self.corrected is not None:
            df.loc[self.corrected.values.index, "corrected"] = self.corrected.values
        df.index.name = "date"
        return df.reset_index()

    def summary(self) -> dict:
        out = {
            "weights": {k: float(v) for k, v in self.weights.weights.items()},
            "correction_flagged": self.correction_flagged,
            "warnings": list(self.warnings),
        }
        if self.corrected is not None:
            out["correction_factor"] = self.corrected.factor
            out["actual_last"] = self.corrected.actual_last
            out["first_step"] = self.corrected.first_step
        return out


# ── 1. Weights ────────────────────────────────────────────────────────────────

def compute_weights(errors: Mapping[str, float]) -> WeightSet:
    """
    Inverse-error weights from each candidate's held-out RMSE.

    Raises:
        InvalidErrorMeasureError if the set is empty or any error is ≤ 0,
        NaN or infinite. A zero error would otherwise claim infinite weight.
    """
    if not errors:
        raise InvalidErrorMeasureError("Cannot weight an empty candidate set.")

    for name, e in errors.items():
        e = float(e)
        if not math.isfinite(e) or e <= 0:
            raise InvalidErrorMeasureError(
                f"Error measure for '{name}' must be finite and > 0, got {e}"
            )

    # Scaling by the smallest error keeps 1/e from overflowing for tiny errors
    e_min = min(float(e) for e in errors.values())
    inverse = {name: e_min / float(e) for name, e in errors.items()}
    total = sum(inverse.values())
    weights = WeightSet({name: inv / total for name, inv in inverse.items()})
    logger.debug(f"Combination weights: {dict(weights.weights)}")
    return weights


# ── 2. Alignment & aggregation ────────────────────────────────────────────────

def check_alignment(candidates: Sequence[CandidateResult]) -> None:
    """Reject candidates whose forecasts or fitted values are not on one index."""
    if not candidates:
        raise MisalignedInputsError("No candidates to align.")

    ref = candidates[0]
    if ref.horizon < 1:
        raise MisalignedInputsError(f"'{ref.name}' has an empty forecast.")

    for c in candidates[1:]:
        if c.horizon != ref.horizon:
            raise MisalignedInputsError(
                f"Horizon mismatch: '{ref.name}' has {ref.horizon} steps, "
                f"'{c.name}' has {c.horizon}"
            )
        if not c.forecast.index.equals(ref.forecast.index):
            raise MisalignedInputsError(
                f"Forecast index of '{c.name}' (starting {c.forecast.index[0]}) "
                f"does not match '{ref.name}' (starting {ref.forecast.index[0]})"
            )
        if not c.fitted.index.equals(ref.fitted.index):
            raise MisalignedInputsError(
                f"Fitted-value index of '{c.name}' does not match '{ref.name}'"
            )


def aggregate_forecasts(
    candidates: Sequence[CandidateResult],
    weights: WeightSet,
) -> CombinedForecast:
    """combined[k] = Σ_i w_i · forecast_i[k], computed independently per step."""
    check_alignment(candidates)

    names = [c.name for c in candidates]
    if sorted(names) != sorted(weights.names):
        raise MisalignedInputsError(
            f"Weights cover {sorted(weights.names)} but candidates are {sorted(names)}"
        )

    index = candidates[0].forecast.index
    matrix = np.vstack([c.forecast.to_numpy(dtype=float) for c in candidates])
    if not np.isfinite(matrix).all():
        bad = [c.name for c in candidates if not np.isfinite(c.forecast.to_numpy(dtype=float)).all()]
        raise MisalignedInputsError(f"Non-finite forecast values from {bad}")

    w = np.array([weights[n] for n in names])
    combined = pd.Series(w @ matrix, index=index, name="combined")
    return CombinedForecast(values=combined, weights=weights)


# ── 3. Bias correction ────────────────────────────────────────────────────────

def apply_bias_correction(combined: CombinedForecast, actual_last: float) -> CorrectedForecast:
    """
    Rescale steps 2..H by actual_last / combined[0].

    Raises:
        DegenerateCorrectionError if combined[0] is zero or either anchor is
        not finite.
    """
    actual_last = float(actual_last)
    first = combined.first_step
    if not math.isfinite(actual_last):
        raise DegenerateCorrectionError(f"Last actual value is not finite: {actual_last}")
    if first == 0 or not math.isfinite(first):
        raise DegenerateCorrectionError(
            f"First-step combined forecast is {first}; correction factor undefined"
        )

    factor = actual_last / first
    corrected = (combined.values.iloc[1:] * factor).rename("corrected")
    return CorrectedForecast(
        factor=factor,
        actual_last=actual_last,
        first_step=first,
        values=corrected,
    )


# ── Full pass ─────────────────────────────────────────────────────────────────

def combine_candidates(
    candidates: Iterable[CandidateResult],
    actual_last: float,
    members: Optional[Sequence[str]] = None,
) -> CombinationResult:
    """
    Weights → combined forecast → corrected forecast for one forecast request.

    Args:
        candidates  : candidate model results sharing one time index
        actual_last : most recent observed value of the target
        members     : names that enter the combination (default: all)

    Invalid error measures and misaligned inputs raise. A degenerate
    correction is logged and flagged; the combined forecast is still returned.
    """
    pool = {}
    for c in candidates:
        if c.name in pool:
            raise MisalignedInputsError(f"Duplicate candidate name '{c.name}'")
        pool[c.name] = c

    if members is not None:
        unknown = [m for m in members if m not in pool]
        if unknown:
            raise KeyError(f"Unknown combination members: {unknown}")
        chosen = [pool[m] for m in members]
    else:
        chosen = list(pool.values())

    weights = compute_weights({c.name: c.rmse for c in chosen})
    combined = aggregate_forecasts(chosen, weights)
    result = CombinationResult(weights=weights, combined=combined)

    try:
        result.corrected = apply_bias_correction(combined, actual_last)
    except DegenerateCorrectionError as e:
        msg = f"Bias correction skipped, reporting combined forecast uncorrected: {e}"
        logger.warning(msg)
        result.correction_flagged = True
        result.warnings.append(msg)
    else:
        logger.info(
            f"Combined {len(chosen)} models | correction factor="
            f"{result.corrected.factor:.5f} (actual_last={actual_last:.3f}, "
            f"combined[0]={combined.first_step:.3f})"
        )

    return result
