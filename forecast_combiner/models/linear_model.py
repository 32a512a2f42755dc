"""
linear_model.py
---------------
OLS regression of demand on deterministic regressors.

Two flavours share this class:
  - calendar : trend + day-of-week and month dummies
  - fourier  : trend + Fourier terms (day-of-week dummies only without weekly terms)

The regressor set is resolved once on the first call — either the explicit
`features` list, or a stepwise AIC selection over the default set — and is
frozen in `selected_features_` so every later refit uses the same formula.
"""

from __future__ import annotations
import logging
from typing import Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm

from forecast_combiner.features.build_features import DOW_DUMMIES, MONTH_DUMMIES, fourier_columns
from forecast_combiner.features.selection import stepwise_select

logger = logging.getLogger(__name__)


class LinearForecaster:
    """
    Args:
        features  : explicit regressor list (overrides the default set)
        fourier   : use Fourier terms instead of month dummies
        stepwise  : select regressors by stepwise AIC on the first training window
        direction : stepwise direction ("forward", "backward", "both")
        target    : response column
    """

    def __init__(
        self,
        features: Optional[list[str]] = None,
        fourier: bool = False,
        stepwise: bool = False,
        direction: str = "both",
        target: str = "demand",
    ) -> None:
        self.features = list(features) if features else None
        self.fourier = fourier
        self.stepwise = stepwise
        self.direction = direction
        self.target = target
        self.selected_features_: Optional[list[str]] = None
        self.fitted_: Optional[pd.Series] = None
        self._result = None

    def candidate_features(self, df: pd.DataFrame) -> list[str]:
        if self.features is not None:
            return self.features
        if not self.fourier:
            return ["trend"] + DOW_DUMMIES + MONTH_DUMMIES
        seasonal = fourier_columns(df)
        if not seasonal:
            raise ValueError("LinearForecaster(fourier=True) needs Fourier columns in the frame")
        # Weekly Fourier terms lie in the span of the day-of-week dummies
        weekly = DOW_DUMMIES if not fourier_columns(df, period=7) else []
        return ["trend"] + weekly + seasonal

    def _resolve_features(self, train_df: pd.DataFrame) -> list[str]:
        if self.selected_features_ is None:
            pool = self.candidate_features(train_df)
            if self.stepwise:
                self.selected_features_ = stepwise_select(train_df, self.target, pool, self.direction)
            else:
                self.selected_features_ = pool
            logger.info(f"Linear regressors ({len(self.selected_features_)}): {self.selected_features_}")
        return self.selected_features_

    def _design(self, df: pd.DataFrame, cols: list[str]) -> pd.DataFrame:
        if not cols:
            return pd.DataFrame({"const": 1.0}, index=df.index)
        return sm.add_constant(df[cols].astype(float), has_constant="add")

    def __call__(self, train_df: pd.DataFrame, test_df: pd.DataFrame) -> np.ndarray:
        cols = self._resolve_features(train_df)
        y = train_df[self.target].astype(float)
        self._result = sm.OLS(y, self._design(train_df, cols)).fit()
        self.fitted_ = pd.Series(
            np.asarray(self._result.fittedvalues), index=pd.DatetimeIndex(train_df["date"])
        )
        return np.asarray(self._result.predict(self._design(test_df, cols)), dtype=float)

    @property
    def formula(self) -> str:
        """Readable record of the frozen specification."""
        if self.selected_features_ is None:
            raise RuntimeError("Model has not been fitted yet")
        rhs = " + ".join(["1"] + self.selected_features_)
        return f"{self.target} ~ {rhs}"
