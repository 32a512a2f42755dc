"""ets_model.py — STL decomposition + ETS on the seasonally adjusted series."""
from __future__ import annotations
import warnings
import numpy as np, pandas as pd
from statsmodels.tsa.exponential_smoothing.ets import ETSModel
from statsmodels.tsa.forecasting.stl import STLForecast

from forecast_combiner.features.build_features import to_daily_series


class STLETSForecaster:
    """
    STL removes one seasonal component (weekly by default), ETS forecasts the
    remainder, and the last seasonal cycle is added back on the horizon.
    """

    def __init__(self, period=7, error="add", trend="add", damped_trend=True,
                 robust=True, target="demand"):
        self.period = period; self.robust = robust; self.target = target
        self.model_kwargs = {"error": error, "trend": trend, "damped_trend": damped_trend}
        self.fitted_ = None

    def __call__(self, train_df, test_df):
        y = to_daily_series(train_df, self.target)
        if len(y) < 2 * self.period:
            raise ValueError(f"STL needs at least two full periods ({2 * self.period} days), got {len(y)}")
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            res = STLForecast(y, ETSModel, model_kwargs=self.model_kwargs,
                              period=self.period, robust=self.robust).fit(fit_kwargs={"disp": False})
            fc = res.forecast(len(test_df))
        seasonal = pd.Series(np.asarray(res.result.seasonal), index=y.index)
        adjusted_fit = pd.Series(np.asarray(res.model_result.fittedvalues), index=y.index)
        self.fitted_ = adjusted_fit + seasonal
        return np.asarray(fc, dtype=float)
