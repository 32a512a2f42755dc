"""tbats_model.py — TBATS for multiple (non-integer) seasonal periods."""
from __future__ import annotations
import warnings
import numpy as np, pandas as pd

from forecast_combiner.features.build_features import to_daily_series


class TBATSForecaster:
    def __init__(self, seasonal_periods=(7, 365.25), use_arma_errors=False,
                 use_box_cox=None, n_jobs=1, target="demand"):
        self.seasonal_periods = list(seasonal_periods)
        self.use_arma_errors = use_arma_errors; self.use_box_cox = use_box_cox
        self.n_jobs = n_jobs; self.target = target
        self.fitted_ = None

    def __call__(self, train_df, test_df):
        from tbats import TBATS
        y = to_daily_series(train_df, self.target)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            estimator = TBATS(seasonal_periods=self.seasonal_periods,
                              use_arma_errors=self.use_arma_errors,
                              use_box_cox=self.use_box_cox, n_jobs=self.n_jobs)
            model = estimator.fit(y.to_numpy())
            fc = model.forecast(steps=len(test_df))
        self.fitted_ = pd.Series(np.asarray(model.y_hat, dtype=float), index=y.index)
        return np.asarray(fc, dtype=float)
