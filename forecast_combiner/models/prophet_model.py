"""prophet_model.py — Prophet wrapper for a single daily demand series."""
from __future__ import annotations
import logging, warnings
import numpy as np, pandas as pd

class ProphetForecaster:
    def __init__(self, yearly_seasonality=True, weekly_seasonality=True,
                 changepoint_prior_scale=0.05, target="demand"):
        self.yearly=yearly_seasonality; self.weekly=weekly_seasonality
        self.cps=changepoint_prior_scale; self.target=target
        self.fitted_=None

    def __call__(self, train_df, test_df):
        from prophet import Prophet
        logging.getLogger("cmdstanpy").setLevel(logging.WARNING)
        s = train_df[["date", self.target]].rename(columns={"date":"ds", self.target:"y"})
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            m = Prophet(yearly_seasonality=self.yearly, weekly_seasonality=self.weekly,
                        daily_seasonality=False, changepoint_prior_scale=self.cps)
            m.fit(s)
            in_sample = m.predict(s[["ds"]])
            fc = m.predict(pd.DataFrame({"ds": pd.to_datetime(test_df["date"]).values}))
        self.fitted_ = pd.Series(in_sample["yhat"].values, index=pd.DatetimeIndex(s["ds"]))
        return np.asarray(fc["yhat"].values, dtype=float)
