"""
nnar_model.py
-------------
Neural network autoregression: a feed-forward net on lagged demand.

Inputs are the last `p` daily values plus `P` seasonal lags (multiples of
`period`). The net has one hidden layer; its size defaults to
(p + P + 1) // 2. Several nets with different seeds are averaged.
Multi-step forecasts are produced recursively, feeding each prediction back
in as the newest lag.
"""

from __future__ import annotations
import logging
import warnings
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPRegressor
from sklearn.preprocessing import StandardScaler

logger = logging.getLogger(__name__)


class NNARForecaster:
    """
    Args:
        p            : number of non-seasonal lags
        P            : number of seasonal lags
        period       : seasonal period in days
        hidden_size  : hidden-layer width (None → (p + P + 1) // 2)
        n_networks   : nets averaged per forecast
        max_iter     : optimiser iterations per net
        random_state : base seed; net i uses random_state + i
    """

    def __init__(
        self,
        p: int = 7,
        P: int = 1,
        period: int = 7,
        hidden_size: Optional[int] = None,
        n_networks: int = 5,
        max_iter: int = 500,
        random_state: int = 42,
        target: str = "demand",
    ) -> None:
        if p < 1:
            raise ValueError(f"p must be >= 1, got {p}")
        self.p = p
        self.P = P
        self.period = period
        self.hidden_size = hidden_size or max(1, (p + P + 1) // 2)
        self.n_networks = n_networks
        self.max_iter = max_iter
        self.random_state = random_state
        self.target = target
        self.fitted_: Optional[pd.Series] = None

    @property
    def lags(self) -> list[int]:
        seasonal = [self.period * i for i in range(1, self.P + 1)]
        return sorted(set(range(1, self.p + 1)) | set(seasonal))

    def _lag_matrix(self, z: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        max_lag = max(self.lags)
        X = np.column_stack([z[max_lag - lag: len(z) - lag] for lag in self.lags])
        return X, z[max_lag:]

    def __call__(self, train_df: pd.DataFrame, test_df: pd.DataFrame) -> np.ndarray:
        y = train_df[self.target].to_numpy(dtype=float)
        max_lag = max(self.lags)
        if len(y) <= max_lag + 1:
            raise ValueError(f"NNAR needs more than {max_lag + 1} observations, got {len(y)}")

        scaler = StandardScaler()
        z = scaler.fit_transform(y.reshape(-1, 1)).ravel()
        X, target = self._lag_matrix(z)

        nets = []
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            for i in range(self.n_networks):
                net = MLPRegressor(
                    hidden_layer_sizes=(self.hidden_size,),
                    max_iter=self.max_iter,
                    random_state=self.random_state + i,
                )
                nets.append(net.fit(X, target))
        logger.debug(f"NNAR lags={self.lags}, hidden={self.hidden_size}, nets={len(nets)}")

        in_sample = np.mean([net.predict(X) for net in nets], axis=0)
        fitted = np.full(len(y), np.nan)
        fitted[max_lag:] = scaler.inverse_transform(in_sample.reshape(-1, 1)).ravel()
        self.fitted_ = pd.Series(fitted, index=pd.DatetimeIndex(train_df["date"]))

        # Recursive multi-step forecast
        path = list(z)
        for _ in range(len(test_df)):
            x = np.array([[path[-lag] for lag in self.lags]])
            path.append(float(np.mean([net.predict(x)[0] for net in nets])))
        preds = np.array(path[len(z):]).reshape(-1, 1)
        return scaler.inverse_transform(preds).ravel()
