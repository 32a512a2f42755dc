"""arima_model.py — ARIMA with Fourier-term regressors (dynamic harmonic regression)."""
from __future__ import annotations
import itertools, logging, warnings
import numpy as np, pandas as pd
from statsmodels.tsa.statespace.sarimax import SARIMAX

from forecast_combiner.features.build_features import fourier_columns, to_daily_series

logger = logging.getLogger(__name__)


class ARIMAForecaster:
    """
    SARIMAX(p,d,q) with the frame's Fourier columns as exogenous regressors.

    With order=None the (p, q) pair is chosen by AIC over 0..max_p × 0..max_q
    on the first call and frozen in `order_`, so the production refit reuses
    the order picked on the training window.
    """

    def __init__(self, order=None, max_p=2, max_q=2, d=1, fourier=True, target="demand"):
        self.order = tuple(order) if order is not None else None
        self.max_p = max_p; self.max_q = max_q; self.d = d
        self.fourier = fourier; self.target = target
        self.order_ = self.order
        self.fitted_ = None

    def _exog(self, df):
        if not self.fourier:
            return None
        cols = fourier_columns(df)
        if not cols:
            raise ValueError("ARIMAForecaster(fourier=True) needs Fourier columns in the frame")
        return df[cols].to_numpy(dtype=float)

    def _fit(self, y, exog, order):
        return SARIMAX(y, exog=exog, order=order, trend="c" if order[1] == 0 else "n",
                       enforce_stationarity=False, enforce_invertibility=False).fit(disp=False)

    def _select_order(self, y, exog):
        best_aic, best_order = np.inf, None
        for p, q in itertools.product(range(self.max_p + 1), range(self.max_q + 1)):
            order = (p, self.d, q)
            try:
                aic = self._fit(y, exog, order).aic
            except (ValueError, np.linalg.LinAlgError) as e:
                logger.debug(f"ARIMA{order} failed: {e}")
                continue
            if np.isfinite(aic) and aic < best_aic:
                best_aic, best_order = aic, order
        if best_order is None:
            raise RuntimeError("No ARIMA order could be fitted")
        logger.info(f"ARIMA order selected by AIC: {best_order} (AIC={best_aic:.1f})")
        return best_order

    def __call__(self, train_df, test_df):
        y = to_daily_series(train_df, self.target)
        exog = self._exog(train_df)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            if self.order_ is None:
                self.order_ = self._select_order(y, exog)
            fit = self._fit(y, exog, self.order_)
            fc = fit.forecast(steps=len(test_df), exog=self._exog(test_df))
        self.fitted_ = pd.Series(np.asarray(fit.fittedvalues), index=y.index)
        return np.asarray(fc, dtype=float)
