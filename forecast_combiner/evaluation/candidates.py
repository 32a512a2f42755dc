"""
candidates.py
-------------
Turn a forecaster into a CandidateResult: held-out RMSE from the backtest,
then a refit on the full history for the production forecast.
"""

from __future__ import annotations
import logging
from typing import Callable

import numpy as np
import pandas as pd

from forecast_combiner.combination.combiner import CandidateResult
from forecast_combiner.evaluation.backtest import BacktestResult, walk_forward_backtest

logger = logging.getLogger(__name__)


def evaluate_candidate(
    name: str,
    model_fn: Callable[[pd.DataFrame, pd.DataFrame], np.ndarray],
    history: pd.DataFrame,
    future_df: pd.DataFrame,
    target_col: str = "demand",
    eval_horizon: int = 28,
    n_splits: int = 1,
    min_train_days: int = 365,
) -> tuple[CandidateResult, BacktestResult]:
    """
    Args:
        name           : candidate identifier
        model_fn       : callable(train_df, test_df) → predictions; may expose
                         `fitted_` (in-sample fitted values indexed by date)
        history        : featured history frame (date, target, features)
        future_df      : featured frame for the forecast horizon
        target_col     : response column
        eval_horizon   : length of each held-out block
        n_splits       : number of held-out blocks
        min_train_days : minimum training history per fold

    Raises:
        RuntimeError if every backtest fold failed.
        ValueError if the production forecast is the wrong length or not finite.
    """
    backtest = walk_forward_backtest(
        df=history,
        model_fn=model_fn,
        model_name=name,
        target_col=target_col,
        horizon=eval_horizon,
        n_splits=n_splits,
        min_train_days=min_train_days,
    )
    if not backtest.fold_results:
        raise RuntimeError(f"'{name}' produced no successful backtest fold")

    logger.info(f"[{name}] refitting on full history ({len(history):,} days)")
    preds = np.asarray(model_fn(history, future_df), dtype=float)
    if preds.shape != (len(future_df),) or not np.isfinite(preds).all():
        raise ValueError(
            f"'{name}' returned an invalid forecast: expected {len(future_df)} finite values, "
            f"got shape {preds.shape}"
        )

    history_index = pd.DatetimeIndex(history["date"])
    fitted = getattr(model_fn, "fitted_", None)
    if fitted is None:
        logger.debug(f"[{name}] exposes no fitted values")
        fitted = pd.Series(np.nan, index=history_index)
    fitted = pd.Series(fitted, dtype=float).reindex(history_index).rename(name)

    forecast = pd.Series(preds, index=pd.DatetimeIndex(future_df["date"]), name=name)
    candidate = CandidateResult(name=name, fitted=fitted, forecast=forecast, rmse=backtest.mean_rmse)
    logger.info(f"[{name}] held-out RMSE={candidate.rmse:.3f}")
    return candidate, backtest
