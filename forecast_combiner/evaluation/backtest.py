"""
backtest.py
-----------
Walk-forward (expanding-window) evaluation on a single daily series.

The last `n_splits` blocks of `horizon` days are held out in turn; each fold
trains on everything before its block. With n_splits=1 this is the fixed
evaluation window whose RMSE weights the combination.

                  Fold 1          Fold 2          Fold 3
Train:   [==========]    [==============]    [==================]
Predict:             [-h-]               [-h-]                  [-h-]
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable

import numpy as np
import pandas as pd

from forecast_combiner.evaluation.metrics import compute_all_metrics, metrics_dataframe

logger = logging.getLogger(__name__)


@dataclass
class BacktestResult:
    """Stores per-fold and aggregate backtesting results."""
    model_name: str
    fold_results: list[dict] = field(default_factory=list)
    predictions: list[pd.DataFrame] = field(default_factory=list)

    @property
    def summary(self) -> pd.DataFrame:
        return metrics_dataframe(self.fold_results)

    def _mean(self, key: str) -> float:
        if not self.fold_results:
            return float("nan")
        return float(np.mean([r[key] for r in self.fold_results]))

    @property
    def mean_mae(self) -> float:
        return self._mean("mae")

    @property
    def mean_rmse(self) -> float:
        return self._mean("rmse")

    @property
    def mean_mape(self) -> float:
        return self._mean("mape")

    def __repr__(self) -> str:
        return (
            f"BacktestResult(model={self.model_name}, "
            f"folds={len(self.fold_results)}, "
            f"MAE={self.mean_mae:.3f}, RMSE={self.mean_rmse:.3f}, MAPE={self.mean_mape:.1f}%)"
        )


def fold_cutoffs(dates: list, horizon: int, n_splits: int, min_train_days: int) -> list:
    """Last training date of each fold, oldest first."""
    if horizon < 1 or n_splits < 1:
        raise ValueError(f"horizon and n_splits must be >= 1, got {horizon}, {n_splits}")
    cutoffs = []
    for i in range(n_splits, 0, -1):
        idx = len(dates) - i * horizon - 1
        if idx >= 0 and idx + 1 >= min_train_days:
            cutoffs.append(dates[idx])
    return cutoffs


def walk_forward_backtest(
    df: pd.DataFrame,
    model_fn: Callable[[pd.DataFrame, pd.DataFrame], np.ndarray],
    model_name: str,
    date_col: str = "date",
    target_col: str = "demand",
    horizon: int = 28,
    n_splits: int = 1,
    min_train_days: int = 365,
    verbose: bool = True,
) -> BacktestResult:
    """
    Run walk-forward evaluation.

    Args:
        df            : daily frame sorted by date (features included)
        model_fn      : callable(train_df, test_df) → np.ndarray of predictions,
                        one per test_df row. test_df has the target removed.
        model_name    : label for reporting
        date_col      : name of date column
        target_col    : name of target column
        horizon       : held-out block length in days
        n_splits      : number of folds
        min_train_days: minimum history required before a fold's cutoff
        verbose       : log fold progress

    Returns:
        BacktestResult with per-fold metrics and predictions
    """
    df = df.sort_values(date_col).reset_index(drop=True)
    all_dates = list(df[date_col])
    result = BacktestResult(model_name=model_name)

    cutoffs = fold_cutoffs(all_dates, horizon, n_splits, min_train_days)
    if not cutoffs:
        raise ValueError(
            f"Not enough data for {n_splits} folds of {horizon} days with "
            f"min_train_days={min_train_days}. Total dates: {len(all_dates)}"
        )

    for fold_num, cutoff in enumerate(cutoffs, 1):
        train_df = df[df[date_col] <= cutoff].copy()
        test_end = pd.Timestamp(cutoff) + pd.Timedelta(days=horizon)
        test_df = df[(df[date_col] > cutoff) & (df[date_col] <= test_end)].copy()

        if verbose:
            logger.info(
                f"[{model_name}] Fold {fold_num}/{len(cutoffs)} | "
                f"Train: up to {pd.Timestamp(cutoff).date()} ({len(train_df):,} rows) | "
                f"Test: {len(test_df):,} rows"
            )

        try:
            preds = np.asarray(model_fn(train_df, test_df.drop(columns=[target_col])), dtype=float)
            if preds.shape != (len(test_df),) or not np.isfinite(preds).all():
                raise ValueError(
                    f"expected {len(test_df)} finite predictions, got shape {preds.shape}"
                )
        except Exception as e:
            logger.error(f"[{model_name}] failed on fold {fold_num}: {e}")
            continue

        y_true = test_df[target_col].values
        metrics = compute_all_metrics(y_true, preds)
        metrics["fold"] = fold_num
        metrics["cutoff"] = str(pd.Timestamp(cutoff).date())
        result.fold_results.append(metrics)

        pred_df = test_df[[date_col, target_col]].copy()
        pred_df["prediction"] = preds
        pred_df["model"] = model_name
        pred_df["fold"] = fold_num
        result.predictions.append(pred_df)

        if verbose:
            logger.info(
                f"  → MAE={metrics['mae']:.3f} | "
                f"RMSE={metrics['rmse']:.3f} | "
                f"MAPE={metrics['mape']:.2f}%"
            )

    return result


def compare_models(results: list[BacktestResult]) -> pd.DataFrame:
    """
    Build a leaderboard DataFrame comparing multiple BacktestResult objects.

    Returns a DataFrame sorted by RMSE ascending.
    """
    rows = []
    for r in results:
        rows.append(
            {
                "model": r.model_name,
                "folds": len(r.fold_results),
                "mae": round(r.mean_mae, 4),
                "rmse": round(r.mean_rmse, 4),
                "mape": round(r.mean_mape, 2),
            }
        )
    leaderboard = pd.DataFrame(rows, columns=["model", "folds", "mae", "rmse", "mape"])
    leaderboard = leaderboard.sort_values("rmse").reset_index(drop=True)
    leaderboard.index += 1  # Rank from 1
    return leaderboard
