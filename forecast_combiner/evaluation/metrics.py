"""
metrics.py
----------
Point-forecast error metrics: MAE, RMSE, MAPE and sMAPE.

RMSE on the held-out window is the error measure that drives the
combination weights.
"""

from __future__ import annotations
import numpy as np
import pandas as pd


def _as_arrays(y_true, y_pred) -> tuple[np.ndarray, np.ndarray]:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape} vs y_pred {y_pred.shape}")
    if y_true.size == 0:
        raise ValueError("Cannot score an empty forecast.")
    return y_true, y_pred


def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Mean Absolute Error."""
    y_true, y_pred = _as_arrays(y_true, y_pred)
    return float(np.mean(np.abs(y_true - y_pred)))


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Root Mean Squared Error."""
    y_true, y_pred = _as_arrays(y_true, y_pred)
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))


def mape(y_true: np.ndarray, y_pred: np.ndarray, epsilon: float = 1.0) -> float:
    """
    Mean Absolute Percentage Error, in percent.

    Uses epsilon as a floor on |y_true| to avoid division by zero.
    """
    y_true, y_pred = _as_arrays(y_true, y_pred)
    denom = np.maximum(np.abs(y_true), epsilon)
    return float(100.0 * np.mean(np.abs(y_true - y_pred) / denom))


def smape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Symmetric MAPE — less sensitive to small actuals than standard MAPE.
    Returns value in [0, 200].
    """
    y_true, y_pred = _as_arrays(y_true, y_pred)
    denom = (np.abs(y_true) + np.abs(y_pred)) / 2 + 1e-8
    return float(100.0 * np.mean(np.abs(y_true - y_pred) / denom))


def compute_all_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> dict[str, float]:
    """Compute all standard metrics and return as a dict."""
    return {
        "mae": mae(y_true, y_pred),
        "rmse": rmse(y_true, y_pred),
        "mape": mape(y_true, y_pred),
        "smape": smape(y_true, y_pred),
    }


def metrics_dataframe(results: list[dict]) -> pd.DataFrame:
    """
    Convert a list of per-fold metric dicts into a summary DataFrame
    with mean and std across folds.
    """
    df = pd.DataFrame(results).select_dtypes("number").drop(columns=["fold"], errors="ignore")
    summary = pd.DataFrame({
        "metric": df.columns,
        "mean": df.mean().values,
        "std": df.std().values,
        "min": df.min().values,
        "max": df.max().values,
    })
    return summary
