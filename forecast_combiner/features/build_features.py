"""
build_features.py
-----------------
Deterministic regressors for a daily energy-demand series: trend, calendar
dummies and Fourier seasonality terms.

Key design decisions:
- Every feature is a function of the date alone (plus a fixed trend origin),
  so the same columns can be built for future dates with no leakage
- The trend origin is the first history date and is reused for the future frame
- Fourier terms approximate weekly and annual seasonality with a few
  sin/cos pairs instead of hundreds of dummies
"""

from __future__ import annotations
import logging
from typing import Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

FOURIER_PREFIX = "fourier_"
DOW_DUMMIES = [f"dow_{d}" for d in range(1, 7)]          # Tue..Sun; Monday is the base level
MONTH_DUMMIES = [f"month_{m}" for m in range(2, 13)]     # January is the base level


def to_daily_series(df: pd.DataFrame, column: str, date_col: str = "date") -> pd.Series:
    """Index `column` by date with an explicit daily frequency (statsmodels wants one)."""
    s = df.set_index(date_col)[column].astype(float)
    s.index = pd.DatetimeIndex(s.index, freq="D")
    return s


# ── Trend ─────────────────────────────────────────────────────────────────────

def add_trend(df: pd.DataFrame, origin: Optional[pd.Timestamp] = None) -> pd.DataFrame:
    """Days elapsed since `origin` (defaults to the first date in df)."""
    df = df.copy()
    origin = pd.Timestamp(origin) if origin is not None else df["date"].min()
    df["trend"] = (df["date"] - origin).dt.days.astype(float)
    return df


# ── Fourier Terms ─────────────────────────────────────────────────────────────

def _period_label(period: float) -> str:
    return format(float(period), "g")


def fourier_terms(
    dates: pd.Series,
    period: float,
    K: int,
    origin: Optional[pd.Timestamp] = None,
) -> pd.DataFrame:
    """
    sin(2πkt/P) and cos(2πkt/P) for k = 1..K, t in days since origin.

    Args:
        dates  : date column
        period : seasonal period in days (7 for weekly, 365.25 for annual)
        K      : number of harmonics; must satisfy 1 ≤ K and 2K ≤ period
        origin : date with t = 0
    """
    if K < 1 or 2 * K > period:
        raise ValueError(f"Fourier order K={K} invalid for period {period} (need 1 ≤ K ≤ period/2)")

    dates = pd.to_datetime(pd.Series(dates)).reset_index(drop=True)
    origin = pd.Timestamp(origin) if origin is not None else dates.min()
    t = (dates - origin).dt.days.to_numpy(dtype=float)

    label = _period_label(period)
    cols = {}
    for k in range(1, K + 1):
        cols[f"{FOURIER_PREFIX}sin_{label}_{k}"] = np.sin(2 * np.pi * k * t / period)
        cols[f"{FOURIER_PREFIX}cos_{label}_{k}"] = np.cos(2 * np.pi * k * t / period)
    return pd.DataFrame(cols)


def add_fourier_features(
    df: pd.DataFrame,
    periods: list[dict],
    origin: Optional[pd.Timestamp] = None,
) -> pd.DataFrame:
    """Append Fourier terms for each {"period": P, "K": K} entry."""
    logger.info(f"Building Fourier features: {[(p['period'], p['K']) for p in periods]}")
    df = df.copy()
    for spec in periods:
        terms = fourier_terms(df["date"], spec["period"], spec["K"], origin=origin)
        terms.index = df.index
        df = pd.concat([df, terms], axis=1)
    return df


def fourier_columns(df: pd.DataFrame, period: Optional[float] = None) -> list[str]:
    """Fourier columns of df, optionally only those of one seasonal period."""
    prefixes = (FOURIER_PREFIX,)
    if period is not None:
        label = _period_label(period)
        prefixes = (f"{FOURIER_PREFIX}sin_{label}_", f"{FOURIER_PREFIX}cos_{label}_")
    return [c for c in df.columns if c.startswith(prefixes)]


# ── Calendar Features ─────────────────────────────────────────────────────────

def add_calendar_features(df: pd.DataFrame) -> pd.DataFrame:
    """Day of week and month, plus their one-hot dummies for the regression candidates."""
    logger.info("Building calendar features...")
    df = df.copy()

    df["dayofweek"] = df["date"].dt.dayofweek
    df["month"] = df["date"].dt.month
    for col in DOW_DUMMIES:
        df[col] = (df["dayofweek"] == int(col.split("_")[1])).astype(int)
    for col in MONTH_DUMMIES:
        df[col] = (df["month"] == int(col.split("_")[1])).astype(int)

    return df


# ── Master Builder ────────────────────────────────────────────────────────────

def _add_deterministic(df: pd.DataFrame, config: dict, origin: pd.Timestamp) -> pd.DataFrame:
    df = add_trend(df, origin=origin)
    df = add_calendar_features(df)
    periods = config.get("features", {}).get("fourier", [])
    if periods:
        df = add_fourier_features(df, periods, origin=origin)
    return df


def build_all_features(df: pd.DataFrame, config: dict) -> pd.DataFrame:
    """
    Run the complete feature engineering pipeline on the history frame.

    Args:
        df     : daily frame with columns date and the target
        config : pipeline config dict

    Returns:
        Feature-enriched dataframe sorted by date.
    """
    df = df.sort_values("date").reset_index(drop=True)
    df = _add_deterministic(df, config, origin=df["date"].min())
    logger.info(f"Feature engineering complete. Shape: {df.shape}")
    return df


def make_future_frame(history: pd.DataFrame, horizon: int, config: dict) -> pd.DataFrame:
    """
    Feature frame for the `horizon` days after the last history date.

    Uses the history's first date as trend/Fourier origin so the columns line
    up with those from build_all_features.
    """
    if horizon < 1:
        raise ValueError(f"horizon must be >= 1, got {horizon}")
    last = history["date"].max()
    dates = pd.date_range(last + pd.Timedelta(days=1), periods=horizon, freq="D")
    future = pd.DataFrame({"date": dates})
    return _add_deterministic(future, config, origin=history["date"].min())
