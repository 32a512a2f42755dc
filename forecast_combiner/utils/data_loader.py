"""
data_loader.py — Loads a demand CSV into a regular daily series (columns date, demand).
"""
from __future__ import annotations
import logging
from pathlib import Path
import pandas as pd
import yaml

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent.parent.parent
AGGREGATIONS = {"sum", "mean", "max"}


def resolve_path(path: str | Path) -> Path:
    p = Path(path)
    return p if p.is_absolute() else ROOT / p


def load_config(path: str = "configs/default.yaml") -> dict:
    with open(resolve_path(path)) as f:
        return yaml.safe_load(f)


def load_demand_data(config: dict) -> pd.DataFrame:
    """
    Read the raw CSV and return a gap-free daily frame with columns date, demand.

    Sub-daily readings (e.g. half-hourly load) are aggregated with
    data.daily_agg; missing days are filled by time interpolation.
    """
    data_cfg = config["data"]
    path = resolve_path(data_cfg["path"])
    date_col = data_cfg.get("date_col", "date")
    target_col = data_cfg.get("target_col", "demand")
    how = data_cfg.get("daily_agg", "sum")
    if how not in AGGREGATIONS:
        raise ValueError(f"data.daily_agg must be one of {sorted(AGGREGATIONS)}, got '{how}'")

    logger.info(f"Loading demand data from {path}...")
    raw = pd.read_csv(path)
    missing = [c for c in (date_col, target_col) if c not in raw.columns]
    if missing:
        raise ValueError(f"Columns {missing} not found in {path.name}; available: {list(raw.columns)}")

    s = raw[[date_col, target_col]].copy()
    s[date_col] = pd.to_datetime(s[date_col])
    daily = s.set_index(date_col)[target_col].astype(float).resample("D").agg(how)

    # resample().sum() turns empty days into 0, which would read as zero demand
    counts = s.set_index(date_col)[target_col].resample("D").count()
    daily[counts == 0] = float("nan")
    n_gaps = int(daily.isna().sum())
    if n_gaps:
        logger.warning(f"Interpolating {n_gaps} missing day(s)")
        daily = daily.interpolate(method="time").bfill().ffill()

    df = daily.rename("demand").rename_axis("date").reset_index()
    logger.info(f"Daily series: {len(df):,} days, {df['date'].min().date()} → {df['date'].max().date()}")
    return df
