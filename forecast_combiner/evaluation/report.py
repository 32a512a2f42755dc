"""
report.py
---------
Human-readable outputs of a combination run: tables and a plotly chart.
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Mapping, Optional

import pandas as pd
import plotly.graph_objects as go

from forecast_combiner.combination.combiner import CandidateResult, CombinationResult

logger = logging.getLogger(__name__)


def weights_table(result: CombinationResult, candidates: Mapping[str, CandidateResult]) -> pd.DataFrame:
    """One row per candidate: held-out RMSE, weight (0 if not a member)."""
    rows = []
    for name, cand in candidates.items():
        rows.append({
            "model": name,
            "rmse": cand.rmse,
            "member": name in result.weights.weights,
            "weight": result.weights.weights.get(name, 0.0),
        })
    return pd.DataFrame(rows).sort_values("weight", ascending=False).reset_index(drop=True)


def forecast_table(result: CombinationResult, candidates: Mapping[str, CandidateResult]) -> pd.DataFrame:
    """Per-day candidate forecasts next to the combined and corrected series."""
    df = pd.DataFrame({name: c.forecast for name, c in candidates.items()})
    df.index.name = "date"
    df = df.reset_index()
    return df.merge(result.to_frame(), on="date", how="left")


def plot_forecasts(
    history: pd.DataFrame,
    candidates: Mapping[str, CandidateResult],
    result: CombinationResult,
    target_col: str = "demand",
    history_days: int = 120,
) -> go.Figure:
    hist = history.sort_values("date").tail(history_days)

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=hist["date"], y=hist[target_col],
        mode="lines", name="Actual",
        line=dict(color="#607d8b", width=2),
    ))
    for name, cand in candidates.items():
        fig.add_trace(go.Scatter(
            x=cand.forecast.index, y=cand.forecast.values,
            mode="lines", name=f"{name} (w={result.weights.weights.get(name, 0.0):.2f})",
            line=dict(width=1, dash="dot"), opacity=0.6,
        ))
    fig.add_trace(go.Scatter(
        x=result.combined.values.index, y=result.combined.values.values,
        mode="lines+markers", name="Combined",
        line=dict(color="#ff9800", width=2),
    ))
    if result.corrected is not None:
        fig.add_trace(go.Scatter(
            x=result.corrected.values.index, y=result.corrected.values.values,
            mode="lines+markers", name=f"Corrected (×{result.corrected.factor:.4f})",
            line=dict(color="#e91e63", width=3),
        ))

    title = "Inverse-RMSE weighted forecast"
    if result.correction_flagged:
        title += " — bias correction skipped"
    fig.update_layout(
        title=title,
        height=480,
        margin=dict(l=10, r=10, t=50, b=10),
        xaxis_title="Date", yaxis_title=target_col.capitalize(),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


def write_report(
    out_dir: Path,
    history: pd.DataFrame,
    candidates: Mapping[str, CandidateResult],
    result: CombinationResult,
    leaderboard: pd.DataFrame,
    specification: Optional[dict] = None,
    target_col: str = "demand",
    history_days: int = 120,
) -> None:
    """Write leaderboard.csv, weights.csv, forecast.csv, combination.json, forecast.html."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    leaderboard.to_csv(out_dir / "leaderboard.csv", index=False)
    weights_table(result, candidates).to_csv(out_dir / "weights.csv", index=False)
    forecast_table(result, candidates).to_csv(out_dir / "forecast.csv", index=False)

    summary = result.summary()
    summary["model_specification"] = specification or {}
    with open(out_dir / "combination.json", "w") as f:
        json.dump(summary, f, indent=2, default=str)

    fig = plot_forecasts(history, candidates, result, target_col=target_col, history_days=history_days)
    fig.write_html(out_dir / "forecast.html")
    logger.info(f"Report written to {out_dir}/")
