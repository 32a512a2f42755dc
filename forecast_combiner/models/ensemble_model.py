"""ensemble_model.py — Inverse-RMSE weighted combination of candidate forecasters."""
from __future__ import annotations
import logging
from typing import Optional, Sequence

import pandas as pd

from forecast_combiner.combination.combiner import CandidateResult, CombinationResult, combine_candidates
from forecast_combiner.evaluation.backtest import BacktestResult
from forecast_combiner.evaluation.candidates import evaluate_candidate

logger = logging.getLogger(__name__)


class InverseErrorEnsemble:
    """
    Evaluates each candidate on a held-out window, refits it on the full
    history, and combines the members' forecasts with weights ∝ 1/RMSE.

    Args:
        models         : name → forecaster callable(train_df, test_df)
        members        : names entering the combination (None = every candidate)
        eval_horizon   : held-out block length used for the RMSE
        n_splits       : number of held-out blocks
        min_train_days : minimum training history per block
        target         : response column
    """

    def __init__(self, models: dict, members: Optional[Sequence[str]] = None,
                 eval_horizon: int = 28, n_splits: int = 1, min_train_days: int = 365,
                 target: str = "demand"):
        if not models:
            raise ValueError("InverseErrorEnsemble needs at least one candidate model")
        self.models = models
        self.members = list(members) if members is not None else None
        self.eval_horizon = eval_horizon; self.n_splits = n_splits
        self.min_train_days = min_train_days; self.target = target
        self.candidates_: dict[str, CandidateResult] = {}
        self.backtests_: dict[str, BacktestResult] = {}
        self.result_: Optional[CombinationResult] = None

    def evaluate(self, history: pd.DataFrame, future_df: pd.DataFrame) -> dict[str, CandidateResult]:
        """Held-out RMSE + production forecast per candidate; failing candidates are dropped."""
        self.candidates_, self.backtests_ = {}, {}
        for name, fn in self.models.items():
            logger.info(f"▶ {name}")
            try:
                cand, bt = evaluate_candidate(
                    name, fn, history, future_df, target_col=self.target,
                    eval_horizon=self.eval_horizon, n_splits=self.n_splits,
                    min_train_days=self.min_train_days,
                )
            except Exception as e:
                logger.error(f"{name} failed: {e}")
                continue
            self.candidates_[name] = cand
            self.backtests_[name] = bt
        if not self.candidates_:
            raise RuntimeError("Every candidate model failed; nothing to combine")
        return self.candidates_

    def combine(self, actual_last: float) -> CombinationResult:
        notes = []
        members = self.members
        if members is not None:
            dropped = [m for m in members if m not in self.candidates_]
            for m in dropped:
                notes.append(f"Member '{m}' unavailable (disabled or failed) and was left out")
                logger.warning(notes[-1])
            members = [m for m in members if m in self.candidates_]
            if not members:
                raise RuntimeError(f"None of the configured members {self.members} produced a forecast")

        result = combine_candidates(self.candidates_.values(), actual_last, members=members)
        result.warnings = notes + result.warnings
        self.result_ = result
        for name, w in result.weights.weights.items():
            logger.info(f"  weight[{name}] = {w:.4f} (RMSE={self.candidates_[name].rmse:.3f})")
        return result

    def fit_combine(self, history: pd.DataFrame, future_df: pd.DataFrame) -> CombinationResult:
        self.evaluate(history, future_df)
        actual_last = float(history.sort_values("date")[self.target].iloc[-1])
        return self.combine(actual_last)

    def __call__(self, train_df, test_df):
        return self.fit_combine(train_df, test_df).point_forecast.to_numpy(dtype=float)
