"""
selection.py
------------
AIC-driven stepwise selection of OLS regressors.

Each step tries every single addition (forward) and/or removal (backward)
and keeps the move with the lowest AIC. Stops when no move improves AIC.
The returned list is meant to be recorded and reused, not re-derived on
every refit.
"""

from __future__ import annotations
import logging

import numpy as np
import pandas as pd
import statsmodels.api as sm

logger = logging.getLogger(__name__)

DIRECTIONS = {"forward", "backward", "both"}


def ols_aic(df: pd.DataFrame, target: str, columns: list[str]) -> float:
    """AIC of an OLS fit of target on an intercept plus `columns`."""
    y = df[target].astype(float).to_numpy()
    if columns:
        X = sm.add_constant(df[columns].astype(float), has_constant="add")
    else:
        X = np.ones((len(df), 1))
    return float(sm.OLS(y, X).fit().aic)


def stepwise_select(
    df: pd.DataFrame,
    target: str,
    candidates: list[str],
    direction: str = "both",
) -> list[str]:
    """
    Stepwise AIC selection.

    Args:
        df         : training frame containing target and candidate columns
        target     : response column
        candidates : regressors eligible for selection
        direction  : "forward" (start empty), "backward" (start full) or
                     "both" (start empty, allow removals)

    Returns:
        Selected regressors in the order they entered the model.
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be one of {sorted(DIRECTIONS)}, got '{direction}'")
    missing = [c for c in candidates if c not in df.columns]
    if missing:
        raise ValueError(f"Candidate columns not in frame: {missing}")
    if not candidates:
        return []

    selected = list(candidates) if direction == "backward" else []
    best_aic = ols_aic(df, target, selected)

    while True:
        moves: list[tuple[float, str, str]] = []
        if direction in ("forward", "both"):
            for col in candidates:
                if col not in selected:
                    moves.append((ols_aic(df, target, selected + [col]), "+", col))
        if direction in ("backward", "both"):
            for col in selected:
                rest = [c for c in selected if c != col]
                moves.append((ols_aic(df, target, rest), "-", col))

        if not moves:
            break
        aic, op, col = min(moves, key=lambda m: m[0])
        if aic >= best_aic:
            break

        if op == "+":
            selected.append(col)
        else:
            selected.remove(col)
        logger.debug(f"Stepwise {op}{col}: AIC {best_aic:.2f} → {aic:.2f}")
        best_aic = aic

    logger.info(f"Stepwise ({direction}) selected {len(selected)}/{len(candidates)} regressors, AIC={best_aic:.2f}")
    return selected
