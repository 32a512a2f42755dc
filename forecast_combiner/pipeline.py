"""
pipeline.py
-----------
Master pipeline: data → features → candidate evaluation → combination → report.

Candidates:
  - ARIMA with Fourier regressors, STL + ETS, TBATS, Prophet
  - Linear regression with calendar dummies / with Fourier terms
  - Neural network autoregression (NNAR)

Each candidate's held-out RMSE sets its inverse-error weight; the combined
forecast is then rescaled to the last observed demand.

Usage:
    python -m forecast_combiner.pipeline
    python -m forecast_combiner.pipeline --models arima_fourier stl_ets linear_fourier
    python -m forecast_combiner.pipeline --members arima_fourier stl_ets --horizon 7
"""

from __future__ import annotations
import argparse
import logging
from typing import Optional

from forecast_combiner.combination.combiner import CombinationResult
from forecast_combiner.evaluation.backtest import compare_models
from forecast_combiner.evaluation.report import write_report
from forecast_combiner.features.build_features import build_all_features, make_future_frame
from forecast_combiner.models.arima_model import ARIMAForecaster
from forecast_combiner.models.ensemble_model import InverseErrorEnsemble
from forecast_combiner.models.ets_model import STLETSForecaster
from forecast_combiner.models.linear_model import LinearForecaster
from forecast_combiner.models.nnar_model import NNARForecaster
from forecast_combiner.models.prophet_model import ProphetForecaster
from forecast_combiner.models.tbats_model import TBATSForecaster
from forecast_combiner.utils.data_loader import load_config, load_demand_data, resolve_path

logger = logging.getLogger(__name__)

MODEL_NAMES = ["arima_fourier", "stl_ets", "linear", "linear_fourier", "tbats", "nnar", "prophet"]


def build_models(config: dict, enabled: Optional[list[str]] = None) -> dict:
    """Instantiate all enabled candidate models from config."""
    model_cfg = config["models"]

    def is_enabled(name: str) -> bool:
        if enabled is not None:
            return name in enabled
        return model_cfg.get(name, {}).get("enabled", False)

    if enabled is not None:
        unknown = sorted(set(enabled) - set(MODEL_NAMES))
        if unknown:
            raise ValueError(f"Unknown models {unknown}; choose from {MODEL_NAMES}")

    models = {}
    if is_enabled("arima_fourier"):
        cfg = model_cfg.get("arima_fourier", {})
        models["arima_fourier"] = ARIMAForecaster(
            order=cfg.get("order"),
            max_p=cfg.get("max_p", 2),
            max_q=cfg.get("max_q", 2),
            d=cfg.get("d", 1),
        )
    if is_enabled("stl_ets"):
        cfg = model_cfg.get("stl_ets", {})
        models["stl_ets"] = STLETSForecaster(
            period=cfg.get("period", 7),
            trend=cfg.get("trend", "add"),
            damped_trend=cfg.get("damped_trend", True),
        )
    if is_enabled("linear"):
        cfg = model_cfg.get("linear", {})
        models["linear"] = LinearForecaster(
            features=cfg.get("features"), fourier=False, stepwise=cfg.get("stepwise", False),
        )
    if is_enabled("linear_fourier"):
        cfg = model_cfg.get("linear_fourier", {})
        models["linear_fourier"] = LinearForecaster(
            features=cfg.get("features"), fourier=True, stepwise=cfg.get("stepwise", False),
        )
    if is_enabled("tbats"):
        cfg = model_cfg.get("tbats", {})
        models["tbats"] = TBATSForecaster(
            seasonal_periods=cfg.get("seasonal_periods", [7, 365.25]),
            use_arma_errors=cfg.get("use_arma_errors", False),
        )
    if is_enabled("nnar"):
        cfg = model_cfg.get("nnar", {})
        models["nnar"] = NNARForecaster(
            p=cfg.get("p", 7),
            P=cfg.get("P", 1),
            period=cfg.get("period", 7),
            hidden_size=cfg.get("hidden_size"),
            n_networks=cfg.get("n_networks", 5),
            max_iter=cfg.get("max_iter", 500),
            random_state=cfg.get("random_state", 42),
        )
    if is_enabled("prophet"):
        cfg = model_cfg.get("prophet", {})
        models["prophet"] = ProphetForecaster(
            yearly_seasonality=cfg.get("yearly_seasonality", True),
            weekly_seasonality=cfg.get("weekly_seasonality", True),
            changepoint_prior_scale=cfg.get("changepoint_prior_scale", 0.05),
        )
    return models


def model_specification(models: dict) -> dict:
    """Choices made during fitting (ARIMA order, regressors) so they can be recorded."""
    spec = {}
    for name, m in models.items():
        if isinstance(m, ARIMAForecaster) and m.order_ is not None:
            spec[name] = {"order": list(m.order_)}
        elif isinstance(m, LinearForecaster) and m.selected_features_ is not None:
            spec[name] = {"formula": m.formula}
        elif isinstance(m, NNARForecaster):
            spec[name] = {"lags": m.lags, "hidden_size": m.hidden_size}
    return spec


def run_pipeline(
    config: dict,
    enabled_models: Optional[list[str]] = None,
    members: Optional[list[str]] = None,
    horizon: Optional[int] = None,
) -> CombinationResult:
    eval_cfg = config["evaluation"]
    if horizon is None:
        horizon = eval_cfg["forecast_horizon"]
    if horizon < 1:
        raise ValueError(f"Forecast horizon must be >= 1, got {horizon}")
    out_dir = resolve_path(eval_cfg["output_dir"])

    # ── 1. Data ───────────────────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("STEP 1/5 — Loading demand data")
    logger.info("=" * 60)
    demand = load_demand_data(config)

    # ── 2. Features ───────────────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("STEP 2/5 — Feature engineering")
    logger.info("=" * 60)
    history = build_all_features(demand, config)
    future_df = make_future_frame(history, horizon, config)

    # ── 3. Candidate models ───────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("STEP 3/5 — Held-out evaluation and refit of candidates")
    logger.info("=" * 60)
    models = build_models(config, enabled=enabled_models)
    if not models:
        raise ValueError("No models enabled.")

    if members is None:
        members = config.get("combination", {}).get("members")
    ensemble = InverseErrorEnsemble(
        models,
        members=members,
        eval_horizon=eval_cfg.get("eval_horizon", horizon),
        n_splits=eval_cfg.get("n_splits", 1),
        min_train_days=eval_cfg.get("min_train_days", 365),
    )
    candidates = ensemble.evaluate(history, future_df)

    # ── 4. Combination ────────────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("STEP 4/5 — Inverse-RMSE combination and bias correction")
    logger.info("=" * 60)
    result = ensemble.combine(actual_last=float(history["demand"].iloc[-1]))

    # ── 5. Report ─────────────────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("STEP 5/5 — Report")
    logger.info("=" * 60)
    leaderboard = compare_models(list(ensemble.backtests_.values()))
    write_report(
        out_dir, history, candidates, result, leaderboard,
        specification=model_specification(models),
        history_days=eval_cfg.get("plot_history_days", 120),
    )

    print("\n" + "=" * 60)
    print("🏆  CANDIDATE LEADERBOARD (held-out)")
    print("=" * 60)
    print(leaderboard.to_string())
    print("\nWeights:")
    print(result.weights.as_series().round(4).to_string())
    if result.correction_flagged:
        print("\n⚠️  Bias correction skipped — combined forecast reported uncorrected")
    else:
        print(f"\nCorrection factor: {result.corrected.factor:.5f}")
    print(result.to_frame().to_string(index=False))
    print(f"\n✅ Outputs → {out_dir}/")
    return result


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    parser = argparse.ArgumentParser(description="Energy demand forecast combination")
    parser.add_argument("--config", default="configs/default.yaml")
    parser.add_argument("--models", nargs="+", help=f"Subset of candidates to fit: {' '.join(MODEL_NAMES)}")
    parser.add_argument("--members", nargs="+", help="Candidates entering the weighted combination")
    parser.add_argument("--horizon", type=int, help="Forecast horizon in days")
    args = parser.parse_args()
    run_pipeline(load_config(args.config), enabled_models=args.models,
                 members=args.members, horizon=args.horizon)


if __name__ == "__main__":
    main()
