"""
test_pipeline.py
----------------
Data loading, demo data and an end-to-end pipeline run on fast models.
"""
import json

import numpy as np
import pandas as pd
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from forecast_combiner.pipeline import build_models, model_specification, run_pipeline
from forecast_combiner.models.linear_model import LinearForecaster
from forecast_combiner.utils.data_loader import load_config, load_demand_data
from forecast_combiner.utils.generate_demo_data import generate_demand_data


def make_config(tmp_path, csv_path, models=("linear", "linear_fourier", "stl_ets"), members=None):
    return {
        "data": {"path": str(csv_path), "date_col": "date", "target_col": "demand", "daily_agg": "sum"},
        "features": {"fourier": [{"period": 7, "K": 3}, {"period": 365.25, "K": 2}]},
        "models": {
            "linear": {"enabled": "linear" in models, "stepwise": True},
            "linear_fourier": {"enabled": "linear_fourier" in models},
            "stl_ets": {"enabled": "stl_ets" in models, "period": 7},
        },
        "evaluation": {
            "forecast_horizon": 7, "eval_horizon": 28, "n_splits": 2,
            "min_train_days": 200, "output_dir": str(tmp_path / "out"),
        },
        "combination": {"members": members},
    }


class TestDataLoader:
    def test_half_hourly_aggregated_and_gaps_filled(self, tmp_path):
        stamps = pd.date_range("2024-01-01", "2024-01-05 23:30", freq="30min")
        raw = pd.DataFrame({"ts": stamps, "load_mw": 1.0})
        raw = raw[raw["ts"].dt.day != 3]  # drop a whole day
        path = tmp_path / "load.csv"
        raw.to_csv(path, index=False)

        cfg = {"data": {"path": str(path), "date_col": "ts", "target_col": "load_mw", "daily_agg": "sum"}}
        df = load_demand_data(cfg)
        assert list(df.columns) == ["date", "demand"]
        assert len(df) == 5
        assert df["demand"].tolist() == pytest.approx([48.0] * 5)

    def test_missing_column(self, tmp_path):
        path = tmp_path / "x.csv"
        pd.DataFrame({"date": ["2024-01-01"], "value": [1]}).to_csv(path, index=False)
        with pytest.raises(ValueError):
            load_demand_data({"data": {"path": str(path)}})

    def test_bad_aggregation(self, tmp_path):
        with pytest.raises(ValueError):
            load_demand_data({"data": {"path": str(tmp_path / "x.csv"), "daily_agg": "median"}})

    def test_default_config_loads(self):
        cfg = load_config()
        assert cfg["evaluation"]["forecast_horizon"] >= 1
        assert set(cfg["combination"]["members"]) <= set(cfg["models"])


class TestDemoData:
    def test_shape_and_seasonality(self):
        df = generate_demand_data(n_days=730, seed=1)
        assert len(df) == 730
        assert {"date", "demand", "temperature"} <= set(df.columns)
        by_dow = df.groupby(df["date"].dt.dayofweek)["demand"].mean()
        assert by_dow[6] < by_dow[2]

    def test_reproducible(self):
        pd.testing.assert_frame_equal(generate_demand_data(100, seed=7), generate_demand_data(100, seed=7))


class TestBuildModels:
    def test_enabled_from_config(self, tmp_path):
        models = build_models(make_config(tmp_path, "unused.csv", models=("linear", "stl_ets")))
        assert set(models) == {"linear", "stl_ets"}

    def test_cli_subset_overrides_config(self, tmp_path):
        models = build_models(make_config(tmp_path, "unused.csv"), enabled=["linear_fourier"])
        assert list(models) == ["linear_fourier"]
        assert models["linear_fourier"].fourier

    def test_unknown_model_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            build_models(make_config(tmp_path, "unused.csv"), enabled=["lstm"])

    def test_specification_records_formula(self):
        model = LinearForecaster(features=["trend"])
        train = pd.DataFrame({"date": pd.date_range("2024-01-01", periods=10), "demand": np.arange(10.0),
                              "trend": np.arange(10.0)})
        model(train, train.drop(columns=["demand"]))
        assert model_specification({"linear": model}) == {"linear": {"formula": "demand ~ 1 + trend"}}


class TestRunPipeline:
    def test_zero_horizon_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="horizon"):
            run_pipeline(make_config(tmp_path, tmp_path / "missing.csv"), horizon=0)

    def test_end_to_end(self, tmp_path):
        csv = tmp_path / "demand.csv"
        generate_demand_data(n_days=400, seed=3).to_csv(csv, index=False)
        config = make_config(tmp_path, csv, members=["linear_fourier", "stl_ets"])

        result = run_pipeline(config)

        assert set(result.weights.names) == {"linear_fourier", "stl_ets"}
        assert sum(result.weights.weights.values()) == pytest.approx(1.0)
        assert not result.correction_flagged
        assert len(result.corrected.values) == 6

        out = tmp_path / "out"
        for name in ["leaderboard.csv", "weights.csv", "forecast.csv", "combination.json", "forecast.html"]:
            assert (out / name).exists(), name

        weights = pd.read_csv(out / "weights.csv")
        assert set(weights["model"]) == {"linear", "linear_fourier", "stl_ets"}
        assert weights.loc[weights["model"] == "linear", "weight"].item() == 0.0

        forecast = pd.read_csv(out / "forecast.csv")
        assert len(forecast) == 7
        assert forecast["corrected"].isna().sum() == 1

        summary = json.loads((out / "combination.json").read_text())
        assert "formula" in summary["model_specification"]["linear"]
        assert summary["correction_factor"] == pytest.approx(result.corrected.factor)
