"""
test_features.py
----------------
Unit tests for the deterministic feature builders and stepwise selection.
"""
import numpy as np
import pandas as pd
import pytest
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from forecast_combiner.features.build_features import (
    DOW_DUMMIES,
    MONTH_DUMMIES,
    add_calendar_features,
    add_trend,
    build_all_features,
    fourier_columns,
    fourier_terms,
    make_future_frame,
)
from forecast_combiner.features.selection import stepwise_select

CONFIG = {"features": {"fourier": [{"period": 7, "K": 2}, {"period": 365.25, "K": 3}]}}


def make_demand_df(n_days=120, seed=0):
    rng = np.random.default_rng(seed)
    dates = pd.date_range("2023-01-01", periods=n_days, freq="D")
    t = np.arange(n_days)
    demand = 100 + 0.05 * t + 3 * np.sin(2 * np.pi * t / 7) + rng.normal(0, 0.5, n_days)
    return pd.DataFrame({"date": dates, "demand": demand})


class TestFourierTerms:
    def test_column_names_and_count(self):
        terms = fourier_terms(pd.date_range("2024-01-01", periods=10), period=7, K=3)
        assert list(terms.columns) == [
            "fourier_sin_7_1", "fourier_cos_7_1",
            "fourier_sin_7_2", "fourier_cos_7_2",
            "fourier_sin_7_3", "fourier_cos_7_3",
        ]

    def test_periodicity(self):
        terms = fourier_terms(pd.date_range("2024-01-01", periods=30), period=7, K=2)
        np.testing.assert_allclose(terms.iloc[0].values, terms.iloc[7].values, atol=1e-12)
        np.testing.assert_allclose(terms.iloc[3].values, terms.iloc[17].values, atol=1e-12)

    def test_values_at_origin(self):
        terms = fourier_terms(pd.date_range("2024-01-01", periods=3), period=365.25, K=1)
        assert terms.loc[0, "fourier_sin_365.25_1"] == pytest.approx(0.0)
        assert terms.loc[0, "fourier_cos_365.25_1"] == pytest.approx(1.0)

    @pytest.mark.parametrize("K", [0, 4])
    def test_invalid_order(self, K):
        with pytest.raises(ValueError):
            fourier_terms(pd.date_range("2024-01-01", periods=3), period=7, K=K)


class TestCalendarFeatures:
    def test_calendar_columns_exist(self):
        result = add_calendar_features(make_demand_df())
        for col in ["dayofweek", "month"] + DOW_DUMMIES + MONTH_DUMMIES:
            assert col in result.columns, f"Missing column: {col}"
        for col in ["dayofyear", "is_weekend", "dow_sin", "dow_cos", "month_sin", "month_cos"]:
            assert col not in result.columns

    def test_dummies_one_hot(self):
        result = add_calendar_features(make_demand_df())
        dow = result[DOW_DUMMIES].sum(axis=1)
        # Monday rows are the base level: all dummies zero
        assert (dow[result["dayofweek"] == 0] == 0).all()
        assert (dow[result["dayofweek"] != 0] == 1).all()
        assert result[MONTH_DUMMIES].sum(axis=1).max() == 1

    def test_sunday_dummy_is_dow_6(self):
        result = add_calendar_features(make_demand_df())
        sundays = result["dayofweek"] == 6
        assert (result.loc[sundays, "dow_6"] == 1).all()
        assert (result.loc[~sundays, "dow_6"] == 0).all()


class TestTrend:
    def test_trend_counts_days(self):
        df = add_trend(make_demand_df(n_days=5))
        assert df["trend"].tolist() == [0.0, 1.0, 2.0, 3.0, 4.0]


class TestFeatureFrames:
    def test_build_all_features(self):
        df = build_all_features(make_demand_df(), CONFIG)
        assert len(fourier_columns(df)) == 2 * 2 + 2 * 3
        assert "trend" in df.columns
        assert df["date"].is_monotonic_increasing

    def test_fourier_columns_by_period(self):
        df = build_all_features(make_demand_df(), CONFIG)
        assert fourier_columns(df, period=7) == [
            "fourier_sin_7_1", "fourier_cos_7_1", "fourier_sin_7_2", "fourier_cos_7_2",
        ]
        assert len(fourier_columns(df, period=365.25)) == 2 * 3

    def test_future_frame_continues_history(self):
        history = build_all_features(make_demand_df(n_days=60), CONFIG)
        future = make_future_frame(history, horizon=14, config=CONFIG)
        assert len(future) == 14
        assert future["date"].iloc[0] == history["date"].iloc[-1] + pd.Timedelta(days=1)
        assert future["trend"].iloc[0] == history["trend"].iloc[-1] + 1
        assert set(fourier_columns(future)) == set(fourier_columns(history))
        assert "demand" not in future.columns

    def test_future_features_match_history_features(self):
        """Features built for a date must not depend on whether it is history or future."""
        full = build_all_features(make_demand_df(n_days=80), CONFIG)
        history = full.iloc[:66]
        future = make_future_frame(history, horizon=14, config=CONFIG)
        cols = fourier_columns(full) + ["trend"] + DOW_DUMMIES
        np.testing.assert_allclose(future[cols].values, full.iloc[66:][cols].values, atol=1e-9)

    def test_invalid_horizon(self):
        with pytest.raises(ValueError):
            make_future_frame(make_demand_df(), horizon=0, config=CONFIG)


class TestStepwiseSelection:
    def make_regression_df(self, n=300, seed=3):
        rng = np.random.default_rng(seed)
        df = pd.DataFrame({
            "x1": rng.normal(size=n),
            "x2": rng.normal(size=n),
            "noise": rng.normal(size=n),
        })
        df["y"] = 5 + 3 * df["x1"] - 2 * df["x2"] + rng.normal(0, 0.5, n)
        return df

    def test_forward_picks_strongest_first(self):
        selected = stepwise_select(self.make_regression_df(), "y", ["noise", "x2", "x1"], direction="forward")
        assert selected[:2] == ["x1", "x2"]

    def test_backward_keeps_true_regressors(self):
        selected = stepwise_select(self.make_regression_df(), "y", ["x1", "x2", "noise"], direction="backward")
        assert {"x1", "x2"} <= set(selected)

    def test_both_directions(self):
        selected = stepwise_select(self.make_regression_df(), "y", ["x1", "x2", "noise"])
        assert {"x1", "x2"} <= set(selected)

    def test_empty_candidates(self):
        assert stepwise_select(self.make_regression_df(), "y", []) == []

    def test_bad_direction(self):
        with pytest.raises(ValueError):
            stepwise_select(self.make_regression_df(), "y", ["x1"], direction="sideways")

    def test_missing_column(self):
        with pytest.raises(ValueError):
            stepwise_select(self.make_regression_df(), "y", ["x1", "x9"])
