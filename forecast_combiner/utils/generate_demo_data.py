"""
generate_demo_data.py — Generates a synthetic daily electricity-demand CSV.
Usage: python -m forecast_combiner.utils.generate_demo_data
"""
import numpy as np
import pandas as pd
import logging

from forecast_combiner.utils.data_loader import load_config, resolve_path

logger = logging.getLogger(__name__)

def generate_demand_data(n_days=1095, seed=42, start="2021-01-01"):
    rng = np.random.default_rng(seed)
    dates = pd.date_range(pd.Timestamp(start), periods=n_days, freq="D")
    t = np.arange(n_days)

    # Temperature drives heating (winter) and cooling (summer) load
    temp = 12 + 10*np.sin(2*np.pi*(t - 110)/365.25) + rng.normal(0, 2.5, n_days)
    heating = 0.9*np.maximum(0, 15 - temp)
    cooling = 0.6*np.maximum(0, temp - 22)

    weekly = np.array([1.0, 1.5, 1.6, 1.5, 1.2, -2.5, -3.3])[dates.dayofweek]
    demand = 100 + 0.01*t + heating + cooling + weekly + rng.normal(0, 1.2, n_days)
    return pd.DataFrame({"date": dates, "demand": demand.round(3), "temperature": temp.round(2)})

def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    cfg = load_config()
    out = resolve_path(cfg["data"]["path"])
    out.parent.mkdir(parents=True, exist_ok=True)
    df = generate_demand_data(n_days=cfg["data"]["n_demo_days"], seed=cfg["data"]["seed"])
    df.to_csv(out, index=False)
    logger.info(f"✅ Demo data saved to {out} | shape: {df.shape}")

if __name__ == "__main__":
    main()
