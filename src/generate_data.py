import argparse
import random
import sys
from pathlib import Path

import numpy as np
import pandas as pd

from tree import IndicatorNode, iter_metrics, load_tree, save_tree
from units import guess_unit_and_range


PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_PATH = PROJECT_ROOT / "data" / "delivery_health_tree_structured.json"
OUTPUT_PATH = PROJECT_ROOT / "data" / "delivery_health_tree_enhanced.json"

# Shape of the synthetic sprint window (tuneable)
SERIES_LENGTH = 12
DRIFT = 0.10                 # per-sprint drift, fraction of range
REGIME_SHIFT_PROB = 0.20
REGIME_SHIFT = 0.40          # policy/environment change, fraction of range
REGIME_SHIFT_AFTER = 2       # no shifts in the first sprints
NOISE_PROB = 0.12
NOISE = 0.30                 # anomaly size, fraction of range
NOISE_EDGE = 2               # first/last points left untouched by noise


class InvalidRangeError(ValueError):
    pass


def _clamp(v, minval, maxval) -> float:
    return float(np.clip(v, minval, maxval))


def _round_within(v, minval, maxval, decimals: int):
    """Round to `decimals` places without stepping outside the range."""
    scale = 10 ** decimals
    r = round(v, decimals)
    if r > maxval:
        r = np.floor(maxval * scale) / scale
    elif r < minval:
        r = np.ceil(minval * scale) / scale
    return int(round(r)) if decimals == 0 else float(r)


def generate_realistic_timeseries(minval, maxval, decimals: int, rng=None, length: int = SERIES_LENGTH) -> list:
    """
    Bounded random walk: small drift each sprint, occasional large regime shifts,
    then sparse noise on interior points. Every point stays in [minval, maxval].

    rng: anything with random() and uniform(a, b), e.g. random.Random(seed).
         Defaults to the process-wide `random` module.
         The shift draw happens on every step, warm-up included, so a seeded
         rng consumes the same sequence however REGIME_SHIFT_AFTER is set.
    """
    if maxval < minval:
        raise InvalidRangeError(f"Invalid range: max {maxval} < min {minval}")
    rng = rng if rng is not None else random
    span = maxval - minval

    series = [rng.uniform(minval, maxval)]
    for i in range(length - 1):
        if rng.random() < REGIME_SHIFT_PROB and i > REGIME_SHIFT_AFTER:
            change = rng.uniform(-REGIME_SHIFT, REGIME_SHIFT) * span
        else:
            change = rng.uniform(-DRIFT, DRIFT) * span
        series.append(_clamp(series[-1] + change, minval, maxval))

    for i in range(NOISE_EDGE, len(series) - NOISE_EDGE):
        if rng.random() < NOISE_PROB:
            series[i] = _clamp(series[i] + rng.uniform(-NOISE, NOISE) * span, minval, maxval)

    return [_round_within(v, minval, maxval, decimals) for v in series]


def update_metrics(metrics: list, rng=None) -> list:
    for metric in metrics:
        spec = guess_unit_and_range(metric.metric_name)
        metric.unit = spec.unit
        metric.y_axis_label = spec.y_axis_label
        metric.timeseries = generate_realistic_timeseries(spec.minimum, spec.maximum, spec.decimals, rng=rng)
        metric.value = metric.timeseries[-1]
    return metrics


def process_tree(node: IndicatorNode, rng=None) -> IndicatorNode:
    if node.metrics:
        update_metrics(node.metrics, rng=rng)
    for child in node.children or []:
        process_tree(child, rng=rng)
    return node


def enhance_tree(nodes: list, seed=None) -> list:
    """Regenerates every metric in every root. seed=None -> non-deterministic."""
    rng = random.Random(seed)
    return [process_tree(node, rng=rng) for node in nodes]


def main() -> int:
    ap = argparse.ArgumentParser(description="Fill the delivery health tree with synthetic sprint series.")
    ap.add_argument("--input", type=Path, default=DATA_PATH, help="Structured indicator tree (JSON).")
    ap.add_argument("--output", type=Path, default=OUTPUT_PATH, help="Where to write the enhanced tree.")
    ap.add_argument("--seed", type=int, default=None, help="Seed for a reproducible run.")
    args = ap.parse_args()

    try:
        nodes = load_tree(args.input)
    except FileNotFoundError as e:
        print(e, file=sys.stderr)
        return 1

    nodes = enhance_tree(nodes, seed=args.seed)
    out_path = save_tree(nodes, args.output)

    print("Synthetic delivery health series generated:")
    print(out_path)
    print("\nUnit counts:")
    units = pd.Series([m.unit for m in iter_metrics(nodes)], dtype="object")
    print(units.value_counts().to_string() if len(units) else "(no metrics)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
