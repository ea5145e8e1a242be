# src/metrics.py
from __future__ import annotations

import pandas as pd

from tree import iter_nodes
from units import UNIT_RULES, UNITS, DEFAULT_SPEC, guess_unit_and_range


WHOLE_NUMBER_UNITS = ("count", "days", "sprints")


def has_series(metric) -> bool:
    values = metric.timeseries
    if not isinstance(values, list) or not values:
        return False
    return all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in values)


def target_value(metric) -> float | None:
    """The metric's target as a number; None when absent or not numeric (e.g. "tbd")."""
    if metric.target is None or isinstance(metric.target, bool):
        return None
    try:
        return float(metric.target)
    except (TypeError, ValueError):
        return None


def summarize_metric(metric, higher_is_better: bool | None = None) -> dict | None:
    """
    Card-style summary of one metric: current value, change vs the first sprint, trend.
    higher_is_better defaults to the metric's own "higher_is_better" field, else True.
    Returns None when the metric has no usable series.
    """
    if not has_series(metric):
        return None
    if higher_is_better is None:
        higher_is_better = bool(metric.extra.get("higher_is_better", True))

    values = metric.timeseries
    unit = metric.unit or ""
    value = metric.value if isinstance(metric.value, (int, float)) else values[-1]
    delta = values[-1] - values[0]
    trend = "up" if delta > 0 else "down" if delta < 0 else "neutral"

    val_format = "{:.0f}" if unit in WHOLE_NUMBER_UNITS else "{:.1f}"
    value_display = val_format.format(value)
    delta_display = f"{'+' if delta >= 0 else ''}{val_format.format(delta)}"
    if unit == "%":
        value_display = f"{value:.1f}%"
        delta_display = f"{'+' if delta >= 0 else ''}{delta:.1f}%"
    elif unit == "score":
        value_display = f"{value:.1f}"
    elif unit:
        value_display = f"{value_display} {unit}"

    is_good = (trend == "up" and higher_is_better) or (trend == "down" and not higher_is_better)
    return {
        "metric": metric.metric_name,
        "unit": unit,
        "start": values[0],
        "value": value,
        "delta": delta,
        "trend": trend,
        "arrow": "▲" if trend == "up" else "▼" if trend == "down" else "",
        "is_good": is_good,
        "value_display": value_display,
        "delta_display": delta_display,
    }


def metrics_frame(nodes) -> pd.DataFrame:
    """
    One row per metric across the whole tree (pre-order).
    Metrics without a series keep their row with empty numeric columns.
    """
    rows = []
    for path, level, node in iter_nodes(nodes):
        for m in node.metrics or []:
            spec = guess_unit_and_range(m.metric_name)
            row = {
                "path": path,
                "indicator": node.indicator,
                "level": level,
                "metric": m.metric_name,
                "unit": m.unit or spec.unit,
                "min": spec.minimum,
                "max": spec.maximum,
                "target": m.target,
                "points": 0,
                "start": None,
                "value": None,
                "delta": None,
                "mean": None,
                "trend": "no data",
            }
            summary = summarize_metric(m)
            if summary is not None:
                row.update(
                    points=len(m.timeseries),
                    start=summary["start"],
                    value=summary["value"],
                    delta=summary["delta"],
                    mean=float(pd.Series(m.timeseries).mean()),
                    trend=summary["trend"],
                )
            rows.append(row)

    columns = ["path", "indicator", "level", "metric", "unit", "min", "max", "target",
               "points", "start", "value", "delta", "mean", "trend"]
    return pd.DataFrame(rows, columns=columns)


def unit_mix_table(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Metric count per unit, in the canonical unit order.
    Returns a dataframe with: unit, Metrics, Avg_Value
    """
    if frame.empty:
        return pd.DataFrame(columns=["unit", "Metrics", "Avg_Value"])

    frame = frame.assign(value=pd.to_numeric(frame["value"], errors="coerce"))
    grp = frame.groupby("unit").agg(
        Metrics=("metric", "count"),
        Avg_Value=("value", "mean"),
    ).reset_index()

    grp["unit"] = pd.Categorical(grp["unit"], categories=list(UNITS), ordered=True)
    return grp.sort_values("unit").reset_index(drop=True)


def build_data_lineage() -> list[dict]:
    """
    How each metric's unit and range are inferred from its name (first matching rule wins).
    """
    rows = []
    for i, (keywords, _, spec) in enumerate(UNIT_RULES, start=1):
        rows.append(_lineage_row(str(i), keywords, spec))
    rows.append(_lineage_row("default", "(no rule matched)", DEFAULT_SPEC))
    return rows


def _lineage_row(rule, keywords, spec) -> dict:
    return {
        "rule": rule,
        "keywords": keywords,
        "unit": spec.unit,
        "label": spec.y_axis_label,
        "range": f"{spec.minimum}–{spec.maximum}",
        "decimals": spec.decimals,
    }


def report_context(nodes, data_source_name: str) -> dict:
    """
    Minimal context block for the report header.
    """
    node_count = 0
    metric_count = 0
    sprints = 0
    for _, _, node in iter_nodes(nodes):
        node_count += 1
        for m in node.metrics or []:
            metric_count += 1
            if has_series(m):
                sprints = max(sprints, len(m.timeseries))

    return {
        "data_source": data_source_name,
        "indicators": node_count,
        "metrics": metric_count,
        "sprint_window": f"Sprint 1 → Sprint {sprints}" if sprints else "N/A",
    }
