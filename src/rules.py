# src/rules.py
from __future__ import annotations

from tree import find_metric, iter_metrics
from metrics import has_series, target_value
from units import guess_unit_and_range


# -------------------------
# Thresholds (tune as needed)
# Adverse move over the sprint window, as a fraction of the metric's range
# -------------------------
SHIFT_HIGH = 0.25
SHIFT_MEDIUM = 0.10

# The metrics that drive the delivery story, located by keyword in their names.
# (category, keyword, higher_is_better, issue, action)
DELIVERY_SIGNALS = [
    (
        "FLOW",
        "work in progress",
        False,
        "Work in progress is accumulating.",
        "Restore explicit WIP limits and stop starting new work until items finish.",
    ),
    (
        "FLOW",
        "cycle time",
        False,
        "Cycle time is lengthening.",
        "Swarm on the oldest items and remove queues between workflow stages.",
    ),
    (
        "PREDICTABILITY",
        "carry-over",
        False,
        "Unfinished work is carried over between sprints.",
        "Plan to measured throughput and reserve capacity for spill-over.",
    ),
    (
        "FOCUS",
        "interrupt",
        False,
        "BAU interrupts are fragmenting team focus.",
        "Introduce a BAU rotation with a fixed buffer so interrupts do not hit planned work.",
    ),
    (
        "PREDICTABILITY",
        "estimation",
        True,
        "Estimation discipline is eroding.",
        "Enforce Definition of Ready and review estimate accuracy at every retrospective.",
    ),
]


def _severity(adverse_share: float) -> str | None:
    if adverse_share >= SHIFT_HIGH:
        return "HIGH"
    if adverse_share >= SHIFT_MEDIUM:
        return "MEDIUM"
    return None


def generate_recommendations(nodes) -> list[dict]:
    """
    Deterministic, auditable rules engine.
    Input: indicator tree (after generate_data.enhance_tree)
    Output: list of recommendations:
      {category, severity, metric, issue, action, rationale}
    """
    recommendations: list[dict] = []

    # -------------------------
    # Trend signals on the key delivery metrics
    # -------------------------
    for category, keyword, higher_is_better, issue, action in DELIVERY_SIGNALS:
        metric = find_metric(nodes, keyword)
        if metric is None or not has_series(metric):
            continue

        spec = guess_unit_and_range(metric.metric_name)
        span = float(spec.maximum - spec.minimum) or 1.0
        first, last = float(metric.timeseries[0]), float(metric.timeseries[-1])
        change = (last - first) / span
        adverse = -change if higher_is_better else change

        severity = _severity(adverse)
        if severity is None:
            continue

        direction = "fell" if change < 0 else "rose"
        recommendations.append({
            "category": category,
            "severity": severity,
            "metric": metric.metric_name,
            "issue": issue,
            "action": action,
            "rationale": (
                f"{metric.metric_name} {direction} from {first:g} to {last:g} "
                f"({abs(change)*100:.1f}% of its {spec.minimum}–{spec.maximum} range)"
            ),
        })

    # -------------------------
    # TARGET – current value on the wrong side of an explicit target
    # -------------------------
    for metric in iter_metrics(nodes):
        target = target_value(metric)
        if target is None or not has_series(metric):
            continue

        value = float(metric.timeseries[-1])
        higher_is_better = bool(metric.extra.get("higher_is_better", True))
        missed = value < target if higher_is_better else value > target
        if missed:
            recommendations.append({
                "category": "TARGET",
                "severity": "MEDIUM",
                "metric": metric.metric_name,
                "issue": f"{metric.metric_name} is off target.",
                "action": "Review the owning indicator and agree a recovery plan for the next sprint.",
                "rationale": f"Current value {value:g} vs target {target:g}",
            })

    # -------------------------
    # STATUS fallback
    # -------------------------
    if not recommendations:
        recommendations.append({
            "category": "STATUS",
            "severity": "LOW",
            "metric": "",
            "issue": "Delivery metrics within expected ranges.",
            "action": "Maintain the current operating model and continue monitoring.",
            "rationale": "No thresholds were breached in the sprint window.",
        })

    return recommendations
