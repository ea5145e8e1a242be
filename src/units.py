# src/units.py
from __future__ import annotations

from typing import NamedTuple


class MetricSpec(NamedTuple):
    unit: str
    y_axis_label: str
    minimum: float
    maximum: float
    decimals: int


UNITS = ("score", "%", "sprints", "count", "days", "hours", "minutes", "index", "complexity")

SCORE = MetricSpec("score", "Score (0–10)", 0, 10, 1)
PERCENT = MetricSpec("%", "%", 0, 100, 1)
SPRINTS = MetricSpec("sprints", "Number of Sprints", 0, 8, 1)
COUNT = MetricSpec("count", "Count", 0, 120, 0)
DAYS = MetricSpec("days", "Days", 0, 30, 1)
HOURS = MetricSpec("hours", "Hours", 0, 80, 1)
MINUTES = MetricSpec("minutes", "Minutes", 0, 180, 0)
INDEX = MetricSpec("index", "Index", 0, 100, 1)
COMPLEXITY = MetricSpec("complexity", "Complexity Score", 0, 30, 1)

DEFAULT_SPEC = MetricSpec("count", "Count", 0, 100, 0)


def _any_of(*keywords):
    return lambda name: any(k in name for k in keywords)


def _sprint_count(name: str) -> bool:
    return "sprint" in name and ("avg number" in name or "number of sprints" in name)


# Order matters: first match wins ("Estimation Score %" is a score, not a %).
# Each rule: (keywords shown in reports, predicate on lower-cased name, spec)
UNIT_RULES = [
    ('"self-assessment score" | "rate" | "score"', _any_of("self-assessment score", "rate", "score"), SCORE),
    ('"%" | "percent" | "coverage"', _any_of("%", "percent", "coverage"), PERCENT),
    ('"sprint" & ("avg number" | "number of sprints")', _sprint_count, SPRINTS),
    ('"# of" | "number of" | "count"', _any_of("# of", "number of", "count"), COUNT),
    ('"days" | "duration" | "age"', _any_of("days", "duration", "age"), DAYS),
    ('"hours" | "hour"', _any_of("hours", "hour"), HOURS),
    ('"minutes"', _any_of("minutes"), MINUTES),
    ('"touch time" | "total time"', _any_of("touch time", "total time"), DAYS),
    ('"index"', _any_of("index"), INDEX),
    ('"complexity" | "cyclomatic"', _any_of("complexity", "cyclomatic"), COMPLEXITY),
]


def guess_unit_and_range(metric_name: str) -> MetricSpec:
    """
    Infer (unit, y_axis_label, minimum, maximum, decimals) from a metric's display name.
    Never raises: names matching no rule get DEFAULT_SPEC.
    """
    name = str(metric_name or "").lower()
    for _, matches, spec in UNIT_RULES:
        if matches(name):
            return spec
    return DEFAULT_SPEC
