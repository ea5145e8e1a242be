from generate_data import enhance_tree
from metrics import (
    build_data_lineage,
    has_series,
    metrics_frame,
    report_context,
    summarize_metric,
    unit_mix_table,
)
from tree import Metric
from units import UNIT_RULES


def test_has_series():
    assert has_series(Metric("x", timeseries=[1, 2.5]))
    assert not has_series(Metric("x"))
    assert not has_series(Metric("x", timeseries=[]))
    assert not has_series(Metric("x", timeseries=[1, "n/a"]))
    assert not has_series(Metric("x", timeseries="1,2,3"))


def test_summarize_percent_metric():
    m = Metric("Code Coverage %", unit="%", timeseries=[60.0, 65.5, 70.2], value=70.2)
    s = summarize_metric(m)
    assert s["trend"] == "up"
    assert s["arrow"] == "▲"
    assert s["is_good"] is True
    assert s["value_display"] == "70.2%"
    assert s["delta_display"] == "+10.2%"


def test_summarize_respects_higher_is_better():
    m = Metric("# of Blocked Items", unit="count", timeseries=[10, 14], value=14,
               extra={"higher_is_better": False})
    s = summarize_metric(m)
    assert s["trend"] == "up"
    assert s["is_good"] is False
    assert s["value_display"] == "14 count"
    assert s["delta_display"] == "+4"
    assert summarize_metric(m, higher_is_better=True)["is_good"] is True


def test_summarize_score_and_flat():
    m = Metric("Team Self-Assessment Score", unit="score", timeseries=[6.0, 6.0], value=6.0)
    s = summarize_metric(m)
    assert s["trend"] == "neutral"
    assert s["arrow"] == ""
    assert s["is_good"] is False
    assert s["value_display"] == "6.0"


def test_summarize_no_data():
    assert summarize_metric(Metric("Anything")) is None


def test_metrics_frame(nodes):
    enhance_tree(nodes, seed=4)
    nodes[0].metrics.append(Metric("Empty Count"))

    frame = metrics_frame(nodes)
    assert list(frame["metric"]) == [
        "Total Work in Progress (# of items)",
        "Average Cycle Time (Days)",
        "Empty Count",
        "Code Coverage %",
    ]
    assert list(frame["path"]) == ["Flow", "Flow", "Flow", "Flow/Quality"]

    filled = frame[frame["trend"] != "no data"]
    assert (filled["points"] == 12).all()
    assert ((filled["value"] >= filled["min"]) & (filled["value"] <= filled["max"])).all()

    empty = frame[frame["metric"] == "Empty Count"].iloc[0]
    assert empty["points"] == 0
    assert empty["trend"] == "no data"


def test_unit_mix_table(nodes):
    enhance_tree(nodes, seed=4)
    mix = unit_mix_table(metrics_frame(nodes))
    assert [str(u) for u in mix["unit"]] == ["%", "count", "days"]
    assert list(mix["Metrics"]) == [1, 1, 1]


def test_unit_mix_table_empty():
    from tree import IndicatorNode

    mix = unit_mix_table(metrics_frame([IndicatorNode("Bare")]))
    assert mix.empty


def test_build_data_lineage():
    rows = build_data_lineage()
    assert len(rows) == len(UNIT_RULES) + 1
    assert rows[0]["unit"] == "score"
    assert rows[-1]["rule"] == "default"
    assert rows[-1]["range"] == "0–100"


def test_report_context(nodes):
    assert report_context(nodes, "x.json")["sprint_window"] == "N/A"
    enhance_tree(nodes, seed=8)
    ctx = report_context(nodes, "x.json")
    assert ctx == {
        "data_source": "x.json",
        "indicators": 2,
        "metrics": 3,
        "sprint_window": "Sprint 1 → Sprint 12",
    }
