import json
import random
import sys

import pytest

import generate_data
from generate_data import (
    SERIES_LENGTH,
    InvalidRangeError,
    enhance_tree,
    generate_realistic_timeseries,
    process_tree,
    update_metrics,
)
from tree import Metric, iter_metrics, load_tree
from units import guess_unit_and_range


@pytest.mark.parametrize(
    "minval, maxval, decimals",
    [(0, 10, 1), (0, 100, 1), (0, 120, 0), (0, 8, 1), (0, 180, 0), (-5, 5, 2), (3, 3, 1)],
)
def test_series_bounded_and_rounded(minval, maxval, decimals):
    rng = random.Random(1234)
    for _ in range(200):
        series = generate_realistic_timeseries(minval, maxval, decimals, rng=rng)
        assert len(series) == SERIES_LENGTH
        for p in series:
            assert minval <= p <= maxval
            assert round(p, decimals) == p


def test_zero_decimals_gives_integers():
    series = generate_realistic_timeseries(0, 120, 0, rng=random.Random(3))
    assert all(isinstance(p, int) for p in series)


def test_same_seed_same_series():
    a = generate_realistic_timeseries(0, 100, 1, rng=random.Random(42))
    b = generate_realistic_timeseries(0, 100, 1, rng=random.Random(42))
    assert a == b


def test_default_rng_is_module_random():
    random.seed(9)
    a = generate_realistic_timeseries(0, 30, 1)
    random.seed(9)
    b = generate_realistic_timeseries(0, 30, 1)
    assert a == b


def test_inverted_range_rejected():
    with pytest.raises(InvalidRangeError):
        generate_realistic_timeseries(10, 0, 1, rng=random.Random(0))
    assert issubclass(InvalidRangeError, ValueError)


class _ScriptedRng:
    """Always shifts when asked, always draws the top of the interval."""

    def __init__(self):
        self.uniform_calls = []
        self.random_calls = 0

    def random(self):
        self.random_calls += 1
        return 0.0

    def uniform(self, a, b):
        self.uniform_calls.append((a, b))
        return b


def test_regime_shifts_only_after_warmup():
    rng = _ScriptedRng()
    generate_realistic_timeseries(0, 100, 1, rng=rng)
    # start, then 11 step deltas, then noise on interior points 2..9
    start, steps, noise = rng.uniform_calls[0], rng.uniform_calls[1:12], rng.uniform_calls[12:]
    assert start == (0, 100)
    assert steps[:3] == [(-0.1, 0.1)] * 3
    assert steps[3:] == [(-0.4, 0.4)] * 8
    assert noise == [(-0.3, 0.3)] * (SERIES_LENGTH - 4)


def test_shift_draw_taken_on_every_step():
    rng = _ScriptedRng()
    generate_realistic_timeseries(0, 100, 1, rng=rng)
    # one shift draw per step, one noise draw per interior point
    assert rng.random_calls == (SERIES_LENGTH - 1) + (SERIES_LENGTH - 4)


def test_update_metrics_overwrites_derived_fields():
    metrics = [Metric(metric_name="# of Blocked Items", unit="stale", timeseries=[1], value=-1)]
    update_metrics(metrics, rng=random.Random(5))

    m = metrics[0]
    assert m.unit == "count"
    assert m.y_axis_label == "Count"
    assert len(m.timeseries) == SERIES_LENGTH
    assert all(0 <= p <= 120 for p in m.timeseries)
    assert m.value == m.timeseries[-1]


def test_process_tree_fills_every_metric_and_keeps_shape(nodes):
    before = [(n.indicator, n.description, n.data_source) for n in [nodes[0], nodes[0].children[0]]]
    process_tree(nodes[0], rng=random.Random(11))

    root = nodes[0]
    assert len(root.children) == 1
    after = [(n.indicator, n.description, n.data_source) for n in [root, root.children[0]]]
    assert after == before

    metrics = list(iter_metrics(nodes))
    assert len(metrics) == 3
    for m in metrics:
        spec = guess_unit_and_range(m.metric_name)
        assert len(m.timeseries) == SERIES_LENGTH
        assert all(spec.minimum <= p <= spec.maximum for p in m.timeseries)
        assert m.value == m.timeseries[-1]


def test_process_tree_tolerates_bare_nodes():
    from tree import IndicatorNode

    node = IndicatorNode(indicator="Empty")
    assert process_tree(node) is node
    assert node.metrics is None and node.children is None


def test_enhance_tree_twice_only_changes_generated_fields(nodes):
    first = [n.to_dict() for n in enhance_tree(nodes, seed=1)]
    second = [n.to_dict() for n in enhance_tree(nodes, seed=2)]

    def strip(d):
        d = dict(d)
        for k in ("unit", "y_axis_label", "timeseries", "value"):
            d.pop(k, None)
        if "metrics" in d:
            d["metrics"] = [strip(m) for m in d["metrics"]]
        if "children" in d:
            d["children"] = [strip(c) for c in d["children"]]
        return d

    assert [strip(d) for d in first] == [strip(d) for d in second]


def test_main_round_trip(tmp_path, tree_dicts, monkeypatch, capsys):
    src = tmp_path / "in.json"
    out = tmp_path / "out" / "enhanced.json"
    src.write_text(json.dumps(tree_dicts), encoding="utf-8")

    monkeypatch.setattr(sys, "argv", ["generate_data.py", "--input", str(src), "--output", str(out), "--seed", "3"])
    assert generate_data.main() == 0
    assert "Unit counts" in capsys.readouterr().out

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data[0]["indicator"] == "Flow"
    assert data[0]["metrics"][0]["target"] == 50
    assert data[0]["metrics"][0]["higher_is_better"] is False
    assert data[0]["children"][0]["metrics"][0]["unit"] == "%"
    assert len(load_tree(out)[0].metrics[1].timeseries) == SERIES_LENGTH


def test_main_missing_input_writes_nothing(tmp_path, monkeypatch):
    out = tmp_path / "out.json"
    monkeypatch.setattr(sys, "argv", ["generate_data.py", "--input", str(tmp_path / "nope.json"), "--output", str(out)])
    assert generate_data.main() == 1
    assert not out.exists()


def test_malformed_input_is_fatal(tmp_path, monkeypatch):
    src = tmp_path / "bad.json"
    src.write_text("[{not json", encoding="utf-8")
    out = tmp_path / "out.json"
    monkeypatch.setattr(sys, "argv", ["generate_data.py", "--input", str(src), "--output", str(out)])
    with pytest.raises(json.JSONDecodeError):
        generate_data.main()
    assert not out.exists()
