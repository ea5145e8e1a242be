# src/tree.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Metric:
    metric_name: str
    description: str | None = None
    unit: str | None = None
    y_axis_label: str | None = None
    timeseries: list | None = None
    value: float | None = None
    target: float | None = None
    extra: dict = field(default_factory=dict)

    KEYS = ("metric_name", "description", "unit", "y_axis_label", "timeseries", "value", "target")

    @classmethod
    def from_dict(cls, d: dict) -> "Metric":
        known = {k: d[k] for k in cls.KEYS if k in d}
        known["metric_name"] = str(d.get("metric_name") or "")
        extra = {k: v for k, v in d.items() if k not in cls.KEYS}
        return cls(**known, extra=extra)

    def to_dict(self) -> dict:
        out = {}
        for k in self.KEYS:
            v = getattr(self, k)
            if v is not None or k == "metric_name":
                out[k] = v
        out.update(self.extra)
        return out


@dataclass
class IndicatorNode:
    indicator: str
    description: str | None = None
    data_source: str | None = None
    # None means the key was absent in the source file; it stays absent on write.
    metrics: list | None = None
    children: list | None = None
    extra: dict = field(default_factory=dict)

    KEYS = ("indicator", "description", "data_source", "metrics", "children")

    @classmethod
    def from_dict(cls, d: dict) -> "IndicatorNode":
        extra = {k: v for k, v in d.items() if k not in cls.KEYS}
        metrics = d.get("metrics")
        children = d.get("children")

        # Unrecognised shapes are carried through untouched
        if "metrics" in d and not isinstance(metrics, list):
            extra["metrics"] = metrics
            metrics = None
        if "children" in d and not isinstance(children, list):
            extra["children"] = children
            children = None

        return cls(
            indicator=d.get("indicator", ""),
            description=d.get("description"),
            data_source=d.get("data_source"),
            metrics=[Metric.from_dict(m) for m in metrics] if metrics is not None else None,
            children=[cls.from_dict(c) for c in children] if children is not None else None,
            extra=extra,
        )

    def to_dict(self) -> dict:
        out = {"indicator": self.indicator}
        if self.description is not None:
            out["description"] = self.description
        if self.data_source is not None:
            out["data_source"] = self.data_source
        if self.metrics is not None:
            out["metrics"] = [m.to_dict() for m in self.metrics]
        if self.children is not None:
            out["children"] = [c.to_dict() for c in self.children]
        out.update(self.extra)
        return out


def load_tree(path) -> list[IndicatorNode]:
    """
    Reads a JSON list of indicator roots. A single root object is accepted too.
    Missing files and malformed JSON are fatal.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing indicator tree: {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = [data]
    return [IndicatorNode.from_dict(d) for d in data]


def save_tree(nodes: list[IndicatorNode], path) -> Path:
    path = Path(path)
    # Serialise before opening so a failure leaves no half-written file
    text = json.dumps([n.to_dict() for n in nodes], indent=2, ensure_ascii=False)
    path.parent.mkdir(exist_ok=True, parents=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def iter_nodes(nodes, parent_path: str = "", level: int = 0):
    """Pre-order (path, level, node) triples."""
    for node in nodes:
        node_path = f"{parent_path}/{node.indicator}".strip("/")
        yield node_path, level, node
        yield from iter_nodes(node.children or [], node_path, level + 1)


def iter_metrics(nodes):
    for _, _, node in iter_nodes(nodes):
        yield from node.metrics or []


def find_metric(nodes, keyword: str):
    kw = keyword.lower()
    return next((m for m in iter_metrics(nodes) if kw in (m.metric_name or "").lower()), None)


def find_node_by_path(nodes, path: str):
    """
    Resolves "Root/Child/Grandchild". An empty or unknown path falls back to the first root.
    """
    if not nodes:
        return None
    if not path:
        return nodes[0]

    found = _resolve(nodes, path.strip("/").split("/"))
    return found if found is not None else nodes[0]


def _resolve(nodes, parts):
    for node in nodes:
        if node.indicator == parts[0]:
            if len(parts) == 1:
                return node
            return _resolve(node.children or [], parts[1:])
    return None


def build_outline(nodes, indent: str = "    ") -> list[tuple[str, str]]:
    """(path, label) pairs for navigation; branches get ▶, leaves get •."""
    out = []
    for node_path, level, node in iter_nodes(nodes):
        icon = "▶ " if node.children else "• "
        out.append((node_path, f"{indent * level}{icon}{node.indicator}"))
    return out
