import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from metrics import build_data_lineage, report_context, summarize_metric
from rules import generate_recommendations
from tree import IndicatorNode, build_outline, find_node_by_path, load_tree


PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_PATH = PROJECT_ROOT / "data" / "delivery_health_tree_enhanced.json"


def _make_kv_table(title: str, rows: list[tuple[str, str]]) -> Table:
    t = Table(title=title, show_lines=True)
    t.add_column("Field")
    t.add_column("Value", overflow="fold")
    for k, v in rows:
        t.add_row(k, v)
    return t


def _indicator_tree(nodes) -> Tree:
    root = Tree("Delivery Health Model")

    def add(branch, node):
        label = f"[bold]{node.indicator}[/bold]"
        if node.metrics:
            label += f" [dim]({len(node.metrics)} metrics)[/dim]"
        sub = branch.add(label)
        for child in node.children or []:
            add(sub, child)

    for node in nodes:
        add(root, node)
    return root


def _metrics_table(nodes) -> Table:
    """
    One row per metric: current value, trend arrow coloured by whether the move is good.
    """
    t = Table(title="Delivery Health – Metrics Summary", show_lines=True, expand=True)
    t.add_column("Indicator", overflow="fold", ratio=2)
    t.add_column("Metric", overflow="fold", ratio=3)
    t.add_column("Value", justify="right", no_wrap=True)
    t.add_column("Trend", justify="center", no_wrap=True)
    t.add_column("vs Start", justify="right", no_wrap=True)
    t.add_column("Target", justify="right", no_wrap=True)

    def add(node):
        for m in node.metrics or []:
            target = "" if m.target is None else str(m.target)
            s = summarize_metric(m)
            if s is None:
                t.add_row(node.indicator, m.metric_name, "[yellow]No data[/yellow]", "", "", target)
                continue
            colour = "green" if s["is_good"] else "red" if s["trend"] != "neutral" else "grey50"
            t.add_row(
                node.indicator,
                m.metric_name,
                s["value_display"],
                f"[{colour}]{s['arrow']}[/{colour}]",
                f"[{colour}]{s['delta_display']}[/{colour}]",
                target,
            )
        for child in node.children or []:
            add(child)

    for node in nodes:
        add(node)
    return t


def _lineage_table() -> Table:
    lineage = Table(title="Unit Inference – How Ranges Are Chosen", show_lines=True, expand=True)
    lineage.add_column("Rule", no_wrap=True, width=8)
    lineage.add_column("Name contains", overflow="fold", ratio=4)
    lineage.add_column("Unit", no_wrap=True)
    lineage.add_column("Axis Label", overflow="fold", ratio=2)
    lineage.add_column("Range", justify="right", no_wrap=True)
    lineage.add_column("Decimals", justify="right", no_wrap=True)

    for row in build_data_lineage():
        lineage.add_row(
            row["rule"],
            row["keywords"],
            row["unit"],
            row["label"],
            row["range"],
            str(row["decimals"]),
        )
    return lineage


def main() -> int:
    ap = argparse.ArgumentParser(description="Print the delivery health report to the console.")
    ap.add_argument("--input", type=Path, default=DATA_PATH, help="Enhanced indicator tree (JSON).")
    ap.add_argument(
        "--node",
        metavar="PATH",
        help='Show one indicator, e.g. "Delivery Health/Flow". Unknown paths show the first root.',
    )
    ap.add_argument("--outline", action="store_true", help="List indicator paths and exit.")
    args = ap.parse_args()

    console = Console()

    try:
        nodes = load_tree(args.input)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run generate_data.py first to build the enhanced tree.")
        return 1

    if args.outline:
        render_outline(nodes, console)
    elif args.node is not None:
        node = find_node_by_path(nodes, args.node)
        if node is None:
            console.print("[yellow]The indicator tree is empty.[/yellow]")
            return 1
        render_node(node, console)
    else:
        render_report(nodes, console, data_source_name=args.input.name)
    return 0


def render_outline(nodes, console: Console) -> None:
    t = Table(title="Indicators", show_lines=False)
    t.add_column("Indicator", no_wrap=True)
    t.add_column("--node PATH", overflow="fold")
    for path, label in build_outline(nodes):
        t.add_row(label, path)
    console.print(t)


def render_node(node, console: Console) -> None:
    """One indicator: description, data source, metric cards, children."""
    console.print(f"[bold]{node.indicator}[/bold]")
    if node.description:
        console.print(node.description)
    if node.data_source:
        console.print(f"[dim]Data source:[/dim] {node.data_source}")
    console.print()

    if node.metrics:
        console.print(_metrics_table([IndicatorNode(node.indicator, metrics=node.metrics)]))
        console.print()

    if node.children:
        console.print("Children: " + ", ".join(c.indicator for c in node.children))


def render_report(nodes, console: Console, data_source_name: str = DATA_PATH.name) -> None:
    # -------------------------
    # Report Header
    # -------------------------
    ctx = report_context(nodes, data_source_name)
    header = _make_kv_table(
        "Delivery Health – Report Header",
        [
            ("Data file", ctx["data_source"]),
            ("Indicators", str(ctx["indicators"])),
            ("Metrics", str(ctx["metrics"])),
            ("Sprint window", ctx["sprint_window"]),
        ],
    )
    console.print(header)
    console.print()

    console.print(_indicator_tree(nodes))
    console.print()

    console.print(_metrics_table(nodes))
    console.print()

    console.print(_lineage_table())
    console.print()

    # -------------------------
    # Decision Support
    # -------------------------
    recommendations = generate_recommendations(nodes)

    rec_table = Table(
        title="Delivery Health – Decision Support",
        show_lines=True,
        expand=True
    )
    rec_table.add_column("Cat", no_wrap=True, width=14)
    rec_table.add_column("Sev", no_wrap=True, width=6)
    rec_table.add_column("Issue", overflow="fold", ratio=3)
    rec_table.add_column("Rationale", overflow="fold", ratio=3)
    rec_table.add_column("Action", overflow="fold", ratio=4)

    for r in recommendations:
        rec_table.add_row(
            r["category"],
            r["severity"],
            r["issue"],
            r["rationale"],
            r["action"],
        )

    console.print(rec_table)


if __name__ == "__main__":
    sys.exit(main())
