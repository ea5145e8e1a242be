# src/export_pdf.py
from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
    PageBreak,
    Image,
)

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from metrics import (
    build_data_lineage,
    metrics_frame,
    report_context,
    summarize_metric,
    target_value,
    unit_mix_table,
)
from rules import generate_recommendations
from tree import iter_nodes, load_tree


# Repo-relative paths
PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_PATH = PROJECT_ROOT / "data" / "delivery_health_tree_enhanced.json"
OUTPUT_DIR = PROJECT_ROOT / "reports" / "charts"
REPORT_PATH = PROJECT_ROOT / "reports" / "Delivery_Health_Report.pdf"

CHART_SIZE = (10, 2.8)
LINE_COLOUR = "#009688"
TARGET_COLOUR = "#ffa726"

SEVERITY_COLOURS = {
    "HIGH": colors.Color(1.00, 0.80, 0.80),
    "MEDIUM": colors.Color(1.00, 0.96, 0.70),
    "LOW": colors.Color(0.80, 0.93, 0.80),
}


def fmt_num(x, nd=1) -> str:
    try:
        return f"{float(x):.{nd}f}"
    except (TypeError, ValueError):
        return str(x)


def _wrap_table_cells(data, font_size=8.5, leading=10.5, wrap_cells=True):
    styles = getSampleStyleSheet()
    cell_style = ParagraphStyle(
        "CellWrap",
        parent=styles["BodyText"],
        fontSize=font_size,
        leading=leading,
        wordWrap="LTR",
        splitLongWords=False,
    )

    processed = []
    for r_i, row in enumerate(data):
        out_row = []
        for val in row:
            s = "" if val is None else str(val)
            if wrap_cells and r_i != 0 and len(s) > 18:
                out_row.append(Paragraph(_escape(s).replace("\n", "<br/>"), cell_style))
            else:
                out_row.append(s)
        processed.append(out_row)
    return processed


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def make_table(data, doc_width, col_fracs, repeat_header=True, wrap_cells=True):
    total = sum(col_fracs) if col_fracs else 1.0
    col_widths = [doc_width * c / total for c in col_fracs]

    t = Table(
        _wrap_table_cells(data, wrap_cells=wrap_cells),
        colWidths=col_widths,
        hAlign="LEFT",
        repeatRows=1 if repeat_header else 0,
        splitByRow=1,
    )
    t.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, 0), 9),
                ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                ("FONTSIZE", (0, 1), (-1, -1), 8.5),
                ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LEFTPADDING", (0, 0), (-1, -1), 5),
                ("RIGHTPADDING", (0, 0), (-1, -1), 5),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.Color(0.98, 0.98, 0.98)]),
            ]
        )
    )
    return t


def _slug(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", s.lower()).strip("_") or "metric"


def _save_metric_chart(metric, out_path: Path):
    values = metric.timeseries
    sprints = list(range(1, len(values) + 1))

    plt.figure(figsize=CHART_SIZE)
    plt.plot(sprints, values, marker="o", linewidth=2.5, color=LINE_COLOUR)
    plt.fill_between(sprints, values, alpha=0.09, color=LINE_COLOUR)
    target = target_value(metric)
    if target is not None:
        plt.axhline(target, linestyle="--", linewidth=1.5, color=TARGET_COLOUR, label="Target")
        plt.legend(loc="upper left", fontsize=8)
    plt.title(metric.metric_name, fontsize=11)
    plt.xlabel("Sprint")
    plt.ylabel(metric.y_axis_label or metric.unit or "")
    plt.xticks(sprints)
    plt.grid(True, color="#e0e0e0")
    plt.tight_layout()
    plt.savefig(out_path, dpi=160)
    plt.close()


def build_charts(nodes, output_dir: Path = OUTPUT_DIR) -> dict:
    """One PNG per metric with a series, keyed by (path, position of the metric in its node)."""
    output_dir.mkdir(exist_ok=True, parents=True)

    paths = {}
    for path, _, node in iter_nodes(nodes):
        for i, m in enumerate(node.metrics or []):
            if summarize_metric(m) is None:
                continue
            # Names can slug to the same text; the position keeps files apart
            out = output_dir / f"{_slug(path)}__{i:02d}_{_slug(m.metric_name)}.png"
            _save_metric_chart(m, out)
            paths[(path, i)] = out
    return paths


def add_chart(story, img_path: Path, width):
    if not img_path.exists():
        return
    aspect = CHART_SIZE[1] / float(CHART_SIZE[0])
    story.append(Image(str(img_path), width=width, height=width * aspect))


def apply_severity_colors(table_obj, recommendations, column=1):
    styles = []
    for i, r in enumerate(recommendations, start=1):
        c = SEVERITY_COLOURS.get(r["severity"])
        if c is not None:
            styles.append(("BACKGROUND", (column, i), (column, i), c))
    if styles:
        table_obj.setStyle(TableStyle(styles))


def export(data_path: Path = DATA_PATH, report_path: Path = REPORT_PATH, output_dir: Path = OUTPUT_DIR) -> Path:
    data_path = Path(data_path)
    report_path = Path(report_path)
    output_dir = Path(output_dir)

    if not data_path.exists():
        raise FileNotFoundError(
            f"Missing data file: {data_path}\n"
            f"Run generate_data.py to build data/delivery_health_tree_enhanced.json"
        )

    nodes = load_tree(data_path)
    report_path.parent.mkdir(exist_ok=True, parents=True)

    ctx = report_context(nodes, data_path.name)
    frame = metrics_frame(nodes)
    unit_df = unit_mix_table(frame)
    recommendations = generate_recommendations(nodes)
    chart_paths = build_charts(nodes, output_dir)

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("Title", parent=styles["Heading1"], fontSize=16, spaceAfter=10)
    h_style = ParagraphStyle("H", parent=styles["Heading2"], fontSize=12, spaceBefore=12, spaceAfter=6)
    sub_style = ParagraphStyle("Sub", parent=styles["Heading3"], fontSize=10)
    body = ParagraphStyle("Body", parent=styles["BodyText"], fontSize=9, leading=12)

    doc = SimpleDocTemplate(
        str(report_path),
        pagesize=letter,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title="Delivery Health Model — Report",
    )

    story = []
    W = doc.width

    # Page 1 — Overview
    story.append(Paragraph("Delivery Health Model — Report", title_style))
    story.append(
        Paragraph(
            "Synthetic sprint series for every metric in the delivery health tree, "
            "with trend signals and recommended actions.",
            body,
        )
    )
    story.append(Spacer(1, 8))
    context_rows = [
        ["Field", "Value"],
        ["Data Source", ctx["data_source"]],
        ["Indicators", str(ctx["indicators"])],
        ["Metrics", str(ctx["metrics"])],
        ["Sprint Window", ctx["sprint_window"]],
    ]
    story.append(make_table(context_rows, W, col_fracs=[0.28, 0.72]))

    story.append(Paragraph("Metrics by Unit", h_style))
    mix = [["Unit", "Metrics", "Avg Current Value"]]
    for _, r in unit_df.iterrows():
        mix.append([str(r["unit"]), str(int(r["Metrics"])), fmt_num(r["Avg_Value"], 1)])
    story.append(make_table(mix, W, col_fracs=[0.34, 0.22, 0.44], wrap_cells=False))

    story.append(Paragraph("Unit Inference — How Ranges Are Chosen", h_style))
    story.append(Paragraph("Rules are tested in order against the lower-cased metric name; the first match wins.", body))
    story.append(Spacer(1, 6))
    lineage = [["Rule", "Name contains", "Unit", "Axis Label", "Range", "Dec"]]
    for item in build_data_lineage():
        lineage.append([item["rule"], item["keywords"], item["unit"], item["label"], item["range"], str(item["decimals"])])
    story.append(make_table(lineage, W, col_fracs=[0.09, 0.39, 0.12, 0.20, 0.12, 0.08]))

    # Page 2 — Decision Signals
    story.append(PageBreak())
    story.append(Paragraph("Decision Signals", h_style))
    sig1 = [["Category", "Severity", "Issue"]]
    sig2 = [["Rationale", "Action"]]
    for s in recommendations:
        sig1.append([s["category"], s["severity"], s["issue"]])
        sig2.append([s["rationale"], s["action"]])

    sig_table = make_table(sig1, W, col_fracs=[0.22, 0.16, 0.62])
    apply_severity_colors(sig_table, recommendations)
    story.append(sig_table)
    story.append(Spacer(1, 10))
    story.append(make_table(sig2, W, col_fracs=[0.52, 0.48]))

    # One section per indicator
    for path, level, node in iter_nodes(nodes):
        story.append(PageBreak() if level == 0 else Spacer(1, 14))
        story.append(Paragraph(_escape(path.replace("/", " › ")), h_style if level == 0 else sub_style))
        if node.description:
            story.append(Paragraph(_escape(node.description), body))
        if node.data_source:
            story.append(Paragraph(f"<b>Data source:</b> {_escape(node.data_source)}", body))

        if node.metrics:
            story.append(Spacer(1, 6))
            rows = [["Metric", "Value", "vs Start", "Trend", "Target"]]
            for m in node.metrics:
                s = summarize_metric(m)
                target = "" if m.target is None else str(m.target)
                if s is None:
                    rows.append([m.metric_name, "No data", "", "", target])
                else:
                    rows.append([m.metric_name, s["value_display"], s["delta_display"], s["trend"], target])
            story.append(make_table(rows, W, col_fracs=[0.46, 0.16, 0.14, 0.12, 0.12]))

            for i in range(len(node.metrics)):
                p = chart_paths.get((path, i))
                if p is not None:
                    story.append(Spacer(1, 6))
                    add_chart(story, p, W)

        if node.children:
            names = ", ".join(c.indicator for c in node.children)
            story.append(Spacer(1, 6))
            story.append(Paragraph(f"<b>Children:</b> {_escape(names)}", body))

    doc.build(story)
    print(f"PDF generated: {report_path}")
    return report_path


def main() -> int:
    ap = argparse.ArgumentParser(description="Export the delivery health report as a PDF.")
    ap.add_argument("--input", type=Path, default=DATA_PATH, help="Enhanced indicator tree (JSON).")
    ap.add_argument("--output", type=Path, default=REPORT_PATH, help="PDF path.")
    ap.add_argument("--charts", type=Path, default=OUTPUT_DIR, help="Directory for chart PNGs.")
    args = ap.parse_args()

    try:
        export(args.input, args.output, args.charts)
    except FileNotFoundError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
