"""
Template-based analysis used when the AI client fails and there is no
earlier text to fall back on. Output uses the same ANALYSIS/INSIGHTS layout.
"""

from __future__ import annotations

import numpy as np

from sliceboard.schemas.chart_data import ChartData, Point
from sliceboard.services.analysis_parser import format_analysis_content


def _fmt(value: float) -> str:
    if not np.isfinite(value):
        return "0"
    magnitude = abs(value)
    digits = 0 if magnitude >= 100 else 1 if magnitude >= 10 else 2
    text = f"{value:,.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _pct(part: float, total: float) -> str:
    if total == 0:
        return "0%"
    return f"{part / total * 100:.1f}%"


def _join(parts: list[str]) -> str:
    return " ".join(p for p in parts if p)


def _numeric_values(data) -> list[float]:
    return [float(v.y) if isinstance(v, Point) else float(v) for v in data]


def _pie(chart_data: ChartData) -> str | None:
    values = _numeric_values(chart_data.datasets[0].data)
    slices = [
        (chart_data.labels[i] if i < len(chart_data.labels) else f"Slice {i + 1}", v)
        for i, v in enumerate(values)
    ]
    total = sum(v for _, v in slices)
    if total <= 0 or not slices:
        return None

    ranked = sorted(slices, key=lambda s: s[1], reverse=True)
    top, bottom = ranked[0], ranked[-1]
    second = ranked[1] if len(ranked) > 1 else None
    analysis = [
        f"This pie chart compares {len(slices)} categories with a combined total of {_fmt(total)}.",
        f"{top[0]} is the largest segment at {_fmt(top[1])} ({_pct(top[1], total)}).",
        f"{second[0]} follows at {_fmt(second[1])} ({_pct(second[1], total)})." if second else "",
        f"{bottom[0]} represents the smallest share at {_fmt(bottom[1])} ({_pct(bottom[1], total)})."
        if bottom[0] != top[0] else "",
    ]
    insights = [
        f"Prioritize {top[0]}, which contributes {_pct(top[1], total)} of the whole.",
        f"Explore ways to grow {bottom[0]}, currently the weakest slice." if bottom[0] != top[0] else "",
        f"Mitigate risk by diversifying so results are not overly dependent on {top[0]}."
        if top[1] / total > 0.5 else "",
    ]
    return format_analysis_content(_join(analysis), _join(insights))


def _trend(chart_data: ChartData, chart_label: str) -> str | None:
    labels = chart_data.labels
    summaries = []
    for index, ds in enumerate(chart_data.datasets):
        values = _numeric_values(ds.data)
        if not values:
            continue
        arr = np.asarray(values)
        max_i, min_i = int(arr.argmax()), int(arr.argmin())
        summaries.append({
            "label": ds.label or f"Series {index + 1}",
            "first": values[0],
            "last": values[min(len(values), len(labels) or len(values)) - 1],
            "max": float(arr[max_i]),
            "min": float(arr[min_i]),
            "max_label": labels[max_i] if max_i < len(labels) else f"Point {max_i + 1}",
            "min_label": labels[min_i] if min_i < len(labels) else f"Point {min_i + 1}",
        })
    if not summaries:
        return None

    first_label = labels[0] if labels else "start"
    last_label = labels[-1] if labels else "end"
    leading = max(summaries, key=lambda s: s["last"])
    trailing = min(summaries, key=lambda s: s["last"])
    peak = max(summaries, key=lambda s: s["max"])

    if len(summaries) == 1:
        single = summaries[0]
        if single["last"] > single["first"]:
            movement = f"Values climb from {_fmt(single['first'])} in {first_label} to {_fmt(single['last'])} in {last_label}."
            action = f"Keep reinforcing the drivers behind the upswing after {peak['max_label']}."
        elif single["last"] < single["first"]:
            movement = f"Values decline from {_fmt(single['first'])} in {first_label} to {_fmt(single['last'])} in {last_label}."
            action = f"Investigate factors causing the slide after {peak['max_label']}."
        else:
            movement = f"Values stay near {_fmt(single['first'])} throughout the period."
            action = "Introduce new initiatives to spark movement, as the series is flat across the period."
    else:
        movement = (
            f"{leading['label']} finishes highest at {_fmt(leading['last'])} in {last_label}, "
            f"while {trailing['label']} closes at {_fmt(trailing['last'])}."
        )
        action = (
            f"Share the playbook from {leading['label']}; it outperforms {trailing['label']} by "
            f"{_fmt(leading['last'] - trailing['last'])} in the final period."
        )

    analysis = [
        f"This {chart_label} tracks {len(summaries)} series across {len(labels)} points from {first_label} to {last_label}.",
        movement,
        f"{peak['label']} peaks at {_fmt(peak['max'])} in {peak['max_label']}, compared with a low of "
        f"{_fmt(peak['min'])} in {peak['min_label']}.",
    ]
    insights = [
        action,
        f"Use the peak of {_fmt(peak['max'])} in {peak['max_label']} as a benchmark for future periods.",
    ]
    return format_analysis_content(_join(analysis), _join(insights))


def _bars(chart_data: ChartData, chart_label: str) -> str | None:
    labels = chart_data.labels
    if not labels:
        return None
    matrix = np.zeros((len(chart_data.datasets), len(labels)))
    for row, ds in enumerate(chart_data.datasets):
        values = _numeric_values(ds.data)[: len(labels)]
        matrix[row, : len(values)] = values

    category_totals = matrix.sum(axis=0)
    top_i, bottom_i = int(category_totals.argmax()), int(category_totals.argmin())
    series_totals = matrix.sum(axis=1)
    lead_i, trail_i = int(series_totals.argmax()), int(series_totals.argmin())
    leading = chart_data.datasets[lead_i].label or f"Series {lead_i + 1}"
    trailing = chart_data.datasets[trail_i].label or f"Series {trail_i + 1}"

    analysis = [
        f"This {chart_label} compares {len(labels)} categories.",
        f"{labels[top_i]} leads with {_fmt(category_totals[top_i])}.",
        f"{labels[bottom_i]} trails at {_fmt(category_totals[bottom_i])}." if bottom_i != top_i else "",
        f"Average performance across categories is {_fmt(float(category_totals.mean()))}.",
        f"{leading} contributes the most overall, totaling {_fmt(series_totals[lead_i])}.",
    ]
    insights = [
        f"Keep investing in {labels[top_i]}; it sets the pace.",
        f"Audit {labels[bottom_i]} to uncover blockers, since it lags the rest." if bottom_i != top_i else "",
        f"Share tactics from {leading}; it outperforms {trailing} by {_fmt(series_totals[lead_i] - series_totals[trail_i])}."
        if lead_i != trail_i else "",
    ]
    text = _join(insights) or "Use the bar comparison to replicate strengths and shore up weak contributors."
    return format_analysis_content(_join(analysis), text)


def _scatter(chart_data: ChartData) -> str | None:
    points = [p for p in chart_data.datasets[0].data if isinstance(p, Point)]
    if not points:
        return None
    xs = np.array([p.x for p in points])
    ys = np.array([p.y for p in points])
    if len(points) < 2 or xs.std() == 0 or ys.std() == 0:
        r = 0.0
    else:
        r = round(float(np.corrcoef(xs, ys)[0, 1]), 2)

    strength = abs(r)
    direction = "positive" if r >= 0 else "negative"
    if strength >= 0.7:
        description = f"a strong {direction} correlation (r={r})"
    elif strength >= 0.4:
        description = f"a moderate {direction} correlation (r={r})"
    elif strength >= 0.2:
        description = f"a weak {direction} correlation (r={r})"
    else:
        description = f"minimal linear correlation (r={r})"

    analysis = [
        f"This scatter plot charts {len(points)} observations.",
        f"There is {description}.",
        f"X spans {_fmt(xs.min())} to {_fmt(xs.max())}, while Y ranges from {_fmt(ys.min())} to {_fmt(ys.max())}.",
    ]
    if r >= 0.35:
        insight = "Leverage the positive relationship: boosting the X driver should lift Y as well."
    elif r <= -0.35:
        insight = "Reduce the factors on the X axis that are dragging Y downward."
    else:
        insight = "Group the points by segment or add more context to uncover stronger relationships."
    return format_analysis_content(_join(analysis), insight)


def build_fallback_analysis(template_id: str, chart_data: ChartData | None, row_count: int) -> str:
    key = (template_id or "").lower()
    chart_label = key.replace("-", " ") or "chart"
    has_values = bool(chart_data and any(ds.data for ds in chart_data.datasets))

    text = None
    if has_values:
        if "pie" in key:
            text = _pie(chart_data)
        elif "line" in key or "area" in key:
            text = _trend(chart_data, chart_label)
        elif "bar" in key:
            text = _bars(chart_data, chart_label)
        elif "scatter" in key:
            text = _scatter(chart_data)
    if text:
        return text

    label_count = len(chart_data.labels) if chart_data else 0
    if row_count > 0:
        across = f" across {label_count} categories" if label_count else ""
        analysis = f"This {chart_label} summarizes {row_count} data points{across}."
        insight = "Use this view to highlight extremes and decide where to focus next."
    else:
        analysis = f"This {chart_label} does not have enough data to summarize yet."
        insight = "Add or expand data for this chart to unlock automated insights."
    return format_analysis_content(analysis, insight)
