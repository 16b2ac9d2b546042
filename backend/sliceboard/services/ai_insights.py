"""
AI Insight Generator: asks GPT for a two-section narrative (ANALYSIS /
INSIGHTS) describing exactly the series a chart is currently showing.
"""

import json
from functools import lru_cache

from openai import OpenAI

from sliceboard.config import settings
from sliceboard.schemas.chart_data import ChartData

_GUIDANCE = {
    "pie": (
        "Explain how values are distributed across categories. Mention total, largest and "
        "smallest shares with their percentages. Highlight any categories that dominate or "
        "are under-represented. Avoid describing time-based trends.",
        "Recommend actions that rebalance category shares, capitalize on dominant segments, "
        "or strengthen underperforming ones.",
    ),
    "line": (
        "Describe how the measures change across the ordered axis. Call out increases, "
        "decreases, peaks, troughs, and relative volatility by series. Compare series if more "
        "than one is present.",
        "Suggest tactics that sustain positive momentum, reverse declines, or reduce volatility "
        "based on the observed trajectories.",
    ),
    "bar": (
        "Compare categories side by side. Identify top and bottom performers, notable gaps, and "
        "clusters of similar values. Reference series differences for multi-series charts.",
        "Focus on reallocating resources from lagging categories to high performers, closing "
        "gaps, or replicating winning approaches from the best categories.",
    ),
    "scatter": (
        "Assess the relationship between the X and Y values. Comment on correlation strength, "
        "outliers, and any clusters or segments. Reference numeric ranges for both axes.",
        "Recommend actions that leverage positive relationships, mitigate negative ones, or "
        "collect more data where relationships are unclear.",
    ),
}

_DEFAULT_GUIDANCE = (
    "Summarize the most important patterns, extremes, and comparisons visible in the chart. "
    "Reference specific categories, series, and values where helpful.",
    "Suggest practical next steps that exploit strengths, address weaknesses, or investigate "
    "notable anomalies found in the visualization.",
)


@lru_cache()
def _get_client() -> OpenAI:
    return OpenAI(api_key=settings.OPENAI_API_KEY)


def chart_guidance(template_id: str) -> tuple[str, str]:
    key = (template_id or "").lower()
    if "pie" in key:
        return _GUIDANCE["pie"]
    if "line" in key or "area" in key:
        return _GUIDANCE["line"]
    if "bar" in key:
        return _GUIDANCE["bar"]
    if "scatter" in key:
        return _GUIDANCE["scatter"]
    return _DEFAULT_GUIDANCE


def _axis_names(config) -> tuple[str, str]:
    x_name = getattr(config, "x_axis_field", None) or getattr(config, "category_field", None) or "category"
    y_name = getattr(config, "y_axis_field", None) or getattr(config, "value_field", None) or "value"
    if isinstance(y_name, list):
        y_name = ", ".join(y_name) or "value"
    return x_name, y_name


def build_prompt(chart_data: ChartData, config) -> str:
    analysis_hint, insights_hint = chart_guidance(config.template_id)
    x_name, y_name = _axis_names(config)
    payload = chart_data.model_dump(exclude={"is_placeholder"})
    data_text = json.dumps(payload, default=str, indent=2)

    return f"""Analyze ALL the chart data shown below. This data represents exactly what is displayed on the chart.

Complete Chart Data:
{data_text}

Chart Type: {config.template_id}
X-Axis: {x_name}
Y-Axis: {y_name}

Provide your response in EXACTLY this format with these two sections:

ANALYSIS:
[{analysis_hint} Analyze ALL data points across ALL series/categories. 120 words maximum.]

INSIGHTS:
[{insights_hint} 2-3 specific, actionable recommendations. 120 words maximum.]

Do not add any other headings or sections."""


def generate_chart_insights(chart_data: ChartData, config) -> str:
    """Return the raw ANALYSIS:/INSIGHTS: text blob for a chart."""
    response = _get_client().chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=[{"role": "user", "content": build_prompt(chart_data, config)}],
        temperature=settings.ANALYSIS_TEMPERATURE,
        max_tokens=settings.ANALYSIS_MAX_TOKENS,
    )
    content = response.choices[0].message.content or ""
    if not content.strip():
        raise ValueError("Empty analysis returned by model")
    return content.strip()
