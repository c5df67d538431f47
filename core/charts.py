from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

from core.formatting import classify_badge, format_millions

alt.data_transformers.disable_max_rows()

ACHIEVEMENT_AXIS_TICKS = [0, 20, 40, 60, 80, 100, 120]


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def budget_trend_chart(points: List[Dict[str, Any]], *, height: int = 300) -> alt.LayerChart:
    """Actual as bars, budget as a line, amounts on a millions axis."""
    df = pd.DataFrame(points, columns=["month", "order", "actual", "budget"])
    df["actual_m"] = df["actual"] / 1_000_000
    df["budget_m"] = df["budget"] / 1_000_000
    df["actual_label"] = [format_millions(v, 1, "M円") for v in df["actual"]]
    df["budget_label"] = [format_millions(v, 1, "M円") for v in df["budget"]]
    x = alt.X("month:N", title="月", sort=alt.SortField("order"))

    bars = (
        alt.Chart(df)
        .mark_bar(color="#3b82f6", size=20, cornerRadiusTopLeft=4, cornerRadiusTopRight=4)
        .encode(
            x=x,
            y=alt.Y("actual_m:Q", title=None, axis=alt.Axis(format=".0f", labelExpr="datum.label + 'M'")),
            tooltip=[alt.Tooltip("month:N", title="月"), alt.Tooltip("actual_label:N", title="実績")],
        )
    )
    line = (
        alt.Chart(df)
        .mark_line(color="#f43f5e", strokeWidth=2, point={"size": 40, "filled": True})
        .encode(
            x=x,
            y=alt.Y("budget_m:Q"),
            tooltip=[alt.Tooltip("month:N", title="月"), alt.Tooltip("budget_label:N", title="予算")],
        )
    )
    return alt.layer(bars, line).properties(height=height)


def achievement_chart(
    points: List[Dict[str, Any]],
    *,
    threshold: float = 100,
    reverse_colors: bool = False,
    title: str = "達成率",
    height: int = 300,
) -> alt.Chart:
    """Bars coloured by badge status; reverse_colors for lower-is-better metrics."""
    df = pd.DataFrame(points, columns=["month", "order", "achievement"])
    df["status"] = ["positive" if classify_badge(v, threshold, reverse_colors).positive else "negative" for v in df["achievement"]]
    return (
        alt.Chart(df)
        .mark_bar(cornerRadiusTopLeft=4, cornerRadiusTopRight=4)
        .encode(
            x=alt.X("month:N", title="月", sort=alt.SortField("order")),
            y=alt.Y(
                "achievement:Q",
                title=title,
                scale=alt.Scale(domain=[0, 120]),
                axis=alt.Axis(values=ACHIEVEMENT_AXIS_TICKS, labelExpr="datum.label + '%'"),
            ),
            color=alt.Color(
                "status:N",
                scale=alt.Scale(domain=["positive", "negative"], range=["#10b981", "#f43f5e"]),
                legend=None,
            ),
            tooltip=[alt.Tooltip("month:N", title="月"), alt.Tooltip("achievement:Q", title=title, format=".1f")],
        )
        .properties(height=height)
    )
