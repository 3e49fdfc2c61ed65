from __future__ import annotations

from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def count_bar_chart(
    df: pd.DataFrame,
    label_col: str,
    *,
    title: str,
    value_col: str = "count",
    sort_labels: bool = False,
    color: str = "#3b82f6",
    height: int = 260,
) -> Dict[str, Any]:
    hover = alt.selection_point(fields=[label_col], on="mouseover", empty="all")
    base = alt.Chart(df).encode(
        x=alt.X(f"{label_col}:N", title=title, sort=None if not sort_labels else "ascending", axis=alt.Axis(grid=False, labelAngle=-45)),
        y=alt.Y(f"{value_col}:Q", title="Lead Count", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
        tooltip=[alt.Tooltip(f"{label_col}:N", title=title), alt.Tooltip(f"{value_col}:Q", title="Leads", format=",")],
    )
    bars = (
        base.mark_bar(color=color, cornerRadiusTopLeft=4, cornerRadiusTopRight=4)
        .encode(opacity=alt.condition(hover, alt.value(1), alt.value(0.6)))
        .add_params(hover)
    )
    # Value labels on top of each bar
    labels = base.mark_text(align="center", baseline="bottom", dy=-2, fontSize=10, fontWeight="bold", color="#374151").encode(
        text=alt.Text(f"{value_col}:Q")
    )
    return to_vega_spec(alt.layer(bars, labels).properties(height=height))


def count_line_chart(
    df: pd.DataFrame,
    label_col: str,
    *,
    title: str,
    value_col: str = "count",
    color: str = "#10b981",
    height: int = 260,
    x_title: Optional[str] = None,
) -> Dict[str, Any]:
    line = (
        alt.Chart(df)
        .mark_area(line={"color": color}, color=color, opacity=0.15, interpolate="monotone")
        .encode(
            x=alt.X(f"{label_col}:N", title=x_title or title, sort=None, axis=alt.Axis(grid=False, labelAngle=-45)),
            y=alt.Y(f"{value_col}:Q", title="Lead Count", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[alt.Tooltip(f"{label_col}:N", title=title), alt.Tooltip(f"{value_col}:Q", title="Leads", format=",")],
        )
    )
    points = line.mark_line(point={"filled": True, "size": 40}, color=color, interpolate="monotone")
    return to_vega_spec(alt.layer(line, points).properties(height=height))
