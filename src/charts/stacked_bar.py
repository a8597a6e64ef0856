"""
Stacked bar chart specification: average income per person by age group,
stacked by risk rating.
"""

import logging
from dataclasses import asdict
from typing import Any, Sequence

from src.charts.base import ChartSpec, empty_spec, plot_area
from src.data.schemas import RISK_ORDER, BucketTable, FinancialRecord
from src.features.aggregators import aggregate, stacked_means
from src.features.bucketing import AGE_BUCKETS, bucketed
from src.features.scales import BAR_MARGINS, LinearScale

logger = logging.getLogger(__name__)

RISK_COLORS: dict[str, str] = {
    "Low": "#82ca9d",
    "Medium": "#ffc658",
    "High": "#ff6f61",
}


def _stack_series(rows: list[dict[str, Any]], keys: Sequence[str]) -> list[dict[str, Any]]:
    """Cumulative [y0, y1] segments per key, bottom key first."""
    series = []
    baselines = [0.0] * len(rows)
    for key in keys:
        values = []
        for idx, row in enumerate(rows):
            y0 = baselines[idx]
            y1 = y0 + row[key]
            baselines[idx] = y1
            values.append({"category": row["age_group"], "y0": y0, "y1": y1, "value": row[key]})
        series.append({"key": key, "color": RISK_COLORS.get(key), "values": values})
    return series


def create_stacked_bar_spec(
    records: Sequence[FinancialRecord],
    *,
    chart_id: str = "bar-chart",
    width: int = 800,
    height: int = 500,
    age_table: BucketTable = AGE_BUCKETS,
) -> ChartSpec:
    """Create the average-income stacked bar chart specification.

    Args:
        records: Records with age, income and risk_rating set
        chart_id: Unique identifier for the chart
        width: Chart width in pixels
        height: Chart height in pixels
        age_table: Age grouping used for the x axis

    Returns:
        ChartSpec with stacked rows and series; an empty spec for no records

    Raises:
        ChartBuildError: If the viewport is too small for the margins
    """
    extent = plot_area(width, height, BAR_MARGINS, "stacked_bar")
    config: dict[str, Any] = {
        "width": width,
        "height": height,
        "margins": asdict(BAR_MARGINS),
        "title": "Average Income per Person by Age and Risk Rating",
        "xLabel": "Age",
        "yLabel": "Average Income per Person",
        "legendTitle": "Risk Rating",
        "keys": list(RISK_ORDER),
        "colors": RISK_COLORS,
    }

    if not records:
        logger.warning("No records for stacked bar chart")
        return empty_spec(chart_id, "stacked_bar", config=config)

    table = aggregate(
        records,
        bucketed(lambda r: r.age, age_table),
        lambda r: r.risk_label,
        lambda r: r.income,
    )
    rows = stacked_means(table, age_table.labels, RISK_ORDER, primary_field="age_group")

    y_max = max(sum(row[key] for key in RISK_ORDER) for row in rows)
    y_scale = LinearScale(domain=(0.0, y_max), range=(extent.y1, extent.y0))

    counts = {
        age: {risk: cell.count for risk, cell in cells.items()}
        for age, cells in table.items()
    }

    return ChartSpec(
        chart_id=chart_id,
        chart_type="stacked_bar",
        data={
            "categories": [row["age_group"] for row in rows],
            "rows": rows,
            "series": _stack_series(rows, RISK_ORDER),
            "counts": counts,
            "y_max": y_max,
        },
        config={**config, "yScale": y_scale.to_dict()},
    )
