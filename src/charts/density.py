"""
Hexbin density specification: credit score vs. income, coloured by the
average debt-to-income ratio, one frame per age group.

Scales and the colour domain come from the full dataset so that frames stay
comparable while the age group rotates.
"""

import logging
from dataclasses import asdict
from typing import Any, Sequence

from src.charts.base import ChartSpec, empty_spec, plot_area
from src.data.csv_loader import CREDIT_SCORE_RANGE
from src.data.schemas import BucketTable, FinancialRecord
from src.features.bucketing import AGE_BUCKETS, filter_by_bucket
from src.features.hexbin import bin_debt_to_income, hexagon_vertices
from src.features.scales import HEXBIN_MARGINS, LinearScale, padded_domain

logger = logging.getLogger(__name__)

LEGEND_WIDTH = 300
COLOR_INTERPOLATOR = "interpolateRdYlGn"


def create_hexbin_spec(
    records: Sequence[FinancialRecord],
    *,
    age_index: int = 0,
    chart_id: str = "hexbin-chart",
    width: int = 800,
    height: int = 500,
    radius: float = 10.0,
    age_table: BucketTable = AGE_BUCKETS,
) -> ChartSpec:
    """Create the hexbin frame for one age group.

    Args:
        records: Records with credit_score, income, debt_to_income_ratio and age set
        age_index: Index into the age table (wraps around)
        chart_id: Unique identifier for the chart
        width: Chart width in pixels
        height: Chart height in pixels
        radius: Hexagon radius in pixels
        age_table: Age groups the animation cycles through

    Returns:
        ChartSpec with bins for the selected age group. With no records at
        all the chart spec is empty; an age group without records keeps the axes
        and reports "(No data)" in its label.

    Raises:
        ChartBuildError: If the viewport is too small for the margins
    """
    extent = plot_area(width, height, HEXBIN_MARGINS, "hexbin")
    config: dict[str, Any] = {
        "width": width,
        "height": height,
        "margins": asdict(HEXBIN_MARGINS),
        "extent": extent.to_list(),
        "title": "Credit Score vs. Income Hexbin Plot",
        "xLabel": "Credit Score",
        "yLabel": "Income",
        "legendTitle": "Average Debt-to-Income Ratio",
        "legendWidth": LEGEND_WIDTH,
        "colorInterpolator": COLOR_INTERPOLATOR,
        "radius": radius,
        "hexagon": hexagon_vertices(radius),
        "transitionMs": 1000,
    }

    if not records:
        logger.warning("No records for hexbin chart")
        return empty_spec(chart_id, "hexbin", config=config)

    x_scale = LinearScale(domain=CREDIT_SCORE_RANGE, range=(extent.x0, extent.x1))
    y_scale = LinearScale(
        domain=padded_domain(r.income for r in records),
        range=(extent.y1, extent.y0),
    )
    low_ratio, high_ratio = padded_domain(
        (r.debt_to_income_ratio for r in records), fraction=0.0
    )

    groups = age_table.buckets
    group = groups[age_index % len(groups)]
    window = filter_by_bucket(records, lambda r: r.age, group)
    bins = bin_debt_to_income(window, x_scale, y_scale, radius=radius)

    label = f"Age Group: {group.label}"
    if not bins:
        label = f"{label} (No data)"
        logger.info(f"No hexbin data for age group {group.label}")

    return ChartSpec(
        chart_id=chart_id,
        chart_type="hexbin",
        data={
            "empty": not bins,
            "age_group": group.label,
            "age_group_index": age_index % len(groups),
            "age_group_label": label,
            "record_count": len(window),
            "bins": [
                {
                    "id": b.bin_id,
                    "x": b.x,
                    "y": b.y,
                    "count": b.count,
                    "avg_debt_to_income": b.mean_debt_to_income,
                }
                for b in bins
            ],
        },
        config={
            **config,
            "xScale": x_scale.to_dict(),
            "yScale": y_scale.to_dict(),
            # Reversed so high ratios map to red
            "colorDomain": [high_ratio, low_ratio],
        },
    )
