"""
Sankey diagram specification for the education -> payment history ->
income range -> risk rating flow.
"""

import logging
from dataclasses import asdict
from typing import Any, Sequence

from src.charts.base import ChartSpec, empty_spec, plot_area
from src.data.schemas import FinancialRecord, RiskRating
from src.features.flow_graph import (
    ALL_RISKS,
    DEFAULT_FLOW_DIMENSIONS,
    FlowDimension,
    build_flow_graph,
    risk_filter,
)
from src.features.scales import SANKEY_MARGINS

logger = logging.getLogger(__name__)

FILTER_OPTIONS: tuple[str, ...] = (ALL_RISKS,) + tuple(r.value for r in RiskRating)


def create_sankey_spec(
    records: Sequence[FinancialRecord],
    *,
    risk: str | RiskRating = ALL_RISKS,
    chart_id: str = "sankey-chart",
    width: int = 800,
    height: int = 500,
    node_width: int = 15,
    node_padding: int = 10,
    dimensions: Sequence[FlowDimension] = DEFAULT_FLOW_DIMENSIONS,
) -> ChartSpec:
    """Create a Sankey diagram specification.

    Args:
        records: Records with education_level, payment_history, income and risk_rating set
        risk: Risk rating filter, or "All"
        chart_id: Unique identifier for the chart
        width: Chart width in pixels
        height: Chart height in pixels
        node_width: Width of Sankey nodes
        node_padding: Padding between nodes
        dimensions: Ordered flow dimensions

    Returns:
        ChartSpec for D3 Sankey rendering; empty when the filter leaves no rows

    Raises:
        DataValidationError: If the risk filter is not a rating or "All"
        ChartBuildError: If the viewport is too small for the margins
    """
    selection = risk.value if isinstance(risk, RiskRating) else risk
    extent = plot_area(width, height, SANKEY_MARGINS, "sankey")

    # Axis label x positions spread evenly across the plot area
    step = extent.width / (len(dimensions) - 1) if len(dimensions) > 1 else 0.0
    axes = [
        {"dimension": dim.name, "label": dim.axis_label, "x": extent.x0 + idx * step}
        for idx, dim in enumerate(dimensions)
    ]

    config: dict[str, Any] = {
        "width": width,
        "height": height,
        "margins": asdict(SANKEY_MARGINS),
        "extent": extent.to_list(),
        "title": "Financial Risk Assessment Sankey Diagram",
        "nodeWidth": node_width,
        "nodePadding": node_padding,
        "axes": axes,
        "filter": selection,
        "filterOptions": list(FILTER_OPTIONS),
        "linkOpacity": 0.7,
    }

    graph = build_flow_graph(records, dimensions, where=risk_filter(risk))
    if graph.is_empty:
        logger.warning(f"No records for sankey chart with filter {selection!r}")
        return empty_spec(chart_id, "sankey", config=config)

    nodes = [
        {
            "index": node.index,
            "name": node.key,
            "dimension": node.dimension,
            "category": node.category,
        }
        for node in graph.nodes
    ]
    links = [
        {
            "source": edge.source,
            "target": edge.target,
            "value": edge.weight,
            "riskRating": edge.risk_rating,
        }
        for edge in graph.edges
    ]

    return ChartSpec(
        chart_id=chart_id,
        chart_type="sankey",
        data={"nodes": nodes, "links": links},
        config=config,
    )
