"""
Base dataclass for chart specifications.

A ChartSpec is everything a browser charting library needs to draw one chart:
precomputed data series plus display configuration. No layout or drawing
happens in Python.
"""

from dataclasses import dataclass, field
from typing import Any

from src.exceptions import ChartBuildError
from src.features.scales import Margins, PlotExtent, plot_extent


@dataclass
class ChartSpec:
    """Specification for one chart.

    Contains the data and configuration needed to render a chart.
    The actual rendering is done by JavaScript; this just provides the chart spec.
    """

    chart_id: str
    chart_type: str  # "stacked_bar", "hexbin", "sankey"

    # Data for the chart (will be JSON-serialized)
    data: dict[str, Any] = field(default_factory=dict)

    # Chart configuration
    config: dict[str, Any] = field(default_factory=dict)

    # Annotations to show on the chart
    annotations: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return bool(self.data.get("empty"))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "chart_id": self.chart_id,
            "chart_type": self.chart_type,
            "data": self.data,
            "config": self.config,
            "annotations": self.annotations,
        }


def empty_spec(
    chart_id: str,
    chart_type: str,
    message: str = "No data",
    *,
    config: dict[str, Any] | None = None,
) -> ChartSpec:
    """A "no data" chart: the renderer shows the message instead of series."""
    return ChartSpec(
        chart_id=chart_id,
        chart_type=chart_type,
        data={"empty": True, "message": message},
        config=config or {},
    )


def plot_area(width: int, height: int, margins: Margins, chart_type: str) -> PlotExtent:
    """
    Plot area for a chart of the given viewport size.

    Raises:
        ChartBuildError: If the margins leave no room to draw in
    """
    extent = plot_extent(width, height, margins)
    if extent.width <= 0 or extent.height <= 0:
        raise ChartBuildError(
            f"A {width}x{height} viewport leaves no plot area",
            chart_type=chart_type,
            context={"width": width, "height": height},
        )
    return extent
