"""
Chart specifications for the financial risk dashboard.

Each chart type has its own module with a create_*_spec function that turns
validated records into a JSON-ready ChartSpec.
"""

from src.charts.base import ChartSpec, empty_spec, plot_area
from src.charts.density import create_hexbin_spec
from src.charts.sankey import create_sankey_spec
from src.charts.stacked_bar import create_stacked_bar_spec

__all__ = [
    "ChartSpec",
    "empty_spec",
    "plot_area",
    "create_hexbin_spec",
    "create_sankey_spec",
    "create_stacked_bar_spec",
]
