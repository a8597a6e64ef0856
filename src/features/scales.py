"""
Module: scales

Purpose: Linear data-to-pixel mapping and plot-area geometry.

Hexbin binning happens in pixel space, so bins depend on the viewport size
as well as on the data.
"""

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from src.exceptions import InsufficientDataError


@dataclass(frozen=True)
class Margins:
    """Space reserved around the plot area, in pixels."""

    top: float
    right: float
    bottom: float
    left: float


BAR_MARGINS = Margins(top=60, right=150, bottom=100, left=80)
HEXBIN_MARGINS = Margins(top=80, right=60, bottom=120, left=80)
SANKEY_MARGINS = Margins(top=80, right=60, bottom=100, left=60)


@dataclass(frozen=True)
class PlotExtent:
    """Pixel bounds of the plot area."""

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    def to_list(self) -> list[list[float]]:
        return [[self.x0, self.y0], [self.x1, self.y1]]


def plot_extent(width: float, height: float, margins: Margins) -> PlotExtent:
    """Plot area inside the margins of a width x height viewport."""
    return PlotExtent(
        x0=margins.left,
        y0=margins.top,
        x1=width - margins.right,
        y1=height - margins.bottom,
    )


@dataclass(frozen=True)
class LinearScale:
    """Linear map from a data domain onto a pixel range (no clamping)."""

    domain: tuple[float, float]
    range: tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        return r0 + (value - d0) * (r1 - r0) / (d1 - d0)

    def invert(self, pixel: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if r1 == r0:
            return (d0 + d1) / 2
        return d0 + (pixel - r0) * (d1 - d0) / (r1 - r0)

    def to_dict(self) -> dict[str, list[float]]:
        return {"domain": list(self.domain), "range": list(self.range)}


def padded_domain(values: Iterable[float], fraction: float = 0.05) -> tuple[float, float]:
    """
    Min/max of the values widened by ``fraction`` of their span on each side.

    Raises:
        InsufficientDataError: If there are no finite values
    """
    arr = np.asarray(list(values), dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        raise InsufficientDataError(
            "Cannot compute a domain from no values",
            required=1,
            actual=0,
            data_type="values",
        )
    low = float(arr.min())
    high = float(arr.max())
    buffer = (high - low) * fraction
    return (low - buffer, high + buffer)
