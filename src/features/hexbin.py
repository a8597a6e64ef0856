"""
Module: hexbin

Purpose: Hexagonal binning of points in pixel space, and the per-bin
debt-to-income summary shown by the credit score vs. income density plot.

The lattice is pointy-top with horizontal spacing ``2 r sin(pi/3)`` and
vertical spacing ``1.5 r``; odd rows are shifted by half a column.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, Sequence, TypeVar

import numpy as np

from src.data.schemas import FinancialRecord, HexBin
from src.exceptions import DataValidationError
from src.features.scales import LinearScale

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RawBin(Generic[T]):
    """Points that fell into one hexagon, with the hexagon centre."""

    x: float
    y: float
    i: float
    j: int
    points: list[T] = field(default_factory=list)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def hexagon_vertices(radius: float) -> list[tuple[float, float]]:
    """Corner offsets of a pointy-top hexagon centred at the origin."""
    corners = []
    for k in range(6):
        angle = k * math.pi / 3
        corners.append((math.sin(angle) * radius, -math.cos(angle) * radius))
    return corners


def hexbin(
    points: Iterable[T],
    *,
    radius: float,
    x: Callable[[T], float],
    y: Callable[[T], float],
) -> list[RawBin[T]]:
    """
    Assign points to hexagons.

    Args:
        points: Input points
        radius: Hexagon radius in pixels
        x: Pixel x accessor
        y: Pixel y accessor

    Returns:
        Non-empty bins in first-seen order. Points with a NaN coordinate are
        skipped.

    Raises:
        DataValidationError: If radius is not positive
    """
    if radius <= 0:
        raise DataValidationError("Hexbin radius must be positive", field="radius", value=radius)

    dx = radius * 2 * math.sin(math.pi / 3)
    dy = radius * 1.5

    bins_by_id: dict[tuple[float, int], RawBin[T]] = {}
    bins: list[RawBin[T]] = []

    for point in points:
        px = float(x(point))
        py = float(y(point))
        if math.isnan(px) or math.isnan(py):
            continue

        py = py / dy
        pj = _round_half_up(py)
        px = px / dx - (pj & 1) / 2
        pi = float(_round_half_up(px))
        py1 = py - pj

        # Near a row boundary: pick the closer of the two candidate centres
        if abs(py1) * 3 > 1:
            px1 = px - pi
            pi2 = pi + (-1 if px < pi else 1) / 2
            pj2 = pj + (-1 if py < pj else 1)
            px2 = px - pi2
            py2 = py - pj2
            if px1 * px1 + py1 * py1 > px2 * px2 + py2 * py2:
                pi = pi2 + (1 if pj & 1 else -1) / 2
                pj = pj2

        key = (pi, pj)
        found = bins_by_id.get(key)
        if found is None:
            found = RawBin(x=(pi + (pj & 1) / 2) * dx, y=pj * dy, i=pi, j=pj)
            bins_by_id[key] = found
            bins.append(found)
        found.points.append(point)

    return bins


def bin_debt_to_income(
    records: Sequence[FinancialRecord],
    x_scale: LinearScale,
    y_scale: LinearScale,
    *,
    radius: float,
) -> list[HexBin]:
    """
    Bin records by scaled (credit score, income) and average their DTI.

    Bins whose records carry no usable debt-to-income ratio are dropped.

    Args:
        records: Records with credit_score and income set
        x_scale: Credit score -> pixel x
        y_scale: Income -> pixel y
        radius: Hexagon radius in pixels

    Returns:
        HexBin summaries in first-seen order
    """
    raw_bins = hexbin(
        records,
        radius=radius,
        x=lambda r: x_scale(r.credit_score) if r.credit_score is not None else math.nan,
        y=lambda r: y_scale(r.income) if r.income is not None else math.nan,
    )

    summaries = []
    for raw in raw_bins:
        ratios = np.array(
            [r.debt_to_income_ratio if r.debt_to_income_ratio is not None else np.nan for r in raw.points],
            dtype=float,
        )
        if np.isnan(ratios).all():
            continue
        summaries.append(HexBin(
            x=raw.x,
            y=raw.y,
            i=raw.i,
            j=raw.j,
            count=len(raw.points),
            mean_debt_to_income=float(np.nanmean(ratios)),
        ))

    logger.debug(f"Binned {len(records)} records into {len(summaries)} hexagons")
    return summaries
