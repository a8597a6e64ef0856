"""
Module: session

Purpose: Tie the loaded dataset, viewport size, risk filter and age-group
animation to the three chart specifications.

Key Classes:
- DashboardData: one LoadResult per chart field set
- DashboardSession: event-driven owner of derived chart specs

Architecture Notes:
- Every spec is a pure function of (dataset version, size version, params);
  DerivedStateCache memoises it.
- Resize events are debounced; age rotation is ticked by a PeriodicScheduler.
  Both are polled by the caller's loop via ``poll()``.
- ``close()`` must be called (or the session used as a context manager) to
  release the animation timer.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from config.settings import Settings, get_settings
from src.charts.base import ChartSpec, empty_spec
from src.charts.density import create_hexbin_spec
from src.charts.sankey import create_sankey_spec
from src.charts.stacked_bar import create_stacked_bar_spec
from src.dashboard.cache import DerivedStateCache
from src.dashboard.scheduling import AgeGroupCycler, Clock, Debouncer, PeriodicScheduler
from src.data.csv_loader import (
    BAR_CHART_FIELDS,
    FLOW_FIELDS,
    HEXBIN_FIELDS,
    HEXBIN_RULES,
    LoadResult,
    RecordLoader,
    dataset_version,
    records_from_rows,
    require_columns,
)
from src.data.schemas import RecordField, RiskRating
from src.exceptions import ChartBuildError, DataLoadError, RiskChartError
from src.features.flow_graph import ALL_RISKS, risk_filter

logger = logging.getLogger(__name__)

BAR = "stacked_bar"
HEXBIN = "hexbin"
SANKEY = "sankey"
ALL_CHARTS = frozenset({BAR, HEXBIN, SANKEY})

CHART_IDS: dict[str, str] = {
    BAR: "bar-chart",
    HEXBIN: "hexbin-chart",
    SANKEY: "sankey-chart",
}


# =============================================================================
# DATA
# =============================================================================


@dataclass
class DashboardData:
    """Validated records for each chart, from a single read of the source."""

    bar: LoadResult
    hexbin: LoadResult
    flow: LoadResult

    @property
    def errors(self) -> list[str]:
        seen: list[str] = []
        for result in (self.bar, self.hexbin, self.flow):
            seen.extend(e for e in result.errors if e not in seen)
        return seen

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Mapping[str, Any]],
        *,
        columns: Iterable[str] | None = None,
        source: str | None = None,
    ) -> "DashboardData":
        """
        Validate raw rows (column name -> cell) once per field set.

        When ``columns`` is given, each field set is checked against it on its
        own; a chart whose columns are missing gets an error-state result while
        the other charts still load.
        """
        materialized = list(rows)
        header = None if columns is None else list(columns)

        def validate(
            fields: frozenset[RecordField],
            rules: Mapping[RecordField, Callable[[Any], bool]] | None = None,
        ) -> LoadResult:
            if header is not None:
                try:
                    require_columns(header, fields, source=source)
                except DataLoadError as e:
                    logger.warning(f"Chart data unavailable: {e.message}")
                    return _failed_result(fields, e.message, source)
            return records_from_rows(materialized, fields, rules=rules, source=source)

        return cls(
            bar=validate(BAR_CHART_FIELDS),
            hexbin=validate(HEXBIN_FIELDS, HEXBIN_RULES),
            flow=validate(FLOW_FIELDS),
        )

    @classmethod
    def failed(cls, message: str, *, source: str | None = None) -> "DashboardData":
        """Error state: every chart sees no records and the load error."""
        return cls(
            bar=_failed_result(BAR_CHART_FIELDS, message, source),
            hexbin=_failed_result(HEXBIN_FIELDS, message, source),
            flow=_failed_result(FLOW_FIELDS, message, source),
        )


def _failed_result(
    fields: frozenset[RecordField], message: str, source: str | None
) -> LoadResult:
    return LoadResult(
        fields=fields,
        source=source,
        errors=[message],
        version=dataset_version([]),
    )


def load_dashboard_data(path: str | Path) -> DashboardData:
    """
    Read the CSV once and validate it for every chart.

    Read failures produce an error-state DashboardData instead of raising. A
    missing column only fails the charts that need it.
    """
    loader = RecordLoader(path, required_fields=())
    try:
        frame = loader.read_frame()
    except DataLoadError as e:
        logger.warning(f"Dashboard data unavailable: {e.message}")
        return DashboardData.failed(e.message, source=str(path))

    data = DashboardData.from_rows(
        frame.to_dict("records"), columns=frame.columns, source=str(path)
    )
    logger.info(
        f"Dashboard data ready: {len(data.bar.records)} bar, "
        f"{len(data.hexbin.records)} hexbin, {len(data.flow.records)} flow records"
    )
    return data


# =============================================================================
# SESSION
# =============================================================================


class DashboardSession:
    """
    Event-driven state for one dashboard display.

    Usage:
        with DashboardSession(load_dashboard_data(path)) as session:
            session.resize(1200, 600)
            while running:
                for chart in session.poll():
                    redraw(chart, session.spec(chart))
    """

    def __init__(
        self,
        data: DashboardData,
        *,
        settings: Settings | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self.data = data
        self.cache = DerivedStateCache()
        self._resize: Debouncer[tuple[int, int]] = Debouncer(
            self.settings.resize_debounce_ms, clock=clock
        )
        self.cycler = AgeGroupCycler(
            PeriodicScheduler(self.settings.age_cycle_interval_ms, clock=clock)
        )
        self._size: tuple[int, int] | None = None
        self._size_version = 0
        self._risk = ALL_RISKS
        self._closed = False

    def __enter__(self) -> "DashboardSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    @property
    def size(self) -> tuple[int, int] | None:
        return self._size

    @property
    def risk_selection(self) -> str:
        return self._risk

    @property
    def closed(self) -> bool:
        return self._closed

    def resize(self, width: int, height: int) -> None:
        """Viewport resized; applied after the debounce window."""
        self._resize.trigger((width, height))

    def set_risk_filter(self, selection: str | RiskRating) -> bool:
        """
        Change the sankey risk filter.

        Returns:
            True if the filter changed

        Raises:
            DataValidationError: If the selection is not a risk rating or "All"
        """
        risk_filter(selection)
        value = selection.value if isinstance(selection, RiskRating) else selection
        changed = value != self._risk
        self._risk = value
        return changed

    def replace_data(self, data: DashboardData) -> None:
        """Swap in a freshly loaded dataset."""
        self.data = data
        self.cache.invalidate()

    def poll(self) -> set[str]:
        """
        Process due events.

        Returns:
            Names of charts whose spec changed and need redrawing
        """
        if self._closed:
            return set()

        changed: set[str] = set()
        new_size = self._resize.poll()
        if new_size is not None and self._apply_size(new_size):
            changed |= ALL_CHARTS
        if self.cycler.poll():
            changed.add(HEXBIN)
        return changed

    def close(self) -> None:
        """Stop the animation timer and drop pending events."""
        if self._closed:
            return
        self.cycler.close()
        self._resize.cancel()
        self._closed = True
        logger.debug("Dashboard session closed")

    def _apply_size(self, size: tuple[int, int]) -> bool:
        width, height = size
        if width <= 0 or height <= 0 or size == self._size:
            return False
        self._size = size
        self._size_version += 1
        logger.debug(f"Viewport now {width}x{height} (version {self._size_version})")
        return True

    # -------------------------------------------------------------------------
    # Specs
    # -------------------------------------------------------------------------

    def spec(self, chart: str) -> ChartSpec:
        """Spec for a chart by name."""
        builders = {BAR: self.stacked_bar, HEXBIN: self.hexbin, SANKEY: self.sankey}
        builder = builders.get(chart)
        if builder is None:
            raise RiskChartError(f"Unknown chart '{chart}'", context={"available": sorted(builders)})
        return builder()

    def stacked_bar(self) -> ChartSpec:
        return self._cached(
            BAR,
            self.data.bar,
            (),
            lambda width, height: create_stacked_bar_spec(
                self.data.bar.records, width=width, height=height
            ),
        )

    def hexbin(self) -> ChartSpec:
        index = self.cycler.index
        return self._cached(
            HEXBIN,
            self.data.hexbin,
            (index,),
            lambda width, height: create_hexbin_spec(
                self.data.hexbin.records,
                age_index=index,
                width=width,
                height=height,
                radius=self.settings.hexbin_radius,
            ),
        )

    def sankey(self) -> ChartSpec:
        risk = self._risk
        return self._cached(
            SANKEY,
            self.data.flow,
            (risk,),
            lambda width, height: create_sankey_spec(
                self.data.flow.records, risk=risk, width=width, height=height
            ),
        )

    def _cached(
        self,
        chart: str,
        result: LoadResult,
        params: tuple,
        build: Callable[[int, int], ChartSpec],
    ) -> ChartSpec:
        chart_id = CHART_IDS[chart]
        if result.errors:
            return empty_spec(chart_id, chart, f"Failed to load data: {result.errors[0]}")
        if self._size is None:
            return empty_spec(chart_id, chart, "Waiting for layout")

        width, height = self._size
        try:
            return self.cache.get_or_compute(
                chart,
                result.version,
                self._size_version,
                params,
                lambda: build(width, height),
            )
        except ChartBuildError as e:
            logger.warning(f"Cannot draw {chart} at {width}x{height}: {e.message}")
            return empty_spec(chart_id, chart, e.message)
