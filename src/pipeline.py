"""
Module: pipeline

Purpose: One-shot orchestrator from the source CSV to every chart spec.

Key Functions:
- run_pipeline: Load the dataset and build all chart specifications
- PipelineConfig: Configuration for pipeline execution
- PipelineResult: Container for pipeline outputs

Architecture Notes:
- Each stage is timed and recorded in a PipelineStageResult
- A failed chart stage does not stop the others unless fail_fast is set
- Load failures surface as an error-state dataset, not as an exception
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from config.settings import get_settings
from src.charts.base import ChartSpec
from src.charts.density import create_hexbin_spec
from src.charts.sankey import FILTER_OPTIONS, create_sankey_spec
from src.charts.stacked_bar import create_stacked_bar_spec
from src.dashboard.session import DashboardData, load_dashboard_data
from src.exceptions import PipelineError, RiskChartError
from src.features.bucketing import AGE_BUCKETS

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class PipelineConfig:
    """Configuration for pipeline execution."""

    # Data
    data_path: Path | None = None  # None = settings.data_path

    # Geometry
    width: int | None = None
    height: int | None = None
    hexbin_radius: float | None = None

    # Sankey filters to render; defaults to every option
    risk_filters: tuple[str, ...] = FILTER_OPTIONS

    # Execution
    fail_fast: bool = False
    verbose: bool = False


@dataclass
class PipelineStageResult:
    """Result from a single pipeline stage."""

    stage_name: str
    success: bool
    duration_ms: float
    metrics: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None


@dataclass
class PipelineResult:
    """Complete pipeline execution result."""

    data: DashboardData | None
    stacked_bar: ChartSpec | None = None
    hexbin_frames: list[ChartSpec] = field(default_factory=list)
    sankey_by_filter: dict[str, ChartSpec] = field(default_factory=dict)

    # Metadata
    config: PipelineConfig = field(default_factory=PipelineConfig)
    stage_results: list[PipelineStageResult] = field(default_factory=list)
    total_duration_ms: float = 0.0
    success: bool = True
    error_message: str | None = None

    @property
    def failed_stages(self) -> list[str]:
        return [s.stage_name for s in self.stage_results if not s.success]

    @property
    def specs(self) -> list[ChartSpec]:
        """Every spec produced, in stage order."""
        produced: list[ChartSpec] = []
        if self.stacked_bar is not None:
            produced.append(self.stacked_bar)
        produced.extend(self.hexbin_frames)
        produced.extend(self.sankey_by_filter.values())
        return produced


# =============================================================================
# PIPELINE EXECUTION
# =============================================================================


def _time_stage(
    stage_name: str,
    func: Callable[[], Any],
    verbose: bool = False,
) -> tuple[Any, PipelineStageResult]:
    """Execute a stage and time it; failures are recorded, then re-raised."""
    if verbose:
        logger.info(f"[Pipeline] Starting: {stage_name}")

    start = time.perf_counter()
    try:
        result = func()
    except RiskChartError as e:
        duration = (time.perf_counter() - start) * 1000
        logger.error(f"[Pipeline] Failed: {stage_name} - {e}")
        raise _StageFailure(
            PipelineStageResult(
                stage_name=stage_name,
                success=False,
                duration_ms=duration,
                error_message=str(e),
            ),
            e,
        ) from e

    duration = (time.perf_counter() - start) * 1000
    if verbose:
        logger.info(f"[Pipeline] Completed: {stage_name} ({duration:.1f}ms)")
    return result, PipelineStageResult(stage_name=stage_name, success=True, duration_ms=duration)


class _StageFailure(Exception):
    """Carries the failed stage's result out of _time_stage."""

    def __init__(self, stage: PipelineStageResult, cause: RiskChartError) -> None:
        super().__init__(stage.error_message)
        self.stage = stage
        self.cause = cause


def run_pipeline(
    config: PipelineConfig | None = None,
    *,
    data: DashboardData | None = None,
) -> PipelineResult:
    """
    Build every chart specification.

    Args:
        config: Pipeline configuration
        data: Optional preloaded dataset (skips reading the CSV)

    Returns:
        PipelineResult with all specs produced and per-stage results

    Raises:
        PipelineError: If a stage fails and ``config.fail_fast`` is set
    """
    config = config or PipelineConfig()
    settings = get_settings()
    width = config.width or settings.default_width
    height = config.height or settings.default_height
    radius = config.hexbin_radius or settings.hexbin_radius
    data_path = config.data_path or settings.data_path

    start_time = time.perf_counter()
    result = PipelineResult(data=None, config=config)

    def run_stage(name: str, func: Callable[[], Any]) -> Any:
        try:
            value, stage = _time_stage(name, func, config.verbose)
        except _StageFailure as failure:
            result.stage_results.append(failure.stage)
            result.success = False
            result.error_message = result.error_message or failure.stage.error_message
            if config.fail_fast:
                raise PipelineError(str(failure.cause), stage=name) from failure.cause
            return None
        result.stage_results.append(stage)
        return value

    # Stage 1: Data Loading
    loaded = run_stage(
        "Data Loading",
        lambda: data if data is not None else load_dashboard_data(data_path),
    )
    result.data = loaded
    if loaded is not None:
        result.stage_results[-1].metrics = {
            "bar_records": len(loaded.bar.records),
            "hexbin_records": len(loaded.hexbin.records),
            "flow_records": len(loaded.flow.records),
            "errors": loaded.errors,
        }
        if loaded.errors:
            result.success = False
            result.error_message = loaded.errors[0]
            if config.fail_fast:
                raise PipelineError(loaded.errors[0], stage="Data Loading")

    if loaded is None:
        result.total_duration_ms = (time.perf_counter() - start_time) * 1000
        return result

    # Stage 2: Stacked Bar
    result.stacked_bar = run_stage(
        "Stacked Bar",
        lambda: create_stacked_bar_spec(loaded.bar.records, width=width, height=height),
    )

    # Stage 3: Hexbin Frames (one per age group)
    frames = run_stage(
        "Hexbin Frames",
        lambda: [
            create_hexbin_spec(
                loaded.hexbin.records,
                age_index=idx,
                chart_id=f"hexbin-chart-{idx}",
                width=width,
                height=height,
                radius=radius,
            )
            for idx in range(len(AGE_BUCKETS.buckets))
        ],
    )
    if frames is not None:
        result.hexbin_frames = frames
        result.stage_results[-1].metrics = {
            "frames": len(frames),
            "empty_frames": sum(1 for f in frames if f.is_empty),
        }

    # Stage 4: Sankey
    sankeys = run_stage(
        "Sankey",
        lambda: {
            risk: create_sankey_spec(
                loaded.flow.records,
                risk=risk,
                chart_id=f"sankey-chart-{risk.lower()}",
                width=width,
                height=height,
            )
            for risk in config.risk_filters
        },
    )
    if sankeys is not None:
        result.sankey_by_filter = sankeys

    result.total_duration_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"Pipeline finished in {result.total_duration_ms:.1f}ms "
        f"({len(result.specs)} specs, {len(result.failed_stages)} failed stages)"
    )
    return result


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def format_pipeline_summary(result: PipelineResult) -> str:
    """
    Format pipeline result as human-readable summary.

    Args:
        result: PipelineResult

    Returns:
        Formatted summary string
    """
    lines = [
        "=" * 60,
        "RISK CHART PIPELINE RESULTS",
        "=" * 60,
        "",
        f"Status: {'SUCCESS' if result.success else 'FAILED'}",
        f"Duration: {result.total_duration_ms:.1f}ms",
        "",
    ]

    if result.data is not None:
        lines.extend([
            "DATA:",
            f"  - Bar chart records: {len(result.data.bar.records)}",
            f"  - Hexbin records: {len(result.data.hexbin.records)}",
            f"  - Flow records: {len(result.data.flow.records)}",
            "",
        ])

    if result.error_message:
        lines.extend([f"Error: {result.error_message}", ""])

    lines.append("STAGE TIMINGS:")
    for stage in result.stage_results:
        status = "✓" if stage.success else "✗"
        lines.append(f"  {status} {stage.stage_name}: {stage.duration_ms:.1f}ms")

    lines.extend([
        "",
        "=" * 60,
    ])

    return "\n".join(lines)


def export_results_to_dict(result: PipelineResult) -> dict[str, Any]:
    """
    Export pipeline results to a dictionary for serialization.

    Args:
        result: PipelineResult

    Returns:
        Dictionary suitable for JSON serialization
    """
    return {
        "success": result.success,
        "duration_ms": result.total_duration_ms,
        "error": result.error_message,
        "charts": {
            "stacked_bar": result.stacked_bar.to_dict() if result.stacked_bar else None,
            "hexbin_frames": [f.to_dict() for f in result.hexbin_frames],
            "sankey": {k: v.to_dict() for k, v in result.sankey_by_filter.items()},
        },
        "stages": [
            {
                "name": s.stage_name,
                "success": s.success,
                "duration_ms": s.duration_ms,
                "metrics": s.metrics,
                "error": s.error_message,
            }
            for s in result.stage_results
        ],
    }
