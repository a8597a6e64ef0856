"""
Module: exceptions

Purpose: Domain-specific exception hierarchy for the risk chart engine.

All exceptions include context information. Malformed input rows are never
raised (the loader drops them); these exceptions signal misconfiguration or
misuse of the engine's building blocks.
"""

from typing import Any


class RiskChartError(Exception):
    """Base exception for all risk chart engine errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


class DataValidationError(RiskChartError):
    """Raised when a value fails schema or business validation."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if field is not None:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = value
        super().__init__(message, context=ctx)
        self.field = field
        self.value = value


class DataLoadError(RiskChartError):
    """Raised when the source file cannot be read at all."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        missing_columns: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if path is not None:
            ctx["path"] = path
        if missing_columns is not None:
            ctx["missing_columns"] = missing_columns
        super().__init__(message, context=ctx)
        self.path = path
        self.missing_columns = missing_columns or []


class BucketTableError(RiskChartError):
    """Raised when a label is not found in a bucket table.

    Malformed tables (overlapping, unordered, empty) fail pydantic validation
    when the BucketTable is built instead.
    """

    def __init__(
        self,
        message: str,
        *,
        table_name: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if table_name is not None:
            ctx["table_name"] = table_name
        super().__init__(message, context=ctx)
        self.table_name = table_name


class InsufficientDataError(RiskChartError):
    """Raised when there is insufficient data for a computation."""

    def __init__(
        self,
        message: str,
        *,
        required: int,
        actual: int,
        data_type: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["required"] = required
        ctx["actual"] = actual
        ctx["data_type"] = data_type
        super().__init__(message, context=ctx)
        self.required = required
        self.actual = actual
        self.data_type = data_type


class ChartBuildError(RiskChartError):
    """Raised when a chart specification cannot be built from its inputs."""

    def __init__(
        self,
        message: str,
        *,
        chart_type: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if chart_type is not None:
            ctx["chart_type"] = chart_type
        super().__init__(message, context=ctx)
        self.chart_type = chart_type


class PipelineError(RiskChartError):
    """Raised when a pipeline stage fails and the pipeline runs fail-fast."""

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if stage is not None:
            ctx["stage"] = stage
        super().__init__(message, context=ctx)
        self.stage = stage
