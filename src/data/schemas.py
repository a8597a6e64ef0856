"""
Module: schemas

Purpose: Pydantic models for all data structures in the risk chart engine.

All models use Pydantic v2 for validation with strict type hints.
"""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class RiskRating(str, Enum):
    """Risk rating assigned to each applicant."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# Canonical display order (legend, stack order)
RISK_ORDER: tuple[str, ...] = tuple(r.value for r in RiskRating)


class RecordField(str, Enum):
    """Record attributes a consumer can require from the loader."""

    AGE = "age"
    INCOME = "income"
    RISK_RATING = "risk_rating"
    CREDIT_SCORE = "credit_score"
    DEBT_TO_INCOME_RATIO = "debt_to_income_ratio"
    EDUCATION_LEVEL = "education_level"
    PAYMENT_HISTORY = "payment_history"


# =============================================================================
# BASE MODELS
# =============================================================================


class BaseSchema(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


# =============================================================================
# RECORD SCHEMA
# =============================================================================


class FinancialRecord(BaseSchema):
    """One validated row of the financial risk dataset.

    Fields are optional at the type level: each consumer asks the loader for
    the subset it needs, and the loader only emits rows where that subset is
    present and valid.
    """

    age: int | None = None
    income: float | None = None
    risk_rating: RiskRating | None = None
    credit_score: int | None = None
    debt_to_income_ratio: float | None = None
    education_level: str | None = None
    payment_history: str | None = None

    @property
    def risk_label(self) -> str:
        """Risk rating as its display string, empty when unset."""
        return self.risk_rating.value if self.risk_rating else ""

    def __repr__(self) -> str:
        rating = self.risk_rating.value if self.risk_rating else None
        return f"FinancialRecord(age={self.age}, income={self.income}, risk={rating!r})"


# =============================================================================
# BUCKET SCHEMAS
# =============================================================================


class Bucket(BaseSchema):
    """A labeled interval over a numeric domain.

    Closed on both ends unless ``upper_inclusive`` is False, in which case the
    interval is ``[min, max)``.
    """

    min: float
    max: float
    label: str
    upper_inclusive: bool = True

    @model_validator(mode="after")
    def validate_bounds(self) -> "Bucket":
        if self.min > self.max:
            raise ValueError(f"Bucket '{self.label}' has min {self.min} > max {self.max}")
        return self

    def contains(self, value: float) -> bool:
        """Check whether value falls inside this interval."""
        if self.upper_inclusive:
            return self.min <= value <= self.max
        return self.min <= value < self.max


class BucketTable(BaseSchema):
    """Ordered, non-overlapping buckets plus a fallback label."""

    name: str
    buckets: tuple[Bucket, ...]
    fallback_label: str

    @model_validator(mode="after")
    def validate_ordering(self) -> "BucketTable":
        if not self.buckets:
            raise ValueError(f"Bucket table '{self.name}' has no buckets")

        labels = [b.label for b in self.buckets]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Bucket table '{self.name}' has duplicate labels")
        if self.fallback_label in labels:
            raise ValueError(
                f"Fallback label '{self.fallback_label}' collides with a bucket label"
            )

        for prev, curr in zip(self.buckets, self.buckets[1:]):
            # A half-open bucket may be followed by one starting at its max
            touches = curr.min == prev.max and not prev.upper_inclusive
            if curr.min < prev.max or (curr.min == prev.max and not touches):
                raise ValueError(
                    f"Buckets '{prev.label}' and '{curr.label}' overlap or are out of order"
                )
        return self

    @property
    def labels(self) -> tuple[str, ...]:
        """All labels in display order, fallback last."""
        return tuple(b.label for b in self.buckets) + (self.fallback_label,)


# =============================================================================
# AGGREGATION SCHEMAS
# =============================================================================


class AggregateCell(BaseSchema):
    """Count and sum for one composite categorical key."""

    count: Annotated[int, Field(ge=0)] = 0
    sum: float = 0.0

    @property
    def mean(self) -> float:
        """Mean of the measure; 0.0 for an empty cell instead of NaN."""
        if self.count == 0:
            return 0.0
        return self.sum / self.count


class FlowNode(BaseSchema):
    """A (dimension, category) node in a flow graph."""

    index: Annotated[int, Field(ge=0)]
    key: str
    dimension: str
    category: str


class FlowEdge(BaseSchema):
    """Weighted transition between categories of adjacent dimensions."""

    source: Annotated[int, Field(ge=0)]
    target: Annotated[int, Field(ge=0)]
    weight: Annotated[int, Field(ge=1)]
    risk_rating: str | None = None


class FlowGraph(BaseSchema):
    """Nodes and edges produced by one flow-graph construction pass."""

    nodes: tuple[FlowNode, ...] = ()
    edges: tuple[FlowEdge, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node_by_key(self, key: str) -> FlowNode | None:
        """Look up a node by its composite key."""
        for node in self.nodes:
            if node.key == key:
                return node
        return None


class HexBin(BaseSchema):
    """One hexagonal bin: pixel centre, lattice coordinates, and its summary."""

    x: float
    y: float
    i: float
    j: int
    count: Annotated[int, Field(ge=1)]
    mean_debt_to_income: float

    @property
    def bin_id(self) -> str:
        """Stable identifier for the bin (used as the render join key)."""
        return f"{self.x}-{self.y}"
