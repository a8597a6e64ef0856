"""
Module: flow_graph

Purpose: Build a weighted node/edge graph of category transitions between
adjacent dimensions, the input of the Sankey / parallel-coordinates diagram.

Each row contributes one edge per adjacent dimension pair. Nodes are
identified by ``dimension + "_" + category`` and indexed in first-seen order;
repeated transitions add to the edge weight.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Sequence

from src.data.schemas import FinancialRecord, FlowEdge, FlowGraph, FlowNode, RiskRating
from src.exceptions import DataValidationError
from src.features.aggregators import tally
from src.features.bucketing import INCOME_BUCKETS, bucketed

logger = logging.getLogger(__name__)

ALL_RISKS = "All"


@dataclass(frozen=True)
class FlowDimension:
    """A named categorical axis of the flow diagram."""

    name: str
    accessor: Callable[[FinancialRecord], str]
    label: str = ""

    @property
    def axis_label(self) -> str:
        return self.label or self.name

    def node_key(self, row: FinancialRecord) -> str:
        return f"{self.name}_{self.accessor(row)}"


DEFAULT_FLOW_DIMENSIONS: tuple[FlowDimension, ...] = (
    FlowDimension("EducationLevel", lambda r: r.education_level or "", "Education"),
    FlowDimension("PaymentHistory", lambda r: r.payment_history or "", "Payment History"),
    FlowDimension("Income", bucketed(lambda r: r.income, INCOME_BUCKETS), "Income"),
    FlowDimension("RiskRating", lambda r: r.risk_label, "Risk Rating"),
)


def risk_filter(selection: str | RiskRating) -> Callable[[FinancialRecord], bool] | None:
    """
    Build a row predicate for a risk-rating filter control.

    Returns None for "All" (no filtering).

    Raises:
        DataValidationError: If the selection is not a risk rating or "All"
    """
    if isinstance(selection, RiskRating):
        wanted = selection
    elif selection == ALL_RISKS:
        return None
    else:
        try:
            wanted = RiskRating(selection)
        except ValueError:
            raise DataValidationError(
                f"Unknown risk filter '{selection}'",
                field="risk_rating",
                value=selection,
            )
    return lambda row: row.risk_rating == wanted


def build_flow_graph(
    rows: Sequence[FinancialRecord],
    dimensions: Sequence[FlowDimension] = DEFAULT_FLOW_DIMENSIONS,
    *,
    where: Callable[[FinancialRecord], bool] | None = None,
) -> FlowGraph:
    """
    Build the transition graph over adjacent dimension pairs.

    Args:
        rows: Validated records
        dimensions: Ordered dimensions; at least two
        where: Optional row predicate applied before construction

    Returns:
        FlowGraph; empty when no rows survive the filter

    Raises:
        DataValidationError: If fewer than two dimensions are given
    """
    if len(dimensions) < 2:
        raise DataValidationError(
            "A flow graph needs at least two dimensions",
            field="dimensions",
            value=[d.name for d in dimensions],
        )

    selected = [r for r in rows if where(r)] if where is not None else rows

    def transitions(row: FinancialRecord) -> Iterator[tuple[str, str]]:
        keys = [d.node_key(row) for d in dimensions]
        return zip(keys, keys[1:])

    edge_counts = tally(selected, transitions)

    # Walking edges in first-seen order reproduces first-seen node order
    node_index: dict[str, int] = {}
    nodes: list[FlowNode] = []

    def register(key: str) -> int:
        index = node_index.get(key)
        if index is None:
            index = node_index[key] = len(nodes)
            name, category = _split_key(key, dimensions)
            nodes.append(FlowNode(index=index, key=key, dimension=name, category=category))
        return index

    edges = []
    for (source_key, target_key), entry in edge_counts.items():
        source = register(source_key)
        target = register(target_key)
        edges.append(FlowEdge(
            source=source,
            target=target,
            weight=entry.count,
            risk_rating=entry.first.risk_label or None,
        ))

    logger.debug(f"Built flow graph with {len(nodes)} nodes and {len(edges)} edges")
    return FlowGraph(nodes=tuple(nodes), edges=tuple(edges))


def _split_key(key: str, dimensions: Sequence[FlowDimension]) -> tuple[str, str]:
    """Recover (dimension, category) from a node key.

    Matched against known dimension names so categories containing "_" survive.
    """
    for dim in sorted(dimensions, key=lambda d: len(d.name), reverse=True):
        prefix = f"{dim.name}_"
        if key.startswith(prefix):
            return dim.name, key[len(prefix):]
    name, _, category = key.partition("_")
    return name, category


def outgoing_weight(graph: FlowGraph, node_index: int) -> int:
    """Total weight of edges leaving a node."""
    return sum(e.weight for e in graph.edges if e.source == node_index)


def incoming_weight(graph: FlowGraph, node_index: int) -> int:
    """Total weight of edges entering a node."""
    return sum(e.weight for e in graph.edges if e.target == node_index)
