"""
Tests for flow-graph construction.
"""

import itertools

import pytest

from src.data.schemas import FinancialRecord, RiskRating
from src.exceptions import DataValidationError
from src.features.flow_graph import (
    DEFAULT_FLOW_DIMENSIONS,
    FlowDimension,
    build_flow_graph,
    incoming_weight,
    outgoing_weight,
    risk_filter,
)


# =============================================================================
# FIXTURES
# =============================================================================


def make_record(
    education: str = "Bachelor's",
    payment: str = "Good",
    income: float = 30_000.0,
    risk: RiskRating = RiskRating.LOW,
) -> FinancialRecord:
    """Helper to create a flow record."""
    return FinancialRecord(
        education_level=education,
        payment_history=payment,
        income=income,
        risk_rating=risk,
    )


EDU = FlowDimension("EducationLevel", lambda r: r.education_level, "Education")
PAY = FlowDimension("PaymentHistory", lambda r: r.payment_history, "Payment History")


# =============================================================================
# CONSTRUCTION TESTS
# =============================================================================


class TestBuildFlowGraph:
    """Tests for build_flow_graph."""

    def test_repeated_transitions_merge(self) -> None:
        rows = [make_record("PhD", "Good"), make_record("PhD", "Good")]
        graph = build_flow_graph(rows, [EDU, PAY])

        assert [n.key for n in graph.nodes] == ["EducationLevel_PhD", "PaymentHistory_Good"]
        assert len(graph.edges) == 1
        edge = graph.edges[0]
        assert (edge.source, edge.target, edge.weight) == (0, 1, 2)

    def test_node_keys_unique(self) -> None:
        rows = [make_record("PhD", "Good"), make_record("PhD", "Poor"), make_record("High School", "Good")]
        graph = build_flow_graph(rows, [EDU, PAY])

        keys = [n.key for n in graph.nodes]
        assert len(keys) == len(set(keys))
        assert [n.index for n in graph.nodes] == list(range(len(graph.nodes)))

    def test_first_seen_node_order(self) -> None:
        rows = [make_record("PhD", "Good"), make_record("High School", "Poor")]
        graph = build_flow_graph(rows, [EDU, PAY])
        assert [n.key for n in graph.nodes] == [
            "EducationLevel_PhD",
            "PaymentHistory_Good",
            "EducationLevel_High School",
            "PaymentHistory_Poor",
        ]

    def test_edges_reference_nodes(self) -> None:
        rows = [make_record(risk=r) for r in RiskRating]
        graph = build_flow_graph(rows)
        n = len(graph.nodes)
        assert all(0 <= e.source < n and 0 <= e.target < n for e in graph.edges)
        assert all(e.weight >= 1 for e in graph.edges)

    def test_default_dimensions(self) -> None:
        graph = build_flow_graph([make_record(income=75_000.0, risk=RiskRating.HIGH)])

        assert [n.key for n in graph.nodes] == [
            "EducationLevel_Bachelor's",
            "PaymentHistory_Good",
            "Income_50K - 100K",
            "RiskRating_High",
        ]
        assert len(graph.edges) == len(DEFAULT_FLOW_DIMENSIONS) - 1

    def test_edge_weights_sum_per_adjacent_pair(self) -> None:
        """Each adjacent dimension pair carries one unit of weight per row."""
        rows = [
            make_record("PhD", "Good", 10_000, RiskRating.LOW),
            make_record("PhD", "Poor", 60_000, RiskRating.HIGH),
            make_record("Master's", "Good", 250_000, RiskRating.MEDIUM),
        ]
        graph = build_flow_graph(rows)
        by_dimension = {n.index: n.dimension for n in graph.nodes}

        for dim in DEFAULT_FLOW_DIMENSIONS[:-1]:
            weight = sum(e.weight for e in graph.edges if by_dimension[e.source] == dim.name)
            assert weight == len(rows)

    def test_node_conservation(self) -> None:
        rows = [
            make_record("PhD", "Good"),
            make_record("PhD", "Poor"),
            make_record("Master's", "Good"),
        ]
        graph = build_flow_graph(rows, [EDU, PAY])
        good = graph.node_by_key("PaymentHistory_Good")
        phd = graph.node_by_key("EducationLevel_PhD")

        assert incoming_weight(graph, good.index) == 2
        assert outgoing_weight(graph, phd.index) == 2
        assert incoming_weight(graph, phd.index) == 0

    def test_edge_risk_from_first_row(self) -> None:
        rows = [
            make_record("PhD", "Good", risk=RiskRating.MEDIUM),
            make_record("PhD", "Good", risk=RiskRating.HIGH),
        ]
        graph = build_flow_graph(rows, [EDU, PAY])
        assert graph.edges[0].risk_rating == "Medium"

    def test_category_with_underscore(self) -> None:
        rows = [make_record(payment="Very_Poor")]
        graph = build_flow_graph(rows, [EDU, PAY])
        node = graph.node_by_key("PaymentHistory_Very_Poor")
        assert node.dimension == "PaymentHistory"
        assert node.category == "Very_Poor"

    def test_idempotent(self) -> None:
        rows = [
            make_record("PhD", "Good", 10_000, RiskRating.LOW),
            make_record("Master's", "Poor", 60_000, RiskRating.HIGH),
            make_record("PhD", "Good", 90_000, RiskRating.MEDIUM),
        ]
        assert build_flow_graph(rows) == build_flow_graph(rows)

    def test_weights_independent_of_row_order(self) -> None:
        """Shuffling rows may renumber nodes but never changes edge weights by key."""
        rows = [
            make_record("PhD", "Good", 10_000, RiskRating.LOW),
            make_record("Master's", "Poor", 60_000, RiskRating.HIGH),
            make_record("PhD", "Good", 90_000, RiskRating.MEDIUM),
            make_record("High School", "Poor", 250_000, RiskRating.HIGH),
        ]

        def weights_by_key(records: list[FinancialRecord]) -> dict[tuple[str, str], int]:
            graph = build_flow_graph(records)
            keys = {n.index: n.key for n in graph.nodes}
            return {(keys[e.source], keys[e.target]): e.weight for e in graph.edges}

        expected = weights_by_key(rows)
        for perm in itertools.permutations(rows):
            assert weights_by_key(list(perm)) == expected

    def test_empty_input(self) -> None:
        graph = build_flow_graph([], [EDU, PAY])
        assert graph.is_empty
        assert graph.edges == ()

    def test_too_few_dimensions(self) -> None:
        with pytest.raises(DataValidationError):
            build_flow_graph([make_record()], [EDU])


# =============================================================================
# FILTER TESTS
# =============================================================================


class TestRiskFilter:
    """Tests for risk filtering."""

    def test_all_means_no_filter(self) -> None:
        assert risk_filter("All") is None

    def test_string_selection(self) -> None:
        predicate = risk_filter("High")
        assert predicate(make_record(risk=RiskRating.HIGH))
        assert not predicate(make_record(risk=RiskRating.LOW))

    def test_enum_selection(self) -> None:
        predicate = risk_filter(RiskRating.LOW)
        assert predicate(make_record(risk=RiskRating.LOW))

    def test_unknown_selection(self) -> None:
        with pytest.raises(DataValidationError):
            risk_filter("Extreme")

    def test_filter_applied_before_construction(self) -> None:
        rows = [
            make_record("PhD", "Good", risk=RiskRating.LOW),
            make_record("Master's", "Poor", risk=RiskRating.HIGH),
        ]
        graph = build_flow_graph(rows, [EDU, PAY], where=risk_filter("High"))
        assert [n.key for n in graph.nodes] == ["EducationLevel_Master's", "PaymentHistory_Poor"]

    def test_filter_leaving_nothing(self) -> None:
        rows = [make_record(risk=RiskRating.LOW)]
        graph = build_flow_graph(rows, [EDU, PAY], where=risk_filter("Medium"))
        assert graph.is_empty
