"""
Data module for the risk chart engine.

Contains the record schemas and the CSV record loader.
"""

from src.data.csv_loader import (
    ALL_FIELDS,
    BAR_CHART_FIELDS,
    COLUMN_MAP,
    FLOW_FIELDS,
    HEXBIN_FIELDS,
    HEXBIN_RULES,
    LoadResult,
    RecordLoader,
    load_records,
    records_from_rows,
    require_columns,
)
from src.data.schemas import (
    AggregateCell,
    Bucket,
    BucketTable,
    FinancialRecord,
    FlowEdge,
    FlowGraph,
    FlowNode,
    HexBin,
    RecordField,
    RiskRating,
)

__all__ = [
    # Data loading
    "RecordLoader",
    "LoadResult",
    "load_records",
    "records_from_rows",
    "require_columns",
    # Column contract and field sets
    "COLUMN_MAP",
    "ALL_FIELDS",
    "BAR_CHART_FIELDS",
    "FLOW_FIELDS",
    "HEXBIN_FIELDS",
    "HEXBIN_RULES",
    # Schemas
    "AggregateCell",
    "Bucket",
    "BucketTable",
    "FinancialRecord",
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "HexBin",
    "RecordField",
    "RiskRating",
]
