"""
Module: aggregators

Purpose: Grouping and counting aggregation over record sequences.

Every chart reduces rows to "count co-occurrences of categorical values".
``tally`` is the single primitive for that: a key extractor yields zero or
more keys per row and each key accumulates a count and a measure sum. The
two-level table used by the bar chart and the adjacent-pair graph used by the
flow diagram are both built on it.
"""

from dataclasses import dataclass
from typing import Any, Callable, Hashable, Iterable, Sequence, TypeVar

from src.data.schemas import AggregateCell

T = TypeVar("T")

KeyFunc = Callable[[T], str]
Measure = Callable[[T], float]

# primary -> secondary -> cell
AggregateTable = dict[str, dict[str, AggregateCell]]


@dataclass
class CoOccurrence:
    """Running count/total for one key, plus the row that first produced it."""

    count: int = 0
    total: float = 0.0
    first: Any = None

    def to_cell(self) -> AggregateCell:
        return AggregateCell(count=self.count, sum=self.total)


def tally(
    rows: Iterable[T],
    keys_of: Callable[[T], Iterable[Hashable]],
    *,
    measure: Measure | None = None,
) -> dict[Hashable, CoOccurrence]:
    """
    Count co-occurrences of keys across rows.

    Args:
        rows: Input rows
        keys_of: Yields the keys a row contributes to (one key for a flat
            table, several for adjacent-pair graphs)
        measure: Optional numeric measure summed per key

    Returns:
        Mapping of key to CoOccurrence, in first-seen key order
    """
    counts: dict[Hashable, CoOccurrence] = {}
    for row in rows:
        value = measure(row) if measure is not None else 0.0
        for key in keys_of(row):
            entry = counts.get(key)
            if entry is None:
                entry = counts[key] = CoOccurrence(first=row)
            entry.count += 1
            entry.total += value
    return counts


def aggregate(
    rows: Iterable[T],
    primary_key: KeyFunc,
    secondary_key: KeyFunc,
    measure: Measure,
) -> AggregateTable:
    """
    Group rows by two categorical keys and sum a measure per cell.

    Categories without rows never appear as keys. Zero rows gives ``{}``.

    Example:
        table = aggregate(
            records,
            bucketed(lambda r: r.age, AGE_BUCKETS),
            lambda r: r.risk_rating.value,
            lambda r: r.income,
        )
        table["28-37"]["Low"].mean
    """
    counts = tally(
        rows,
        lambda row: ((primary_key(row), secondary_key(row)),),
        measure=measure,
    )

    table: AggregateTable = {}
    for (primary, secondary), entry in counts.items():
        table.setdefault(primary, {})[secondary] = entry.to_cell()
    return table


def count_by(rows: Iterable[T], key: KeyFunc) -> dict[str, int]:
    """Single-key frequency table."""
    return {k: entry.count for k, entry in tally(rows, lambda row: (key(row),)).items()}


def cell_mean(cell: AggregateCell | None) -> float:
    """Guarded mean: missing or empty cells give 0.0."""
    if cell is None:
        return 0.0
    return cell.mean


def densify(
    table: AggregateTable,
    primary_labels: Sequence[str],
    secondary_labels: Sequence[str],
) -> AggregateTable:
    """Fill a full label grid, defaulting missing cells to an empty cell."""
    empty = AggregateCell()
    return {
        primary: {
            secondary: table.get(primary, {}).get(secondary, empty)
            for secondary in secondary_labels
        }
        for primary in primary_labels
    }


def grand_totals(table: AggregateTable) -> AggregateCell:
    """Sum counts and sums over every cell of the table."""
    count = 0
    total = 0.0
    for row in table.values():
        for cell in row.values():
            count += cell.count
            total += cell.sum
    return AggregateCell(count=count, sum=total)


def stacked_means(
    table: AggregateTable,
    primary_order: Sequence[str],
    secondary_order: Sequence[str],
    *,
    primary_field: str = "category",
) -> list[dict[str, Any]]:
    """
    Rows for a stacked bar chart: one row per primary category present.

    Primary categories are ordered by ``primary_order``; categories present in
    the table but missing from the order are appended in first-seen order.
    Each secondary column holds the guarded mean.
    """
    present = [p for p in primary_order if p in table]
    present.extend(p for p in table if p not in primary_order)

    stacked = []
    for primary in present:
        cells = table[primary]
        row: dict[str, Any] = {primary_field: primary}
        for secondary in secondary_order:
            row[secondary] = cell_mean(cells.get(secondary))
        stacked.append(row)
    return stacked
