"""
Module: bucketing

Purpose: Map continuous values (age, income) onto fixed, ordered labeled ranges.

Pure functions over BucketTable. The first bucket containing a value wins;
anything unmatched falls through to the table's fallback label.
"""

from typing import Callable, Iterable, TypeVar

from src.data.schemas import Bucket, BucketTable
from src.exceptions import BucketTableError

T = TypeVar("T")


# =============================================================================
# CANONICAL TABLES
# =============================================================================

AGE_BUCKETS = BucketTable(
    name="age",
    buckets=(
        Bucket(min=18, max=27, label="18-27"),
        Bucket(min=28, max=37, label="28-37"),
        Bucket(min=38, max=47, label="38-47"),
        Bucket(min=48, max=57, label="48-57"),
        Bucket(min=58, max=69, label="58-69"),
    ),
    fallback_label="Unknown",
)

# Half-open ranges; the top range is open-ended and serves as the fallback
INCOME_BUCKETS = BucketTable(
    name="income",
    buckets=(
        Bucket(min=float("-inf"), max=20_000, label="< 20K", upper_inclusive=False),
        Bucket(min=20_000, max=50_000, label="20K - 50K", upper_inclusive=False),
        Bucket(min=50_000, max=100_000, label="50K - 100K", upper_inclusive=False),
        Bucket(min=100_000, max=200_000, label="100K - 200K", upper_inclusive=False),
    ),
    fallback_label="> 200K",
)


# =============================================================================
# BUCKETING
# =============================================================================


def bucket(value: float, table: BucketTable) -> str:
    """
    Label a value with the first bucket that contains it.

    Args:
        value: Numeric value to classify
        table: Ordered bucket table

    Returns:
        Bucket label, or ``table.fallback_label`` when no bucket matches
        (including NaN input)
    """
    for candidate in table.buckets:
        if candidate.contains(value):
            return candidate.label
    return table.fallback_label


def bucket_values(values: Iterable[float], table: BucketTable) -> list[str]:
    """Label every value in order."""
    return [bucket(v, table) for v in values]


def find_bucket(label: str, table: BucketTable) -> Bucket:
    """
    Look up a bucket by label.

    Raises:
        BucketTableError: If the label is not a bucket of this table (the
            fallback label has no interval and is not accepted either).
    """
    for candidate in table.buckets:
        if candidate.label == label:
            return candidate
    raise BucketTableError(
        f"Unknown bucket label '{label}'",
        table_name=table.name,
        context={"available": [b.label for b in table.buckets]},
    )


def filter_by_bucket(
    rows: Iterable[T],
    accessor: Callable[[T], float | None],
    selected: Bucket,
) -> list[T]:
    """Keep rows whose accessed value lies inside the bucket."""
    kept = []
    for row in rows:
        value = accessor(row)
        if value is not None and selected.contains(value):
            kept.append(row)
    return kept


def bucketed(accessor: Callable[[T], float | None], table: BucketTable) -> Callable[[T], str]:
    """Wrap a numeric accessor so it returns the bucket label instead."""

    def key(row: T) -> str:
        value = accessor(row)
        if value is None:
            return table.fallback_label
        return bucket(value, table)

    return key
