"""
Record loader for the financial risk assessment CSV.

Converts the flat CSV file into FinancialRecord objects. Each chart asks for
the subset of fields it needs; rows missing or failing any of those fields
are dropped and counted, never raised. A file that cannot be read at all is
reported through LoadResult.errors so callers can show an error state.
"""

import hashlib
import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from src.data.schemas import FinancialRecord, RecordField, RiskRating
from src.exceptions import DataLoadError

logger = logging.getLogger(__name__)


# =============================================================================
# COLUMN CONTRACT
# =============================================================================

# Source column name -> record attribute
COLUMN_MAP: dict[str, RecordField] = {
    "Age": RecordField.AGE,
    "Income": RecordField.INCOME,
    "Risk Rating": RecordField.RISK_RATING,
    "Credit Score": RecordField.CREDIT_SCORE,
    "Debt-to-Income Ratio": RecordField.DEBT_TO_INCOME_RATIO,
    "Education Level": RecordField.EDUCATION_LEVEL,
    "Payment History": RecordField.PAYMENT_HISTORY,
}

FIELD_TO_COLUMN: dict[RecordField, str] = {v: k for k, v in COLUMN_MAP.items()}

# Field sets requested by each chart
BAR_CHART_FIELDS: frozenset[RecordField] = frozenset({
    RecordField.AGE,
    RecordField.INCOME,
    RecordField.RISK_RATING,
})

HEXBIN_FIELDS: frozenset[RecordField] = frozenset({
    RecordField.CREDIT_SCORE,
    RecordField.INCOME,
    RecordField.RISK_RATING,
    RecordField.DEBT_TO_INCOME_RATIO,
    RecordField.AGE,
})

FLOW_FIELDS: frozenset[RecordField] = frozenset({
    RecordField.EDUCATION_LEVEL,
    RecordField.PAYMENT_HISTORY,
    RecordField.INCOME,
    RecordField.RISK_RATING,
})

ALL_FIELDS: frozenset[RecordField] = frozenset(RecordField)

CREDIT_SCORE_RANGE: tuple[int, int] = (600, 800)


# =============================================================================
# VALUE PARSING
# =============================================================================


def _is_blank(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    return str(raw).strip() == ""


def parse_float(raw: Any) -> float | None:
    """Parse a finite float, returning None for blank or non-numeric input."""
    if _is_blank(raw):
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_int(raw: Any) -> int | None:
    """Parse an integer; integral floats such as "42.0" are accepted."""
    value = parse_float(raw)
    if value is None or not value.is_integer():
        return None
    return int(value)


def parse_text(raw: Any) -> str | None:
    """Return the stripped string, or None when blank."""
    if _is_blank(raw):
        return None
    return str(raw).strip()


def parse_risk_rating(raw: Any) -> RiskRating | None:
    text = parse_text(raw)
    if text is None:
        return None
    try:
        return RiskRating(text)
    except ValueError:
        return None


def _valid_income(value: float) -> bool:
    return value > 0


def _valid_credit_score(value: int) -> bool:
    low, high = CREDIT_SCORE_RANGE
    return low <= value <= high


FIELD_PARSERS: dict[RecordField, Callable[[Any], Any]] = {
    RecordField.AGE: parse_int,
    RecordField.INCOME: parse_float,
    RecordField.RISK_RATING: parse_risk_rating,
    RecordField.CREDIT_SCORE: parse_int,
    RecordField.DEBT_TO_INCOME_RATIO: parse_float,
    RecordField.EDUCATION_LEVEL: parse_text,
    RecordField.PAYMENT_HISTORY: parse_text,
}

# Range checks applied by the hexbin consumer only; other charts accept any
# parseable value
HEXBIN_RULES: dict[RecordField, Callable[[Any], bool]] = {
    RecordField.INCOME: _valid_income,
    RecordField.CREDIT_SCORE: _valid_credit_score,
}


def parse_row(
    raw: Mapping[str, Any],
    fields: Iterable[RecordField],
    rules: Mapping[RecordField, Callable[[Any], bool]] | None = None,
) -> FinancialRecord | None:
    """
    Convert one raw CSV row into a FinancialRecord.

    Args:
        raw: Mapping of source column name to raw cell value
        fields: Fields the consumer requires
        rules: Optional per-field range checks

    Returns:
        FinancialRecord with exactly the requested fields set, or None if any
        requested field is missing, unparseable or out of range.
    """
    values: dict[str, Any] = {}
    for record_field in fields:
        parsed = FIELD_PARSERS[record_field](raw.get(FIELD_TO_COLUMN[record_field]))
        if parsed is None:
            return None
        rule = rules.get(record_field) if rules else None
        if rule is not None and not rule(parsed):
            return None
        values[record_field.value] = parsed
    return FinancialRecord(**values)


def require_columns(
    columns: Iterable[str],
    fields: Iterable[RecordField],
    *,
    source: str | None = None,
) -> None:
    """
    Check that every column backing ``fields`` is present.

    Raises:
        DataLoadError: Listing the missing columns in sorted order
    """
    present = set(columns)
    missing = sorted(FIELD_TO_COLUMN[f] for f in fields if FIELD_TO_COLUMN[f] not in present)
    if missing:
        name = Path(source).name if source else "data"
        raise DataLoadError(
            f"Missing required columns in {name}: {', '.join(missing)}",
            path=source,
            missing_columns=missing,
        )


def dataset_version(records: list[FinancialRecord]) -> str:
    """Content hash of a record list, stable across identical loads."""
    digest = hashlib.sha1()
    for record in records:
        digest.update(record.model_dump_json().encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()[:16]


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LoadResult:
    """Result of loading the dataset for one field set."""

    records: list[FinancialRecord] = field(default_factory=list)
    fields: frozenset[RecordField] = ALL_FIELDS
    source: str | None = None

    # Statistics
    rows_read: int = 0
    rows_dropped: int = 0
    load_duration_ms: float = 0.0
    errors: list[str] = field(default_factory=list)
    version: str = ""

    @property
    def status(self) -> str:
        """"error" if the file could not be read, "empty" if nothing survived."""
        if self.errors:
            return "error"
        if not self.records:
            return "empty"
        return "ok"

    @property
    def ok(self) -> bool:
        return self.status == "ok"


# =============================================================================
# RECORD LOADER
# =============================================================================


class RecordLoader:
    """
    Load the financial risk CSV into validated records.

    Usage:
        loader = RecordLoader("data/financial_risk_assessment.csv", required_fields=FLOW_FIELDS)
        result = loader.load()
        if result.ok:
            graph = build_flow_graph(result.records, DEFAULT_FLOW_DIMENSIONS)
    """

    def __init__(
        self,
        path: str | Path,
        *,
        required_fields: Iterable[RecordField] = ALL_FIELDS,
        rules: Mapping[RecordField, Callable[[Any], bool]] | None = None,
    ):
        """
        Initialize loader.

        Args:
            path: Path to the CSV file
            required_fields: Fields each emitted record must carry
            rules: Optional per-field range checks (e.g. HEXBIN_RULES)
        """
        self.path = Path(path)
        self.required_fields = frozenset(required_fields)
        self.rules = dict(rules or {})
        self._pandas_module: Any = None

    def _get_pandas(self) -> Any:
        """Lazy import of pandas."""
        if self._pandas_module is None:
            try:
                import pandas as pd
                self._pandas_module = pd
            except ImportError as e:
                raise ImportError("pandas is required: pip install pandas") from e
        return self._pandas_module

    def load(self) -> LoadResult:
        """
        Load and validate all rows.

        Returns:
            LoadResult with records and statistics; read failures are reported
            in ``errors`` rather than raised.
        """
        start_time = time.perf_counter()

        try:
            frame = self.read_frame()
        except DataLoadError as e:
            logger.warning(f"Could not load {self.path}: {e.message}")
            result = LoadResult(fields=self.required_fields, source=str(self.path))
            result.errors.append(e.message)
            result.version = dataset_version([])
            result.load_duration_ms = (time.perf_counter() - start_time) * 1000
            return result

        result = self.from_frame(frame)
        result.load_duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            f"Loaded {len(result.records)} records from {self.path.name} "
            f"({result.rows_dropped} of {result.rows_read} rows dropped) "
            f"in {result.load_duration_ms:.1f}ms"
        )
        return result

    def read_frame(self) -> Any:
        """
        Read the raw CSV as strings.

        Raises:
            DataLoadError: If the file is missing, unreadable, or lacks a
                column required by this loader's field set.
        """
        pd = self._get_pandas()

        if not self.path.exists():
            raise DataLoadError(f"Data file not found: {self.path}", path=str(self.path))

        try:
            frame = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataLoadError(
                f"Error reading {self.path.name}: {e}", path=str(self.path)
            ) from e

        frame.columns = [str(c).strip() for c in frame.columns]
        require_columns(frame.columns, self.required_fields, source=str(self.path))
        return frame

    def from_frame(self, frame: Any) -> LoadResult:
        """Validate rows of an already-read DataFrame."""
        return records_from_rows(
            frame.to_dict("records"),
            self.required_fields,
            rules=self.rules,
            source=str(self.path),
        )


def records_from_rows(
    rows: Iterable[Mapping[str, Any]],
    fields: Iterable[RecordField] = ALL_FIELDS,
    *,
    rules: Mapping[RecordField, Callable[[Any], bool]] | None = None,
    source: str | None = None,
) -> LoadResult:
    """Validate raw rows (column name -> cell) into a LoadResult."""
    wanted = frozenset(fields)
    result = LoadResult(fields=wanted, source=source)

    for raw in rows:
        result.rows_read += 1
        record = parse_row(raw, wanted, rules)
        if record is None:
            result.rows_dropped += 1
            logger.debug(f"Dropping malformed row {result.rows_read}: {dict(raw)}")
            continue
        result.records.append(record)

    result.version = dataset_version(result.records)
    return result


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def load_records(
    path: str | Path,
    *,
    fields: Iterable[RecordField] = ALL_FIELDS,
    rules: Mapping[RecordField, Callable[[Any], bool]] | None = None,
) -> LoadResult:
    """
    Load validated records for one field set.

    Example:
        result = load_records(
            "data/financial_risk_assessment.csv",
            fields=HEXBIN_FIELDS,
            rules=HEXBIN_RULES,
        )
        print(f"Loaded {len(result.records)} records")
    """
    return RecordLoader(path, required_fields=fields, rules=rules).load()
