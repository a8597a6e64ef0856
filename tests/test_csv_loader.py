"""
Tests for the CSV record loader.
"""

import sys
from pathlib import Path

import pytest

from src.data.csv_loader import (
    ALL_FIELDS,
    BAR_CHART_FIELDS,
    FLOW_FIELDS,
    HEXBIN_FIELDS,
    HEXBIN_RULES,
    RecordLoader,
    dataset_version,
    load_records,
    parse_float,
    parse_int,
    parse_row,
    records_from_rows,
    require_columns,
)
from src.data.schemas import FinancialRecord, RecordField, RiskRating
from src.exceptions import DataLoadError


# =============================================================================
# FIXTURES
# =============================================================================

HEADER = (
    "Age,Gender,Education Level,Marital Status,Income,Credit Score,Loan Amount,"
    "Loan Purpose,Employment Status,Years at Current Job,Payment History,"
    "Debt-to-Income Ratio,Assets Value,Number of Dependents,City,State,Country,"
    "Previous Defaults,Marital Status Change,Risk Rating"
)


def make_row(
    age: str = "35",
    education: str = "Bachelor's",
    income: str = "72000",
    credit: str = "680",
    payment: str = "Good",
    dti: str = "0.31",
    risk: str = "Low",
) -> str:
    """Helper to build one CSV line with the dataset's column layout."""
    return (
        f"{age},Male,{education},Single,{income},{credit},15000,Auto,Employed,4,"
        f"{payment},{dti},120000,1,Springfield,IL,USA,0,0,{risk}"
    )


def write_csv(tmp_path: Path, rows: list[str], header: str = HEADER) -> Path:
    """Write a CSV file and return its path."""
    path = tmp_path / "financial_risk_assessment.csv"
    path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
    return path


def raw_row(**overrides: str) -> dict[str, str]:
    """Helper to build a raw row mapping keyed by column name."""
    values = dict(zip(HEADER.split(","), make_row().split(",")))
    values.update(overrides)
    return values


# =============================================================================
# PARSER TESTS
# =============================================================================


class TestParsers:
    """Tests for cell parsers."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("42", 42.0), (" 3.5 ", 3.5), ("", None), ("abc", None), ("nan", None), ("inf", None), (None, None)],
    )
    def test_parse_float(self, raw: str | None, expected: float | None) -> None:
        assert parse_float(raw) == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("42", 42), ("42.0", 42), ("42.5", None), ("", None), ("x", None)],
    )
    def test_parse_int(self, raw: str, expected: int | None) -> None:
        assert parse_int(raw) == expected


class TestParseRow:
    """Tests for parse_row."""

    def test_valid_row(self) -> None:
        record = parse_row(raw_row(), BAR_CHART_FIELDS)
        assert record == FinancialRecord(age=35, income=72000.0, risk_rating=RiskRating.LOW)

    def test_only_requested_fields_set(self) -> None:
        record = parse_row(raw_row(), FLOW_FIELDS)
        assert record.age is None
        assert record.education_level == "Bachelor's"
        assert record.payment_history == "Good"

    def test_missing_value_drops_row(self) -> None:
        assert parse_row(raw_row(Income=""), BAR_CHART_FIELDS) is None

    def test_unrequested_field_may_be_bad(self) -> None:
        """A bad credit score does not affect consumers that never read it."""
        assert parse_row(raw_row(**{"Credit Score": "abc"}), BAR_CHART_FIELDS) is not None

    def test_non_positive_income_drops_row(self) -> None:
        assert parse_row(raw_row(Income="0"), HEXBIN_FIELDS, HEXBIN_RULES) is None
        assert parse_row(raw_row(Income="-10"), HEXBIN_FIELDS, HEXBIN_RULES) is None

    def test_rules_only_apply_when_given(self) -> None:
        """Range checks belong to the hexbin consumer; the bar chart keeps the row."""
        assert parse_row(raw_row(Income="0"), BAR_CHART_FIELDS) is not None
        assert parse_row(raw_row(**{"Credit Score": "450"}), HEXBIN_FIELDS) is not None

    @pytest.mark.parametrize("score", ["599", "801"])
    def test_credit_score_out_of_range(self, score: str) -> None:
        assert parse_row(raw_row(**{"Credit Score": score}), HEXBIN_FIELDS, HEXBIN_RULES) is None

    @pytest.mark.parametrize("score", ["600", "800"])
    def test_credit_score_bounds_inclusive(self, score: str) -> None:
        assert parse_row(raw_row(**{"Credit Score": score}), HEXBIN_FIELDS, HEXBIN_RULES) is not None

    def test_unknown_risk_rating(self) -> None:
        assert parse_row(raw_row(**{"Risk Rating": "Severe"}), BAR_CHART_FIELDS) is None

    def test_integral_float_age_accepted(self) -> None:
        assert parse_row(raw_row(Age="42.0"), BAR_CHART_FIELDS).age == 42

    def test_fractional_age_rejected(self) -> None:
        assert parse_row(raw_row(Age="42.5"), BAR_CHART_FIELDS) is None


# =============================================================================
# LOADER TESTS
# =============================================================================


class TestRecordLoader:
    """Tests for RecordLoader."""

    def test_load_valid_file(self, tmp_path: Path) -> None:
        path = write_csv(tmp_path, [make_row(), make_row(age="50", risk="High")])
        result = RecordLoader(path, required_fields=BAR_CHART_FIELDS).load()

        assert result.ok
        assert result.status == "ok"
        assert result.rows_read == 2
        assert result.rows_dropped == 0
        assert [r.age for r in result.records] == [35, 50]
        assert result.source == str(path)

    def test_malformed_rows_dropped(self, tmp_path: Path) -> None:
        path = write_csv(tmp_path, [make_row(), make_row(income=""), make_row(age="old")])
        result = RecordLoader(path, required_fields=BAR_CHART_FIELDS).load()

        assert len(result.records) == 1
        assert result.rows_read == 3
        assert result.rows_dropped == 2
        assert result.errors == []

    def test_each_field_set_filters_independently(self, tmp_path: Path) -> None:
        path = write_csv(tmp_path, [make_row(credit="500")])

        assert len(load_records(path, fields=BAR_CHART_FIELDS).records) == 1
        assert len(load_records(path, fields=HEXBIN_FIELDS, rules=HEXBIN_RULES).records) == 0

    def test_missing_file_reported(self, tmp_path: Path) -> None:
        result = RecordLoader(tmp_path / "missing.csv").load()

        assert result.status == "error"
        assert not result.ok
        assert result.records == []
        assert "not found" in result.errors[0]

    def test_missing_column_raises_from_read_frame(self, tmp_path: Path) -> None:
        header = HEADER.replace(",Risk Rating", "")
        line = make_row().rsplit(",", 1)[0]
        path = write_csv(tmp_path, [line], header=header)

        with pytest.raises(DataLoadError) as exc_info:
            RecordLoader(path, required_fields=BAR_CHART_FIELDS).read_frame()
        assert exc_info.value.missing_columns == ["Risk Rating"]

    def test_unrequested_column_may_be_missing(self, tmp_path: Path) -> None:
        header = HEADER.replace(",Risk Rating", "")
        line = make_row().rsplit(",", 1)[0]
        path = write_csv(tmp_path, [line], header=header)

        result = RecordLoader(path, required_fields={RecordField.AGE}).load()
        assert result.ok

    def test_empty_file_reported(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        result = RecordLoader(path).load()
        assert result.status == "error"

    def test_header_only_is_empty(self, tmp_path: Path) -> None:
        path = write_csv(tmp_path, [])
        result = RecordLoader(path, required_fields=ALL_FIELDS).load()
        assert result.status == "empty"
        assert result.errors == []

    def test_version_stable_across_loads(self, tmp_path: Path) -> None:
        path = write_csv(tmp_path, [make_row(), make_row(age="60")])
        first = load_records(path, fields=BAR_CHART_FIELDS)
        second = load_records(path, fields=BAR_CHART_FIELDS)
        assert first.version == second.version
        assert len(first.version) == 16


class TestRecordsFromRows:
    """Tests for validating in-memory rows."""

    def test_rows(self) -> None:
        result = records_from_rows([raw_row(), raw_row(Age="")], BAR_CHART_FIELDS, source="memory")
        assert len(result.records) == 1
        assert result.rows_dropped == 1
        assert result.source == "memory"

    def test_version_changes_with_content(self) -> None:
        a = records_from_rows([raw_row()], BAR_CHART_FIELDS)
        b = records_from_rows([raw_row(Age="36")], BAR_CHART_FIELDS)
        assert a.version != b.version

    def test_empty_version_defined(self) -> None:
        assert dataset_version([]) == records_from_rows([], BAR_CHART_FIELDS).version


class TestRequireColumns:
    """Tests for the per-field-set column check."""

    def test_all_present(self) -> None:
        require_columns(HEADER.split(","), ALL_FIELDS, source="data/risk.csv")

    def test_missing_reported_sorted(self) -> None:
        with pytest.raises(DataLoadError) as exc_info:
            require_columns(["Age"], BAR_CHART_FIELDS, source="data/risk.csv")
        assert exc_info.value.missing_columns == ["Income", "Risk Rating"]
        assert exc_info.value.message == "Missing required columns in risk.csv: Income, Risk Rating"

    def test_only_requested_fields_checked(self) -> None:
        columns = [c for c in HEADER.split(",") if c != "Credit Score"]
        require_columns(columns, FLOW_FIELDS)
        with pytest.raises(DataLoadError):
            require_columns(columns, HEXBIN_FIELDS)


class TestPandasImport:
    """Tests for the lazy pandas import."""

    def test_missing_pandas_keeps_cause(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(sys.modules, "pandas", None)
        loader = RecordLoader("unused.csv")

        with pytest.raises(ImportError, match="pandas is required") as exc_info:
            loader.read_frame()
        assert isinstance(exc_info.value.__cause__, ImportError)
