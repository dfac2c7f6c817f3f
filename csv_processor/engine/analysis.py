# csv_processor/engine/analysis.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from csv_processor.config import AnalysisConfig, get_config
from csv_processor.engine.models import ImputationMethod, Table

logger = logging.getLogger(__name__)

ROW_KEY_SEPARATOR = "|"


class NoNumericValuesError(ValueError):
    """A statistical operation found nothing numeric in its column"""

    def __init__(self, column: str):
        super().__init__(f'Column "{column}" does not contain numeric values.')
        self.column = column


class NoImputableValuesError(ValueError):
    """Every cell of the column is missing, so there is nothing to fill from"""

    def __init__(self, column: str):
        super().__init__(f'Column "{column}" has no values to impute from.')
        self.column = column


# Cell and column helpers

def is_missing(value: Optional[str]) -> bool:
    return value is None or str(value).strip() == ""


def format_number(value: float) -> str:
    """Render integral floats without a trailing .0"""
    value = float(value)
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return str(round(value, 6))


def numeric_values(values: Sequence[Optional[str]]) -> pd.Series:
    """Finite numeric values of a column, indexed by data-row position"""
    series = pd.to_numeric(pd.Series(list(values), dtype=object), errors="coerce").astype(float)
    return series[np.isfinite(series)]


def is_numeric_column(values: Sequence[Optional[str]]) -> bool:
    """True when the column has values and every non-empty one is a number"""
    present = [value for value in values if not is_missing(value)]
    if not present:
        return False
    return len(numeric_values(present)) == len(present)


def row_key(row: Sequence[Optional[str]]) -> str:
    return ROW_KEY_SEPARATOR.join((cell or "").strip() for cell in row)


# Dataclasses describing analysis results

@dataclass
class NumericSummary:
    count: int
    mean: float
    median: float
    min_value: float
    max_value: float


@dataclass
class CategoricalSummary:
    count: int
    unique_count: int
    samples: List[str] = field(default_factory=list)


@dataclass
class OutlierScan:
    column: str
    total: int
    mean: float
    std: float
    outliers: pd.Series  # values indexed by data-row position

    @property
    def outlier_count(self) -> int:
        return len(self.outliers)

    @property
    def row_numbers(self) -> List[int]:
        """1-based data row numbers of the flagged values"""
        return [int(position) + 1 for position in self.outliers.index]


@dataclass
class DatasetProfile:
    row_count: int
    column_count: int
    headers: List[str]
    missing_values: List[Tuple[str, int]]
    duplicate_rows: int
    outlier_scans: List[OutlierScan] = field(default_factory=list)

    @property
    def columns_with_missing(self) -> List[str]:
        return [name for name, count in self.missing_values if count > 0]

    @property
    def columns_with_outliers(self) -> List[OutlierScan]:
        return [scan for scan in self.outlier_scans if scan.outlier_count > 0]


class DataQualityAnalyzer:
    """Statistics, duplicate handling and cleaning over a parsed table"""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or get_config().analysis

    # Missing values

    def count_missing_values(self, table: Table) -> List[Tuple[str, int]]:
        """Missing (empty or whitespace-only) cell count per column, in header order"""
        frame = table.to_frame()
        counts = []
        for position, header in enumerate(table.headers):
            column = frame[position].fillna("").astype(str).str.strip()
            counts.append((header, int(column.eq("").sum())))
        return counts

    def count_missing_in_column(self, table: Table, column: str) -> int:
        return sum(1 for value in table.column_values(column) if is_missing(value))

    def drop_missing(self, table: Table, column: str) -> Tuple[Table, int]:
        """Remove rows whose cell in ``column`` is missing"""
        index = table.column_index(column)
        kept = [row for row in table.rows if not is_missing(row[index])]
        return table.with_rows(kept), table.row_count - len(kept)

    def impute_missing(self, table: Table, column: str, method: ImputationMethod) -> Tuple[Table, Optional[str], int]:
        """Fill missing cells in ``column`` using mean, median or mode.

        Returns the new table, the fill value (None when nothing needed
        filling) and the number of cells filled.
        """
        index = table.column_index(column)
        values = table.column_values(column)
        missing_positions = [position for position, value in enumerate(values) if is_missing(value)]
        if not missing_positions:
            return table, None, 0

        fill_value = self._imputation_value(column, values, method)

        rows = [list(row) for row in table.rows]
        for position in missing_positions:
            rows[position][index] = fill_value
        logger.info(f"Imputed {len(missing_positions)} missing value(s) in '{column}' with {method.value} {fill_value!r}")
        return table.with_rows(rows), fill_value, len(missing_positions)

    def _imputation_value(self, column: str, values: List[str], method: ImputationMethod) -> str:
        if method == ImputationMethod.MODE:
            present = [value for value in values if not is_missing(value)]
            if not present:
                raise NoImputableValuesError(column)
            # ties go to the smallest value, compared as numbers in numeric columns
            if is_numeric_column(present):
                return format_number(numeric_values(present).mode().iloc[0])
            return str(pd.Series(present, dtype=object).mode().iloc[0])

        numbers = numeric_values(values)
        if numbers.empty:
            raise NoNumericValuesError(column)
        if method == ImputationMethod.MEAN:
            return format_number(numbers.mean())
        if method == ImputationMethod.MEDIAN:
            return format_number(numbers.median())
        raise ValueError(f"Unsupported imputation method: {method}")

    # Duplicates

    def count_duplicates(self, rows: Sequence[Sequence[str]]) -> int:
        seen = set()
        duplicates = 0
        for row in rows:
            key = row_key(row)
            if key in seen:
                duplicates += 1
            else:
                seen.add(key)
        return duplicates

    def remove_duplicates(self, table: Table) -> Tuple[Table, int]:
        """Keep the first occurrence of every distinct row key, in order"""
        seen = set()
        unique_rows = []
        for row in table.rows:
            key = row_key(row)
            if key not in seen:
                seen.add(key)
                unique_rows.append(row)
        return table.with_rows(unique_rows), table.row_count - len(unique_rows)

    # Column statistics

    def summarize_column(self, table: Table, column: str):
        """NumericSummary when every non-empty value is a number, else CategoricalSummary"""
        present = [value for value in table.column_values(column) if not is_missing(value)]

        if is_numeric_column(present):
            numbers = numeric_values(present)
            return NumericSummary(
                count=len(present),
                mean=float(numbers.mean()),
                median=float(numbers.median()),
                min_value=float(numbers.min()),
                max_value=float(numbers.max()),
            )

        unique_values = list(pd.unique(pd.Series(present, dtype=object)))
        return CategoricalSummary(
            count=len(present),
            unique_count=len(unique_values),
            samples=[str(value) for value in unique_values[:self.config.SAMPLE_VALUES_LIMIT]],
        )

    def detect_outliers(self, table: Table, column: str, threshold: float) -> OutlierScan:
        """Flag values whose population z-score magnitude exceeds ``threshold``"""
        numbers = numeric_values(table.column_values(column))
        if numbers.empty:
            raise NoNumericValuesError(column)

        mean = float(numbers.mean())
        std = float(numbers.std(ddof=0))
        if std == 0 or not np.isfinite(std):
            outliers = numbers.iloc[0:0]
        else:
            z_scores = (numbers - mean) / std
            outliers = numbers[z_scores.abs() > threshold]

        return OutlierScan(column=column, total=len(numbers), mean=mean, std=std, outliers=outliers)

    def scan_outliers(self, table: Table, threshold: Optional[float] = None) -> List[OutlierScan]:
        """Outlier scan over every column holding at least one numeric value"""
        threshold = self.config.REPORT_OUTLIER_THRESHOLD if threshold is None else threshold
        scans = []
        for header in self._unique_headers(table):
            try:
                scans.append(self.detect_outliers(table, header, threshold))
            except NoNumericValuesError:
                continue
        return scans

    def numeric_columns(self, table: Table) -> List[str]:
        return [header for header in self._unique_headers(table) if is_numeric_column(table.column_values(header))]

    @staticmethod
    def _unique_headers(table: Table) -> List[str]:
        # duplicate header names resolve to their first column
        return list(dict.fromkeys(table.headers))

    # Dataset level

    def profile(self, table: Table, include_outliers: bool = False) -> DatasetProfile:
        return DatasetProfile(
            row_count=table.row_count,
            column_count=table.column_count,
            headers=list(table.headers),
            missing_values=self.count_missing_values(table),
            duplicate_rows=self.count_duplicates(table.rows),
            outlier_scans=self.scan_outliers(table) if include_outliers else [],
        )

    def generate_recommendations(self, profile: DatasetProfile) -> List[str]:
        """One recommendation per detected issue"""
        recommendations = []

        if profile.columns_with_missing:
            recommendations.append(
                f"Consider cleaning missing values in columns: {', '.join(profile.columns_with_missing)}"
            )

        if profile.duplicate_rows > 0:
            recommendations.append(f"Remove {profile.duplicate_rows} duplicate rows to improve data quality")

        flagged = profile.columns_with_outliers
        if flagged:
            recommendations.append(
                f"Investigate potential outliers in columns: {', '.join(scan.column for scan in flagged)}"
            )

        return recommendations
