# csv_processor/engine/dispatcher.py
import math
import logging
from typing import Callable, Dict, List, Optional

from csv_processor.config import AnalysisConfig, get_config
from csv_processor.engine.analysis import (
    CategoricalSummary,
    DataQualityAnalyzer,
    DatasetProfile,
    NoImputableValuesError,
    NoNumericValuesError,
    format_number,
)
from csv_processor.engine.csv_format import format_table
from csv_processor.engine.encoder import default_file_name, encode_download
from csv_processor.engine.models import (
    Analyze,
    CleanMissing,
    DatasetResult,
    DetectOutliers,
    Download,
    DownloadResult,
    ExportFormat,
    Filter,
    GenerateReport,
    ImputationMethod,
    Operation,
    OperationKind,
    OperationRequest,
    OperationResult,
    PreconditionError,
    Prose,
    RemoveDuplicates,
    Summarize,
    Table,
    Visualize,
)
from csv_processor.engine.validator import CSVValidator

logger = logging.getLogger(__name__)

AVAILABLE_VISUALIZATIONS = [
    "Bar chart (for categorical data)",
    "Line chart (for time series data)",
    "Scatter plot (for relationships between numeric columns)",
    "Histogram (for distribution of numeric data)",
    "Box plot (for outlier detection)",
]


def _bullets(lines: List[str], indent: str = "") -> str:
    return "\n".join(f"{indent}- {line}" for line in lines)


def _missing_text(profile: DatasetProfile) -> str:
    return ", ".join(f"{name}: {count}" for name, count in profile.missing_values) or "none"


# Request -> typed operation

def _require(request: OperationRequest, *names: str) -> None:
    missing = [name for name in names if getattr(request, name) in (None, "")]
    if missing:
        params = " and ".join(f'"{name}"' for name in names)
        raise PreconditionError(f'The "{request.operation}" operation requires the {params} parameter(s).')


def _build_filter(request: OperationRequest, config: AnalysisConfig) -> Operation:
    _require(request, "column", "condition")
    return Filter(column=request.column, condition=request.condition)


def _build_summarize(request: OperationRequest, config: AnalysisConfig) -> Operation:
    _require(request, "column")
    return Summarize(column=request.column)


def _build_clean_missing(request: OperationRequest, config: AnalysisConfig) -> Operation:
    _require(request, "column", "method")
    method = str(request.method).strip().lower()
    try:
        return CleanMissing(column=request.column, method=ImputationMethod(method))
    except ValueError:
        valid = ", ".join(m.value for m in ImputationMethod)
        raise PreconditionError(f'Invalid cleaning method "{request.method}". Valid methods are: {valid}') from None


def _build_detect_outliers(request: OperationRequest, config: AnalysisConfig) -> Operation:
    _require(request, "column", "threshold")
    try:
        threshold = float(request.threshold)
    except (TypeError, ValueError):
        raise PreconditionError(f'Invalid threshold "{request.threshold}". Use a positive number.') from None
    if not math.isfinite(threshold) or threshold <= 0:
        raise PreconditionError(f'Invalid threshold "{request.threshold}". Use a positive number.')
    return DetectOutliers(column=request.column, threshold=threshold)


def _build_download(request: OperationRequest, config: AnalysisConfig) -> Operation:
    requested = request.format or config.DEFAULT_DOWNLOAD_FORMAT
    try:
        export_format = ExportFormat(requested)
    except ValueError:
        raise PreconditionError("Invalid download format. Use 'csv' or 'excel'.") from None
    return Download(
        payload=request.download_payload,
        format=export_format,
        file_name=request.file_name or default_file_name(export_format),
    )


_BUILDERS: Dict[OperationKind, Callable[[OperationRequest, AnalysisConfig], Operation]] = {
    OperationKind.ANALYZE: lambda request, config: Analyze(),
    OperationKind.FILTER: _build_filter,
    OperationKind.SUMMARIZE: _build_summarize,
    OperationKind.VISUALIZE: lambda request, config: Visualize(column=request.column),
    OperationKind.CLEAN_MISSING: _build_clean_missing,
    OperationKind.DETECT_OUTLIERS: _build_detect_outliers,
    OperationKind.REMOVE_DUPLICATES: lambda request, config: RemoveDuplicates(),
    OperationKind.GENERATE_REPORT: lambda request, config: GenerateReport(),
    OperationKind.DOWNLOAD_DATA: _build_download,
}

if set(_BUILDERS) != set(OperationKind):
    raise RuntimeError("Every operation kind needs a request builder")


def parse_operation_kind(name: str) -> OperationKind:
    try:
        return OperationKind(name)
    except ValueError:
        raise PreconditionError(
            f'Invalid operation "{name}". Valid operations are: {", ".join(OperationKind.values())}'
        ) from None


def build_operation(request: OperationRequest, table: Optional[Table] = None,
                    config: Optional[AnalysisConfig] = None) -> Operation:
    """Turn a flat request into a typed operation, checking its preconditions"""
    kind = parse_operation_kind(request.operation)
    if table is not None and request.column and not table.has_column(request.column):
        raise PreconditionError(
            f'Column "{request.column}" not found in the CSV data. '
            f'Available columns: {", ".join(table.headers)}'
        )
    return _BUILDERS[kind](request, config or get_config().analysis)


class OperationDispatcher:
    """Runs one analysis or cleaning operation against a parsed table"""

    def __init__(self, analyzer: Optional[DataQualityAnalyzer] = None,
                 validator: Optional[CSVValidator] = None,
                 config: Optional[AnalysisConfig] = None):
        self.config = config or get_config().analysis
        self.analyzer = analyzer or DataQualityAnalyzer(self.config)
        self.validator = validator or CSVValidator()
        self._handlers: Dict[type, Callable[[Table, Operation], OperationResult]] = {
            Analyze: self._analyze,
            Filter: self._filter,
            Summarize: self._summarize,
            Visualize: self._visualize,
            CleanMissing: self._clean_missing,
            DetectOutliers: self._detect_outliers,
            RemoveDuplicates: self._remove_duplicates,
            GenerateReport: self._generate_report,
            Download: self._download,
        }

    def run(self, table: Table, request: OperationRequest) -> OperationResult:
        """Validate the request against ``table`` and execute it.

        Precondition failures and unexpected errors come back as ``Prose``;
        nothing is raised to the caller.
        """
        try:
            operation = build_operation(request, table, self.config)
        except PreconditionError as e:
            return Prose(f"Error: {e}")
        except Exception as e:
            logger.exception(f"Could not build operation {request.operation!r}")
            return Prose(f"Error processing CSV data: {e}")
        return self.execute(table, operation)

    def run_download(self, request: OperationRequest) -> OperationResult:
        """Encode the most recently processed payload for download"""
        try:
            operation = build_operation(request, None, self.config)
        except PreconditionError as e:
            return Prose(f"Error: {e}")
        except Exception as e:
            logger.exception(f"Could not build operation {request.operation!r}")
            return Prose(f"Error processing CSV data: {e}")
        if not isinstance(operation, Download):
            return Prose(f'Error: "{request.operation}" is not a download operation.')
        return self.execute(Table(), operation)

    def execute(self, table: Table, operation: Operation) -> OperationResult:
        handler = self._handlers[type(operation)]
        try:
            return handler(table, operation)
        except (NoNumericValuesError, NoImputableValuesError) as e:
            return Prose(str(e))
        except Exception as e:
            logger.exception(f"Operation {type(operation).__name__} failed")
            return Prose(f"Error processing CSV data: {e}")

    # Handlers

    def _analyze(self, table: Table, operation: Analyze) -> OperationResult:
        profile = self.analyzer.profile(table)
        return Prose("Analysis of CSV data:\n" + _bullets([
            f"Total rows: {profile.row_count}",
            f"Total columns: {profile.column_count}",
            f"Columns: {', '.join(profile.headers)}",
            f"Missing values: {_missing_text(profile)}",
            f"Duplicate rows: {profile.duplicate_rows}",
        ]))

    def _filter(self, table: Table, operation: Filter) -> OperationResult:
        index = table.column_index(operation.column)
        kept = [row for row in table.rows if row[index] and operation.condition in row[index]]
        filtered = table.with_rows(kept)
        summary = (
            f'Filtered CSV data for column "{operation.column}" with condition "{operation.condition}":\n'
            + _bullets([
                f"Original rows: {table.row_count}",
                f"Filtered rows: {filtered.row_count}",
                f"Removed rows: {table.row_count - filtered.row_count}",
            ])
        )
        return DatasetResult(summary=summary, processed_csv_data=format_table(filtered))

    def _summarize(self, table: Table, operation: Summarize) -> OperationResult:
        summary = self.analyzer.summarize_column(table, operation.column)
        heading = f'Summary of column "{operation.column}":\n'
        if isinstance(summary, CategoricalSummary):
            return Prose(heading + _bullets([
                f"Count: {summary.count}",
                f"Unique values: {summary.unique_count}",
                f"Sample values: {', '.join(summary.samples)}",
            ]))
        return Prose(heading + _bullets([
            f"Count: {summary.count}",
            f"Mean: {summary.mean:.2f}",
            f"Median: {summary.median:.2f}",
            f"Min: {format_number(summary.min_value)}",
            f"Max: {format_number(summary.max_value)}",
        ]))

    def _visualize(self, table: Table, operation: Visualize) -> OperationResult:
        numeric = self.analyzer.numeric_columns(table)
        categorical = [header for header in dict.fromkeys(table.headers) if header not in numeric]
        lines = [
            f"Numeric columns: {', '.join(numeric) or 'none'}",
            f"Categorical columns: {', '.join(categorical) or 'none'}",
        ]
        if operation.column:
            suggested = "Histogram, Box plot" if operation.column in numeric else "Bar chart"
            lines.append(f'Suggested for "{operation.column}": {suggested}')
        return Prose(
            "Visualization of CSV data:\n" + _bullets(lines)
            + "\nAvailable visualizations:\n" + _bullets(AVAILABLE_VISUALIZATIONS)
        )

    def _clean_missing(self, table: Table, operation: CleanMissing) -> OperationResult:
        heading = f'Cleaned missing values in column "{operation.column}" using method "{operation.method.value}":\n'

        if operation.method == ImputationMethod.DROP:
            cleaned, removed = self.analyzer.drop_missing(table, operation.column)
            summary = heading + _bullets([
                f"Original rows: {table.row_count}",
                f"Rows with missing values: {removed}",
                f"Remaining rows: {cleaned.row_count}",
                f"Removed rows: {removed}",
            ])
            return DatasetResult(summary=summary, processed_csv_data=format_table(cleaned))

        missing = self.analyzer.count_missing_in_column(table, operation.column)
        cleaned, fill_value, filled = self.analyzer.impute_missing(table, operation.column, operation.method)
        lines = [
            f"Original rows: {table.row_count}",
            f"Rows with missing values: {missing}",
            f"Imputed values: {filled}",
            f"Method used: {operation.method.value}",
        ]
        if fill_value is not None:
            lines.append(f"Fill value: {fill_value}")
        return DatasetResult(summary=heading + _bullets(lines), processed_csv_data=format_table(cleaned))

    def _detect_outliers(self, table: Table, operation: DetectOutliers) -> OperationResult:
        scan = self.analyzer.detect_outliers(table, operation.column, operation.threshold)
        limit = self.config.OUTLIER_PREVIEW_LIMIT
        preview = [format_number(value) for value in scan.outliers.iloc[:limit]]
        rows = [str(number) for number in scan.row_numbers[:limit]]
        more = "..." if scan.outlier_count > limit else ""
        lines = [
            f"Total values: {scan.total}",
            f"Mean: {scan.mean:.2f}",
            f"Standard deviation: {scan.std:.2f}",
            f"Outliers detected: {scan.outlier_count}",
        ]
        if scan.outlier_count:
            lines.append(f"Outlier values: {', '.join(preview)}{more}")
            lines.append(f"Outlier rows: {', '.join(rows)}{more}")
        return Prose(
            f'Outlier detection for column "{operation.column}" with threshold {format_number(operation.threshold)}:\n'
            + _bullets(lines)
        )

    def _remove_duplicates(self, table: Table, operation: RemoveDuplicates) -> OperationResult:
        unique, removed = self.analyzer.remove_duplicates(table)
        if removed == 0:
            return Prose("Duplicate removal:\n" + _bullets([
                f"Original rows: {table.row_count}",
                f"Unique rows: {unique.row_count}",
                "Duplicate rows removed: 0",
            ]) + "\nNo duplicate rows were found in the dataset.")
        return DatasetResult(
            summary=f"Removed {removed} duplicate rows. Kept {unique.row_count} unique rows.",
            processed_csv_data=format_table(unique),
        )

    def _generate_report(self, table: Table, operation: GenerateReport) -> OperationResult:
        profile = self.analyzer.profile(table, include_outliers=True)
        flagged = [f"{scan.column}: {scan.outlier_count} potential outliers" for scan in profile.columns_with_outliers]
        recommendations = self.analyzer.generate_recommendations(profile) or ["No issues detected"]
        return Prose("Data Cleaning Report:\n" + _bullets([
            f"Dataset: {profile.row_count} rows x {profile.column_count} columns",
            f"Columns: {', '.join(profile.headers)}",
            f"Missing values: {_missing_text(profile)}",
            f"Duplicate rows: {profile.duplicate_rows}",
            f"Potential outliers: {', '.join(flagged) if flagged else 'None detected'}",
            "Recommendations:",
        ]) + "\n" + _bullets(recommendations, indent="  "))

    def _download(self, table: Table, operation: Download) -> OperationResult:
        validation = self.validator.validate(operation.payload)
        if not validation.valid:
            return Prose(f"Error: {validation.error}")
        return DownloadResult(
            download_link=encode_download(operation.payload, operation.format),
            file_name=operation.file_name,
            file_format=operation.format.value,
            message=f"Your cleaned data is ready to download as a {operation.format.value.upper()} file.",
        )
