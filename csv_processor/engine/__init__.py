from csv_processor.engine.analysis import DataQualityAnalyzer
from csv_processor.engine.csv_format import format_csv, parse_csv, parse_csv_with_report
from csv_processor.engine.dispatcher import OperationDispatcher, build_operation
from csv_processor.engine.encoder import decode_download, encode_download
from csv_processor.engine.models import (
    DatasetResult,
    DownloadResult,
    OperationKind,
    OperationRequest,
    OperationResult,
    Prose,
    Table,
    from_wire,
)
from csv_processor.engine.validator import CSVValidator, ValidationResult, validate_csv

__all__ = [
    "CSVValidator",
    "DataQualityAnalyzer",
    "DatasetResult",
    "DownloadResult",
    "OperationDispatcher",
    "OperationKind",
    "OperationRequest",
    "OperationResult",
    "Prose",
    "Table",
    "ValidationResult",
    "build_operation",
    "decode_download",
    "encode_download",
    "format_csv",
    "from_wire",
    "parse_csv",
    "parse_csv_with_report",
    "validate_csv",
]
