# csv_processor/engine/models.py
"""Data structures shared by the engine.

``Table`` is the parsed form of a CSV payload. ``OperationRequest`` is the flat
caller-facing request; the dispatcher turns it into one of the typed operation
variants below, each carrying only the parameters that operation needs.
Results are returned as one of ``Prose``, ``DatasetResult`` or
``DownloadResult`` and only turned into a wire string by adapters.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import pandas as pd


class OperationKind(str, Enum):
    ANALYZE = "analyze"
    FILTER = "filter"
    SUMMARIZE = "summarize"
    VISUALIZE = "visualize"
    CLEAN_MISSING = "clean_missing"
    DETECT_OUTLIERS = "detect_outliers"
    REMOVE_DUPLICATES = "remove_duplicates"
    GENERATE_REPORT = "generate_report"
    DOWNLOAD_DATA = "download_data"

    @classmethod
    def values(cls) -> List[str]:
        return [kind.value for kind in cls]


class ExportFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"


class ImputationMethod(str, Enum):
    DROP = "drop"
    MEAN = "mean"
    MEDIAN = "median"
    MODE = "mode"


class PreconditionError(Exception):
    """Raised when a request cannot run against the given table"""


@dataclass(frozen=True)
class Table:
    """Header row plus a rectangular matrix of string cells"""
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    def has_column(self, name: str) -> bool:
        return name in self.headers

    def column_index(self, name: str) -> int:
        """Position of the first header called ``name``"""
        try:
            return self.headers.index(name)
        except ValueError:
            raise KeyError(name) from None

    def column_values(self, name: str) -> List[str]:
        index = self.column_index(name)
        return [row[index] for row in self.rows]

    def with_rows(self, rows: List[List[str]]) -> "Table":
        return Table(headers=list(self.headers), rows=rows)

    def to_frame(self) -> pd.DataFrame:
        """DataFrame view with positional integer columns.

        Header names may repeat, so columns are addressed by position.
        """
        return pd.DataFrame(self.rows, columns=range(len(self.headers)), dtype=object)


@dataclass
class OperationRequest:
    """Flat request as received from the tool-invocation layer"""
    operation: str
    csv_data: str = ""
    column: Optional[str] = None
    condition: Optional[str] = None
    method: Optional[str] = None
    threshold: Optional[float] = None
    format: Optional[str] = None
    processed_data: Optional[str] = None
    file_name: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "OperationRequest":
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in payload.items() if key in known})

    @property
    def download_payload(self) -> str:
        """Most recently processed payload, falling back to the original upload"""
        return self.processed_data or self.csv_data


# Typed operations

@dataclass(frozen=True)
class Analyze:
    pass


@dataclass(frozen=True)
class Filter:
    column: str
    condition: str


@dataclass(frozen=True)
class Summarize:
    column: str


@dataclass(frozen=True)
class Visualize:
    column: Optional[str] = None


@dataclass(frozen=True)
class CleanMissing:
    column: str
    method: ImputationMethod


@dataclass(frozen=True)
class DetectOutliers:
    column: str
    threshold: float


@dataclass(frozen=True)
class RemoveDuplicates:
    pass


@dataclass(frozen=True)
class GenerateReport:
    pass


@dataclass(frozen=True)
class Download:
    payload: str
    format: ExportFormat
    file_name: str


Operation = Union[
    Analyze, Filter, Summarize, Visualize, CleanMissing,
    DetectOutliers, RemoveDuplicates, GenerateReport, Download,
]


# Results

@dataclass(frozen=True)
class Prose:
    """Free-form text; also used for validation and precondition errors"""
    text: str

    @property
    def is_error(self) -> bool:
        return self.text.startswith("Error")

    def to_wire(self) -> str:
        return self.text


@dataclass(frozen=True)
class DatasetResult:
    """Summary plus the re-serialized dataset an operation produced"""
    summary: str
    processed_csv_data: str

    def to_dict(self) -> Dict[str, Any]:
        return {"summary": self.summary, "processed_csv_data": self.processed_csv_data}

    def to_wire(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class DownloadResult:
    download_link: str
    file_format: str
    message: str
    file_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {"download_link": self.download_link}
        if self.file_name is not None:
            payload["file_name"] = self.file_name
        payload["file_format"] = self.file_format
        payload["message"] = self.message
        return payload

    def to_wire(self) -> str:
        return json.dumps(self.to_dict())


OperationResult = Union[Prose, DatasetResult, DownloadResult]


def result_type(result: OperationResult) -> str:
    """Short discriminator used by adapters"""
    if isinstance(result, DatasetResult):
        return "dataset"
    if isinstance(result, DownloadResult):
        return "download"
    return "prose"


def from_wire(text: str) -> OperationResult:
    """Parse a wire string back into a result, treating non-JSON as prose"""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError):
        return Prose(text)

    if not isinstance(payload, dict):
        return Prose(text)
    if "download_link" in payload:
        return DownloadResult(
            download_link=payload["download_link"],
            file_format=payload.get("file_format", ExportFormat.CSV.value),
            message=payload.get("message", ""),
            file_name=payload.get("file_name"),
        )
    if "summary" in payload and "processed_csv_data" in payload:
        return DatasetResult(summary=payload["summary"], processed_csv_data=payload["processed_csv_data"])
    return Prose(text)
