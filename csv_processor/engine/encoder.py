# csv_processor/engine/encoder.py
import base64
from typing import Dict, Union

from csv_processor.engine.models import ExportFormat

# "excel" exports carry the same CSV bytes under a spreadsheet MIME label
MIME_TYPES: Dict[ExportFormat, str] = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.EXCEL: "application/vnd.ms-excel",
}

FILE_EXTENSIONS: Dict[ExportFormat, str] = {
    ExportFormat.CSV: "csv",
    ExportFormat.EXCEL: "xls",
}

def resolve_format(export_format: Union[str, ExportFormat]) -> ExportFormat:
    try:
        return ExportFormat(export_format)
    except ValueError:
        raise ValueError(f"Unsupported export format: {export_format!r}") from None

def default_file_name(export_format: Union[str, ExportFormat], stem: str = "cleaned_data") -> str:
    return f"{stem}.{FILE_EXTENSIONS[resolve_format(export_format)]}"

def encode_download(csv_text: str, export_format: Union[str, ExportFormat] = ExportFormat.CSV) -> str:
    """Wrap CSV text into a base64 data URI for the given export format"""
    mime_type = MIME_TYPES[resolve_format(export_format)]
    payload = base64.b64encode(csv_text.encode("utf-8")).decode("ascii")
    return f"data:{mime_type};base64,{payload}"

def decode_download(data_uri: str) -> str:
    """Recover the CSV text from a data URI produced by encode_download"""
    header, _, payload = data_uri.partition(",")
    if not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Not a base64 data URI")
    return base64.b64decode(payload).decode("utf-8")
