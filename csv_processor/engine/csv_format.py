# csv_processor/engine/csv_format.py
import csv
import io
import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence

from csv_processor.engine.models import Table

logger = logging.getLogger(__name__)

QUOTE = '"'
DELIMITER = ','

@dataclass(frozen=True)
class ParseReport:
    table: Table
    dropped_rows: int = 0

def _scan_records(raw: str) -> Iterator[List[str]]:
    """Split raw text into records of trimmed fields.

    A double quote toggles quoting; inside quotes a doubled quote is a literal
    quote character. Commas and line breaks only separate fields and records
    outside quotes, so quoted fields may span lines.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    has_content = False
    i = 0
    length = len(raw)

    while i < length:
        char = raw[i]
        if char == QUOTE:
            if in_quotes and i + 1 < length and raw[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
            has_content = True
        elif char == DELIMITER and not in_quotes:
            fields.append(''.join(current).strip())
            current = []
            has_content = True
        elif char in '\r\n' and not in_quotes:
            if char == '\r' and i + 1 < length and raw[i + 1] == '\n':
                i += 1
            fields.append(''.join(current).strip())
            if has_content:
                yield fields
            fields, current, has_content = [], [], False
        else:
            current.append(char)
            if not char.isspace():
                has_content = True
        i += 1

    if has_content:
        fields.append(''.join(current).strip())
        yield fields

def parse_csv_with_report(raw: str) -> ParseReport:
    """Parse raw CSV text, reporting how many malformed rows were dropped"""
    records = _scan_records(raw or "")
    headers = next(records, None)
    if headers is None:
        return ParseReport(table=Table(headers=[], rows=[]))

    rows = []
    dropped = 0
    for record in records:
        if len(record) == len(headers):
            rows.append(record)
        else:
            dropped += 1

    if dropped:
        logger.warning(
            f"CSV parse: dropped {dropped} row(s) whose column count did not match "
            f"the {len(headers)} header column(s)"
        )

    return ParseReport(table=Table(headers=headers, rows=rows), dropped_rows=dropped)

def parse_csv(raw: str) -> Table:
    """Parse raw CSV text into a header row and rectangular rows"""
    return parse_csv_with_report(raw).table

def _cell_text(value: Optional[Any]) -> str:
    return "" if value is None else str(value)

def format_csv(headers: Sequence[Any], rows: Sequence[Sequence[Any]]) -> str:
    """Serialize a table with every header and cell quoted, rows joined by newlines"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow([_cell_text(header) for header in headers])
    for row in rows:
        writer.writerow([_cell_text(cell) for cell in row])
    text = buffer.getvalue()
    return text[:-1] if text.endswith('\n') else text

def format_table(table: Table) -> str:
    return format_csv(table.headers, table.rows)
