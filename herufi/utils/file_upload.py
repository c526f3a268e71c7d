"""
File Upload Utility - Read batch import spreadsheets.

Supported formats:
- CSV (.csv) using the csv module
- Excel (.xlsx) using openpyxl (first worksheet only)

Row 1 is always the header. Row numbers reported back to the user are the
1-based spreadsheet line numbers, so the first data row is "Row 2".
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Tuple
from fastapi import UploadFile, HTTPException
from openpyxl import load_workbook

from herufi.core.config import get_settings


ALLOWED_EXTENSIONS = {'.csv', '.xlsx'}
TEXT_ENCODINGS = ['utf-8-sig', 'utf-8', 'latin-1']


@dataclass
class ParsedSheet:
    """Header names, (line, row) pairs keyed by header, and (line, message) parse errors."""
    headers: List[str]
    rows: List[Tuple[int, Dict[str, str]]] = field(default_factory=list)
    errors: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return len(self.rows) + len(self.errors)


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def read_upload(file: UploadFile) -> Tuple[bytes, str]:
    """
    Validate and read an uploaded spreadsheet.

    Returns:
        Tuple of (content, extension)

    Raises:
        HTTPException on missing name (400), wrong type (400) or size (413)
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: CSV, XLSX"
        )

    content = await file.read()

    max_mb = get_settings().max_upload_size_mb
    if len(content) > max_mb * 1024 * 1024:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {max_mb}MB"
        )

    if not content.strip():
        raise HTTPException(status_code=400, detail="File is empty")

    return content, ext


async def parse_upload(file: UploadFile) -> ParsedSheet:
    """Read an UploadFile and parse it into a ParsedSheet."""
    content, ext = await read_upload(file)
    return parse_spreadsheet(content, ext)


def parse_spreadsheet(content: bytes, ext: str) -> ParsedSheet:
    if ext == '.xlsx':
        sheet = parse_xlsx(content)
    else:
        sheet = parse_csv(decode_text(content))

    if not sheet.headers:
        raise HTTPException(status_code=400, detail="File has no header row")
    return sheet


def decode_text(content: bytes) -> str:
    """Decode CSV bytes, trying the common encodings in turn."""
    for encoding in TEXT_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise HTTPException(status_code=400, detail="Could not decode text file")


def parse_csv(text: str) -> ParsedSheet:
    """
    Parse CSV text. Header cells are trimmed, blank lines skipped, and rows
    whose column count differs from the header are reported and dropped.

    Raises:
        HTTPException(400) if the csv module cannot read the text
    """
    reader = csv.reader(io.StringIO(text))
    sheet = ParsedSheet(headers=[])

    try:
        for line_number, cells in enumerate(reader, start=1):
            if not cells or all(not c.strip() for c in cells):
                continue

            if not sheet.headers:
                sheet.headers = [c.strip() for c in cells]
                continue

            if len(cells) != len(sheet.headers):
                sheet.errors.append((
                    line_number,
                    f"Column count mismatch (expected {len(sheet.headers)}, got {len(cells)})"
                ))
                continue

            sheet.rows.append((line_number, _row_dict(sheet.headers, cells)))
    except csv.Error as e:
        raise HTTPException(status_code=400, detail=f"Error reading CSV: {e}")

    return sheet


def parse_xlsx(content: bytes) -> ParsedSheet:
    """Parse the first worksheet of an .xlsx workbook."""
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading XLSX: {str(e)}")

    try:
        worksheet = workbook.worksheets[0]
        sheet = ParsedSheet(headers=[])

        for line_number, values in enumerate(worksheet.iter_rows(values_only=True), start=1):
            cells = [cell_to_str(v) for v in values]
            if all(not c for c in cells):
                continue

            if not sheet.headers:
                # Trailing empty header cells are formatting, not columns
                while cells and not cells[-1]:
                    cells.pop()
                sheet.headers = cells
                continue

            cells = (cells + [''] * len(sheet.headers))[:len(sheet.headers)]
            sheet.rows.append((line_number, _row_dict(sheet.headers, cells)))

        return sheet
    finally:
        workbook.close()


def cell_to_str(value) -> str:
    """Stringify an Excel cell the way it reads on screen."""
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _row_dict(headers: List[str], cells: List[str]) -> Dict[str, str]:
    return {header: cell.strip() for header, cell in zip(headers, cells)}
