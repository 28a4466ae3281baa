"""
File ingestion: uploaded bytes -> normalized in-memory content.

Classification (first match wins):
- image/* MIME type    -> base64 text of the raw bytes
- *.csv                -> list of {column: value} rows, header row as keys
- *.xlsx / *.xls       -> first sheet as a list of row arrays (header row included)
- anything else        -> no content; the file is referenced by name only
"""

import base64
import csv
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd

from .errors import IngestionError
from .utils import decode_text, safe_json

logger = logging.getLogger(__name__)

# Rows shown in the upload preview (header included for workbooks).
PREVIEW_ROWS = 6
WORKBOOK_ERROR = "Error reading Excel file. Please try again."
WORKBOOK_EXTENSIONS = (".xlsx", ".xls")
CSV_DELIMITERS = ",;\t|"


class FileKind(str, Enum):
    IMAGE = "image"
    DELIMITED = "csv"
    WORKBOOK = "workbook"
    OPAQUE = "opaque"


NOTIFICATIONS = {
    FileKind.IMAGE: "Image file loaded successfully!",
    FileKind.DELIMITED: "CSV file loaded successfully!",
    FileKind.WORKBOOK: "Excel file loaded successfully!",
    FileKind.OPAQUE: "File uploaded successfully!",
}


@dataclass
class IngestedFile:
    name: str
    file_type: Optional[str]
    kind: FileKind
    content: Optional[Any] = None
    preview: Optional[Dict[str, Any]] = None

    @property
    def message(self) -> str:
        return NOTIFICATIONS[self.kind]


def classify(name: str, file_type: Optional[str]) -> FileKind:
    lowered = (name or "").lower()
    if file_type and file_type.startswith("image/"):
        return FileKind.IMAGE
    if lowered.endswith(".csv"):
        return FileKind.DELIMITED
    if lowered.endswith(WORKBOOK_EXTENSIONS):
        return FileKind.WORKBOOK
    return FileKind.OPAQUE


def data_url_payload(data_url: str) -> str:
    """The base64 payload of a data URL: everything after the first comma."""
    return data_url.split(",", 1)[1] if "," in data_url else ""


def encode_image(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def sniff_delimiter(text: str) -> str:
    """Delimiter of the header line (comma, semicolon, tab or pipe); comma if undecidable."""
    header = next((line for line in text.splitlines() if line.strip()), "")
    try:
        return csv.Sniffer().sniff(header, delimiters=CSV_DELIMITERS).delimiter
    except csv.Error:
        return ","


def read_csv_rows(data: bytes) -> List[Dict[str, str]]:
    """Parse delimited text into row mappings; every value stays a string."""
    text = decode_text(data)
    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=sniff_delimiter(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="skip",
        )
    except pd.errors.EmptyDataError:
        return []
    return df.to_dict(orient="records")


def read_workbook_rows(data: bytes) -> List[List[Any]]:
    """Read the first sheet into row arrays; empty cells become None."""
    try:
        df = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None)
    except Exception as e:
        logger.error(f"Failed to read workbook: {type(e).__name__}: {e}")
        raise IngestionError(WORKBOOK_ERROR)
    return safe_json(df.astype(object).values.tolist())


def build_preview(kind: FileKind, content: Any) -> Optional[Dict[str, Any]]:
    """Header-aware preview of tabular content; None for other kinds."""
    if kind == FileKind.DELIMITED:
        headers = list(content[0].keys()) if content else []
        rows = [[row.get(h, "") for h in headers] for row in content[:PREVIEW_ROWS]]
        return {"headers": headers, "rows": rows, "total_rows": len(content)}
    if kind == FileKind.WORKBOOK:
        headers = content[0] if content else []
        return {"headers": headers, "rows": content[1:PREVIEW_ROWS], "total_rows": len(content)}
    return None


def ingest_file(name: str, file_type: Optional[str], data: bytes) -> IngestedFile:
    """
    Normalize one uploaded file.

    Args:
        name: original filename
        file_type: declared MIME type (may be empty)
        data: raw file bytes

    Returns:
        IngestedFile with kind, content and preview.

    Raises:
        IngestionError: workbook bytes could not be read
    """
    kind = classify(name, file_type)

    if kind == FileKind.IMAGE:
        content = encode_image(data)
    elif kind == FileKind.DELIMITED:
        content = read_csv_rows(data)
    elif kind == FileKind.WORKBOOK:
        content = read_workbook_rows(data)
    else:
        content = None

    preview = build_preview(kind, content)
    if preview is not None:
        logger.info(f"Ingested {name} as {kind.value}: {preview['total_rows']} rows")
    else:
        logger.info(f"Ingested {name} as {kind.value}")
    return IngestedFile(name=name, file_type=file_type, kind=kind, content=content, preview=preview)
