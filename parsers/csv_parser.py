"""
CSV parser for inventory uploads and staged set exports.

Wraps pandas so the rest of the code sees plain records: every row becomes
a dict of column name to string, with absent cells normalized to "".
"""

import math
import re
from dataclasses import dataclass, field
from io import StringIO
from typing import Any, Iterable, Union
import structlog

import pandas as pd

from exceptions import CSVParseFailureError

logger = structlog.get_logger(__name__)

Record = dict[str, str]

LEADING_BLANK_LINES = re.compile(r"\A(?:[ \t]*\r?\n)+")


@dataclass
class ParseError:
    """Row the parser could not map onto the header."""
    error: str
    values: list[str] = field(default_factory=list)


@dataclass
class CSVParseResult:
    """Result of parsing a CSV document."""
    rows: list[Record] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)

    @property
    def has_headers(self) -> bool:
        return len(self.fields) > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "rows": self.rows,
            "fields": self.fields,
            "errors": [
                {"error": e.error, "values": e.values}
                for e in self.errors
            ],
        }


def is_missing(value: Any) -> bool:
    """True for None, pd.NA and float NaN."""
    if value is None or value is pd.NA:
        return True
    return isinstance(value, float) and math.isnan(value)


def normalize_cell(value: Any) -> str:
    """
    Coerce a parsed cell to a string.

    None and NaN become "", everything else goes through str().
    """
    if isinstance(value, str):
        return value
    if is_missing(value):
        return ""
    return str(value)


def normalize_record(row: dict) -> Record:
    """Normalize every value of a raw row."""
    return {str(key): normalize_cell(value) for key, value in row.items()}


def decode_csv_bytes(content: bytes) -> str:
    """
    Decode uploaded bytes as UTF-8, dropping a leading BOM.

    Raises:
        CSVParseFailureError: If the bytes are not valid UTF-8
    """
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.error("csv_decode_failed", error=str(e))
        raise CSVParseFailureError(
            "file is not UTF-8 encoded text",
            details={"original_error": str(e)}
        )


def unique_headers(header: list[str]) -> list[str]:
    """
    Name blank header cells and disambiguate repeated ones.

    Uses the pandas convention: "Unnamed: <position>" for a blank cell,
    "name.1", "name.2" for repeats.
    """
    counts: dict[str, int] = {}
    fields = []
    for position, name in enumerate(header):
        name = name or f"Unnamed: {position}"
        if name in counts:
            counts[name] += 1
            name = f"{name}.{counts[name]}"
        counts.setdefault(name, 0)
        fields.append(name)
    return fields


def _is_empty_line(row: list) -> bool:
    # An empty line comes back with every cell missing. A line holding
    # only spaces, or a quoted "", keeps its first cell.
    return all(is_missing(cell) for cell in row)


def parse_csv(source: Union[str, bytes]) -> CSVParseResult:
    """
    Parse delimited text with a header row.

    Empty lines are skipped; a line holding only whitespace is data, so a
    single-column file keeps such values. Rows with more cells than the
    header are reported in `errors` and left out; short rows are padded
    with "". Zero discovered columns is not raised here, callers decide.

    Args:
        source: CSV text or raw uploaded bytes

    Returns:
        CSVParseResult with rows, fields and row-level errors

    Raises:
        CSVParseFailureError: If the text cannot be parsed at all
    """
    text = decode_csv_bytes(source) if isinstance(source, bytes) else source
    result = CSVParseResult()

    if not text.strip():
        logger.info("csv_empty")
        return result

    def on_bad_line(bad_line: list[str]):
        result.errors.append(
            ParseError(
                error="Too many fields",
                values=[normalize_cell(cell) for cell in bad_line],
            )
        )
        return None

    # The header is read as an ordinary row: with header=None pandas
    # measures every data row against it and never turns the first column
    # of a long row into an index.
    try:
        df = pd.read_csv(
            StringIO(LEADING_BLANK_LINES.sub("", text)),
            header=None,
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=False,
            engine="python",
            on_bad_lines=on_bad_line,
        )
    except pd.errors.EmptyDataError:
        logger.info("csv_no_columns")
        return result
    except (pd.errors.ParserError, ValueError) as e:
        logger.error("csv_parse_failed", error=str(e))
        raise CSVParseFailureError(str(e), details={"original_error": str(e)})

    grid = df.to_numpy(dtype=object).tolist()
    if not grid:
        logger.info("csv_no_columns")
        return result

    header, body = grid[0], grid[1:]
    result.fields = unique_headers([normalize_cell(cell) for cell in header])
    result.rows = [
        dict(zip(result.fields, (normalize_cell(cell) for cell in row)))
        for row in body
        if not _is_empty_line(row)
    ]

    logger.info(
        "csv_parsed",
        rows=len(result.rows),
        fields=len(result.fields),
        errors=len(result.errors),
    )
    return result


def unparse_csv(rows: Iterable[dict], columns: list[str]) -> str:
    """
    Serialize records with an explicit column order.

    Columns a record lacks are written as "". Extra keys are dropped.

    Args:
        rows: Records to write
        columns: Header row, in output order

    Returns:
        CSV text with a header row and CRLF line endings
    """
    df = pd.DataFrame(list(rows), columns=list(columns))
    df = df.fillna("")
    return df.to_csv(index=False, lineterminator="\r\n")
