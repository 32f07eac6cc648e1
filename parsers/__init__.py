"""
CSV parsers module.
"""

from parsers.csv_parser import (
    parse_csv,
    unparse_csv,
    decode_csv_bytes,
    normalize_record,
    CSVParseResult,
)

__all__ = [
    "parse_csv",
    "unparse_csv",
    "decode_csv_bytes",
    "normalize_record",
    "CSVParseResult",
]
