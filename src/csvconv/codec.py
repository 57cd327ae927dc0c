"""CSV parsing and JSON serialization of row records"""

import csv
import json
import logging
from pathlib import Path

from csvconv.errors import FileParseError


logger = logging.getLogger(__name__)

JSON_INDENT = 2


def parse_csv(path: str | Path) -> list[dict[str, str]]:
    """Parse one CSV file into row records.

    The first row is the header; every following non-blank row becomes a dict
    keyed by header names, values kept as strings. A leading UTF-8 BOM is
    dropped from the first header name. Blank lines are skipped, including
    any before the header.

    Args:
        path: Path to the CSV file

    Returns:
        Records in file order (empty list for an empty or header-only file)

    Raises:
        FileParseError: If the file can't be read or decoded, has an unterminated
            quoted field, or a row's field count differs from the header's
    """
    records: list[dict[str, str]] = []
    try:
        with open(path, newline='', encoding='utf-8-sig') as f:
            reader = csv.reader(f, strict=True)
            try:
                header = next((row for row in reader if row), None)
                if header is None:
                    return records
                for row in reader:
                    if not row:
                        continue
                    if len(row) != len(header):
                        raise FileParseError(
                            str(path),
                            f'line {reader.line_num}: expected {len(header)} fields, saw {len(row)}',
                        )
                    records.append(dict(zip(header, row)))
            except csv.Error as e:
                raise FileParseError(str(path), f'line {reader.line_num}: {e}') from e
    except UnicodeDecodeError as e:
        raise FileParseError(str(path), f'not valid UTF-8: {e}') from e
    except OSError as e:
        raise FileParseError(str(path), e.strerror or str(e)) from e

    return records


def dumps_records(records: list[dict[str, str]]) -> str:
    """Serialize row records into a JSON array document."""
    return json.dumps(records, indent=JSON_INDENT, ensure_ascii=False)


def convert_file(src: str | Path, dst: str | Path) -> int:
    """Convert one CSV file into one JSON file.

    Nothing is written when parsing fails.

    Returns:
        Number of records written

    Raises:
        FileParseError: If the CSV file can't be parsed
        OSError: If the JSON file can't be written
    """
    records = parse_csv(src)
    Path(dst).write_text(dumps_records(records), encoding='utf-8')
    logger.debug(f'Converted {src} -> {dst} ({len(records)} records)')
    return len(records)
