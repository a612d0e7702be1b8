"""
Statement text parsing.

Turns CSV text into a header row and data rows of strings. Quoted fields,
embedded commas and a UTF-8 BOM are handled by the csv module. Lines that
are completely blank are skipped; everything else is kept as a row so the
importer can count and report it.
"""

import csv
import io


def parse_statement_csv(text: str, delimiter: str = ",") -> tuple[list[str], list[list[str]]]:
    """
    Returns:
        (headers, rows). Both empty for an empty file.
    """
    text = text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)

    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if not rows:
        return [], []

    headers = [cell.strip() for cell in rows[0]]
    return headers, rows[1:]
