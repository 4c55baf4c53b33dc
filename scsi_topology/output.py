"""Rendering of device records: verbose, CSV, aligned table and JSON"""

import json
from typing import Any, List, Sequence


def header_separator(headers: Sequence[str]) -> List[str]:
    """Dashes as long as each column name"""
    return ["-" * len(h) for h in headers]


def print_csv(headers: Sequence[str], rows: Sequence[Sequence[str]], show_header: bool = False) -> None:
    """Print comma separated rows, with the header pair if requested"""
    if show_header:
        print(",".join(headers))
        print(",".join(header_separator(headers)))

    for row in rows:
        print(",".join(str(val) for val in row))


def print_table(headers: Sequence[str], rows: Sequence[Sequence[str]], show_header: bool = False) -> None:
    """Print rows as aligned columns"""
    data = [list(headers), header_separator(headers)] if show_header else []
    data.extend([str(val) for val in row] for row in rows)
    if not data:
        return

    # Calculate column widths
    widths: List[int] = []
    for row in data:
        for i, val in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], len(val))
            else:
                widths.append(len(val))

    for row in data:
        row_parts = [val.ljust(widths[i]) for i, val in enumerate(row)]
        print("  ".join(row_parts).rstrip())


def print_verbose(rows: Sequence[Sequence[str]]) -> None:
    """Print each record as a numbered block, one field per line"""
    for i, row in enumerate(rows):
        print(f"Dev_{i}")
        for val in row:
            print(val)
        print("")


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))
