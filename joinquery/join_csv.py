"""Command that equi-joins two CSV files on their first field.

Each file holds one row per line of comma separated integers.  Matching
row numbers are written to ``results.txt`` as ``row_a , row_b`` lines.
"""

from __future__ import annotations

import os
import sys
from typing import Sequence

from .options import OptionError, getopts
from .relations import merge_tables, read_csv_table, unpack_pair
from .sorting import table_sort_on_key

__all__ = ["join_files", "main"]

RESULTS_FILE = "results.txt"


def join_files(
    path_a: str | os.PathLike[str], path_b: str | os.PathLike[str]
) -> list[tuple[int, int]]:
    """Return the ``(row_a, row_b)`` pairs whose first fields are equal."""
    columns_a = read_csv_table(path_a)
    columns_b = read_csv_table(path_b)
    if not columns_a or not columns_b:
        return []
    sorted_a = table_sort_on_key(columns_a, 0)
    sorted_b = table_sort_on_key(columns_b, 0)
    return [unpack_pair(pair) for pair in merge_tables(sorted_a, sorted_b)]


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command; returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        (_, path_a), (_, path_b) = getopts(argv, "da:p,db:p")
    except OptionError as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        pairs = join_files(path_a, path_b)
    except (OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1
    with open(RESULTS_FILE, "w", encoding="utf-8") as results:
        for left, right in pairs:
            results.write(f"{left} , {right}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())