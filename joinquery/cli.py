"""Command that answers batches of join queries over binary relations.

Relation file names are read from standard input, one per line, and
loaded from the workload directory given with ``-w``.  The query file,
given with ``-q``, is read from the same directory; each query's answer
is printed on its own line.
"""

from __future__ import annotations

import sys
from typing import Sequence

from .options import OptionError, getopts
from .predicates import do_all_comp_preds, do_all_join_preds, find_in_results
from .relations import FullResList, Query, QueryBatchReader, read_relations

__all__ = ["run_query", "main"]

_MASK64 = (1 << 64) - 1


def run_query(query: Query) -> str:
    """Evaluate *query* and return its projected sums, space separated.

    Each sum wraps at 64 bits; a zero sum is written as ``NULL``.  Raises
    LookupError when a projected relation takes part in no predicate.
    """
    results: list[FullResList] = []
    seen: set[int] = set()
    do_all_comp_preds(query.query_rels, query.comp_preds, results, seen)
    do_all_join_preds(query.query_rels, query.join_preds, results, seen)

    fields = []
    for proj in query.proj:
        res = next(
            (
                found
                for group in results
                if (found := find_in_results(group.table_list, proj.rel)) is not None
            ),
            None,
        )
        if res is None:
            raise LookupError(f"relation {proj.rel} has no result to project")
        column = query.query_rels[proj.rel].table[proj.col_rel]
        total = sum(column[row] for row in res.row_ids) & _MASK64
        fields.append(str(total) if total else "NULL")
    return " ".join(fields)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command; returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        (_, workload_dir), (_, query_file) = getopts(argv, "w:p,q:p")
    except OptionError as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        relations = read_relations(workload_dir, sys.stdin)
        for batch in QueryBatchReader(workload_dir, query_file, relations):
            for query in batch:
                print(run_query(query))
    except (OSError, ValueError, LookupError) as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())