# joinquery

An in-memory relational join engine. Relations are held column by column
and are joined with a sort-merge join: each join column is sorted with a
byte-wise radix sort, which hands partitions of up to 8192 entries over to
quicksort, and the two sorted sides are then merged into pairs of row ids
packed into one 64-bit integer. Intermediate results are kept as groups of
row-id lists aligned position by position.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Running queries over a workload

`joinquery` reads the names of the relation files from standard input, one
per line, and loads each from the workload directory given with `-w`. A
relation file is binary: the number of rows and the number of columns as
two little-endian 64-bit unsigned integers, followed by every column in
turn, each value a little-endian 64-bit unsigned integer.

The query file, given with `-q` and also looked up inside the workload
directory, holds batches of queries. Each batch ends with a line holding
only `F`; queries after the last `F` line are not run. A query line has
three parts separated by `|`:

```
0 2 4|0.1=1.2&1.0=2.1&0.1>3000|0.0 1.1
```

- the relations the query uses, as indexes into the list read from
  standard input;
- the predicates, joined by `&`: a join such as `0.1=1.2` (relation 0,
  column 1 equals relation 1, column 2), or a filter such as `0.1>3000`,
  `0.1<3000` or `0.1=3000`; relation numbers here index the query's own
  relation list;
- the projections, each `relation.column`.

For every query `joinquery` prints one line with the sum of each projected
column over the result, wrapped at 64 bits, or `NULL` where that sum is
zero. A projected relation must appear in at least one predicate. On a
missing option, an unreadable file or a malformed query the command prints
the error to standard error and exits with status 1.

```
ls -1 workload/*.bin | xargs -n1 basename | joinquery -w workload -q queries.work
```

## Joining two CSV tables

`joinquery-csv` joins two comma-separated tables of unsigned integers on
their first field and writes every matching pair of row numbers (counted
from 0) to `results.txt` in the current directory, one pair per line as
`row_a , row_b`. Numbers may be written in decimal, `0x` hexadecimal or
`0`-prefixed octal.

```
joinquery-csv -da relation_a.csv -db relation_b.csv
```

## Using the library

- `joinquery.options.getopts` parses a command line against a compact
  specification such as `"w:p,q:p,s:n"` and raises `OptionError` on a
  missing or malformed value; `is_int_numeric` and `is_float_numeric`
  check numeric arguments.
- `joinquery.sorting.table_sort_on_key` sorts a column-major table by one
  column into `MergeTuple` entries of key and row id; `radix_sort`,
  `quicksort` and `byte_at` are the steps it is built from.
- `joinquery.relations` holds the data types (`RelationTable`, `JoinPred`,
  `CompPred`, `Projection`, `Query`, `ResStruct`, `FullResList`), the
  readers `read_relation`, `read_relations`, `read_csv_table`,
  `parse_query` and `QueryBatchReader`, and `merge_tables`, which merges
  two sorted sides into packed pairs that `unpack_pair` splits again.
- `joinquery.predicates.do_all_comp_preds` and `do_all_join_preds`
  evaluate a query's filters and joins into a list of `FullResList`
  groups.
- `joinquery.cli.run_query` evaluates a parsed `Query` and returns its
  output line; `joinquery.join_csv.join_files` returns the matching row
  pairs of two CSV files.
- `joinquery.bucketlist.BucketList` is a list stored in fixed-capacity
  `Bucket`s, with whole-bucket deletion and `+=` concatenation.
- `joinquery.search.binary_search` finds an unused position of a value in
  a sorted sequence.
- `joinquery.scheduler.JobScheduler` runs `function(argument)` jobs on a
  fixed pool of worker threads from a bounded queue, raising
  `QueueFullError` or `SchedulerShutdownError` when a job cannot be added.
- `joinquery.statistics.initial_stats` computes per-column statistics of a
  relation, and `filter_equal_to_value`, `filter_between_values`,
  `filter_between_columns`, `self_join_stats` and `join_stats` update them
  for a filter or join and return estimated costs.

## What it does not do

The commands evaluate predicates in a fixed order: comparison filters
first, then joins in the order the query gives them. The statistics module
only provides cost estimates; nothing in the package searches for a
cheaper join order, and the commands neither use the statistics nor run
queries on the job scheduler. Relations are held entirely in memory and
nothing is stored between runs.