"""In-memory relational join engine with radix sort-merge joins and join cost statistics."""

__version__ = "0.1.0"