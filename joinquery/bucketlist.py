"""A list stored as a chain of fixed-capacity buckets."""

from __future__ import annotations

from typing import Generic, Iterator, TypeVar

__all__ = ["Bucket", "BucketList"]

T = TypeVar("T")


class Bucket(Generic[T]):
    """A fixed-capacity container of items."""

    def __init__(self, slots: int = 1) -> None:
        if slots < 0:
            raise ValueError("a bucket cannot have a negative number of slots")
        self.slots = slots
        self._items: list[T] = []

    @property
    def remaining(self) -> int:
        """Number of free slots."""
        return self.slots - len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def is_full(self) -> bool:
        return len(self._items) >= self.slots

    def insert(self, item: T) -> None:
        """Store *item* in the next free slot; raise IndexError when full."""
        if self.is_full():
            raise IndexError("bucket is full")
        self._items.append(item)

    def delete(self, index: int) -> bool:
        """Remove the item at *index*, moving the last item into its place.

        Returns True when the bucket is empty afterwards.
        """
        if not 0 <= index < len(self._items):
            raise IndexError(f"bucket index {index} out of range")
        last = self._items.pop()
        if index < len(self._items):
            self._items[index] = last
        return not self._items

    def clear(self) -> None:
        self._items.clear()


class BucketList(Generic[T]):
    """Items kept in buckets holding ``bucket_size // data_size`` items each."""

    def __init__(self, bucket_size: int, data_size: int) -> None:
        if data_size <= 0:
            raise ValueError("data size must be positive")
        if data_size > bucket_size:
            raise ValueError("data size is larger than bucket size")
        self._slots = bucket_size // data_size
        self._buckets: list[Bucket[T]] = [Bucket(self._slots)]
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[T]:
        for bucket in self._buckets:
            yield from bucket

    def append(self, item: T) -> None:
        tail = self._buckets[-1]
        if tail.is_full():
            tail = Bucket(self._slots)
            self._buckets.append(tail)
        tail.insert(item)
        self._count += 1

    def bucket(self, pos: int) -> Bucket[T]:
        """Return the bucket at position *pos*."""
        if not 0 <= pos < len(self._buckets):
            raise IndexError(f"bucket position {pos} out of range")
        return self._buckets[pos]

    def buckets(self) -> tuple[Bucket[T], ...]:
        """Return the buckets in order, first to last."""
        return tuple(self._buckets)

    def delete_bucket(self, pos: int) -> None:
        """Drop the bucket at *pos* with its items; the last bucket is emptied instead."""
        target = self.bucket(pos)
        self._count -= len(target)
        if len(self._buckets) > 1:
            del self._buckets[pos]
        else:
            target.clear()

    def delete_last_bucket(self) -> None:
        self.delete_bucket(len(self._buckets) - 1)

    def __iadd__(self, other: BucketList[T]) -> BucketList[T]:
        """Move every item of *other* to the end of this list, emptying *other*.

        Free slots of this list's last bucket are first filled with items
        taken from the end of *other*; its remaining buckets are then
        attached as they are.
        """
        if other is self:
            raise ValueError("cannot concatenate a list with itself")
        tail = self._buckets[-1]
        while not tail.is_full() and other._count:
            source = other._buckets[-1]
            if not len(source):
                other._buckets.pop()
                continue
            last = len(source) - 1
            item = source[last]
            source.delete(last)
            tail.insert(item)
            other._count -= 1
            self._count += 1
        self._buckets.extend(bucket for bucket in other._buckets if len(bucket))
        self._count += other._count
        other._buckets = [Bucket(other._slots)]
        other._count = 0
        return self