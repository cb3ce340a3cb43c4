"""
Streaming CSV writer that keeps only a selected set of columns.

Result items arrive one at a time, either as a single Record or as a
list of Records. The header row comes from the first record seen and is
written exactly once. Field selection is case-insensitive and keeps the
record's own column order.
"""

import csv
import queue
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Set, TextIO, Union

from .errors import InvalidResultError
from .logger import StructuredLogger, get_logger
from .records import Record


@dataclass(frozen=True)
class Single:
    record: Record


@dataclass(frozen=True)
class Batch:
    records: List[Record]


ResultItem = Union[Single, Batch]


def classify(item: Any) -> ResultItem:
    """
    Map a raw result item onto Single or Batch.

    Non-record elements inside a list are dropped, so a list holding no
    records becomes an empty Batch.

    Raises:
        InvalidResultError: If the item is neither a record nor a list of records
    """
    if isinstance(item, (Single, Batch)):
        return item
    if isinstance(item, Record):
        return Single(item)
    if isinstance(item, (list, tuple)):
        return Batch([r for r in item if isinstance(r, Record)])
    raise InvalidResultError(f"invalid data type: {type(item).__name__}")


def parse_fields(fields: str) -> Set[str]:
    """Parse "Name, phone" into {"name", "phone"}. Empty means no filter."""
    if not fields:
        return set()
    return {f.strip().lower() for f in fields.split(",") if f.strip()}


def iter_queue(q: "queue.Queue[Any]", sentinel: Any = None) -> Iterator[Any]:
    """Yield items from ``q`` until ``sentinel`` is received."""
    while True:
        item = q.get()
        if item is sentinel:
            return
        yield item


class ProjectingWriter:
    """
    Writes records to a CSV sink, keeping only the selected fields.

    Single consumer: run() must not be driven from more than one thread at
    a time. Producers can share a queue.Queue and hand it over through
    iter_queue().
    """

    def __init__(
        self,
        sink: TextIO,
        fields: str = "",
        logger: Optional[StructuredLogger] = None,
    ):
        self._sink = sink
        self._writer = csv.writer(sink)
        self.fields = parse_fields(fields)
        self.header_written = False
        self.rows_written = 0
        self.logger = logger or get_logger()

    def run(self, items: Iterable[Any]) -> int:
        """
        Consume ``items`` until exhausted, then flush the sink.

        Returns:
            Number of data rows written

        Raises:
            InvalidResultError: On an item of unknown shape. Rows already
                written are left in the sink.
        """
        for item in items:
            result = classify(item)
            if isinstance(result, Single):
                self._write(result.record)
            else:
                for record in result.records:
                    self._write(record)

        self._sink.flush()
        self.logger.record_rows_written(self.rows_written)
        self.logger.debug(
            "CSV export finished",
            rows=self.rows_written,
            fields=sorted(self.fields),
        )
        return self.rows_written

    def _write(self, record: Record) -> None:
        headers = record.headers()
        if not self.header_written:
            self._writer.writerow(self.filter_headers(headers))
            self.header_written = True

        self._writer.writerow(self.filter_row(headers, record.row()))
        self.rows_written += 1

    def filter_headers(self, headers: List[str]) -> List[str]:
        if not self.fields:
            return headers
        return [h for h in headers if h.lower() in self.fields]

    def filter_row(self, headers: List[str], row: List[str]) -> List[str]:
        if not self.fields:
            return row
        return [value for header, value in zip(headers, row) if header.lower() in self.fields]
