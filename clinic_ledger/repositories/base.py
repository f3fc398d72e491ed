"""Key-indexed in-memory repository over a flat table."""

import copy
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Generic, Hashable, TypeVar

import structlog

from clinic_ledger.core.exceptions import ConflictException, ValidationException
from clinic_ledger.database import FileSignature, Row, TableSchema, TabularFile

logger = structlog.get_logger(__name__)

K = TypeVar("K", bound=Hashable)
M = TypeVar("M")


class Repository(Generic[K, M]):
    """
    Load-all / mutate / flush-all repository.

    The whole table is read at construction into an ordered map keyed by the
    record's identity. Mutations happen inside ``transaction()``, which holds
    the table lock, flushes the full table on success and restores the
    in-memory map if anything raises. A flush refuses to overwrite a file that
    changed on disk since it was last loaded or written.
    """

    schema: TableSchema
    # Last id assumed for an empty table
    id_floor = 0

    def __init__(self, table: TabularFile):
        """Initialize repository and load the table."""
        self.table = table
        self.version = 0
        self._lock = threading.RLock()
        self._header: Row = []
        self._records: dict[K, M] = {}
        self._signature: FileSignature | None = None
        self._last_id = 0
        self._depth = 0
        self._dirty = False
        self.reload()

    # Row mapping, implemented per table

    def _from_row(self, row: Row) -> M:
        raise NotImplementedError

    def _to_row(self, record: M) -> Row:
        raise NotImplementedError

    def _key(self, record: M) -> K:
        raise NotImplementedError

    def _numeric_id(self, record: M) -> int | None:
        """Integer id used to seed the id counter, None for name-keyed tables."""
        return None

    # Loading and flushing

    def reload(self) -> None:
        """
        Re-read the whole table, discarding in-memory state.

        Raises:
            StorageException: If the file cannot be read
            ValidationException: If a row cannot be parsed
        """
        with self._lock:
            signature = self.table.signature()
            header, rows = self.table.load_all()
            records: dict[K, M] = {}
            for line, row in enumerate(rows, start=2):
                try:
                    record = self._from_row(self.schema.pad(row))
                except (ValueError, ValidationException, IndexError) as e:
                    logger.error(
                        "table_row_invalid",
                        table=self.schema.name,
                        line=line,
                        error=str(e),
                    )
                    raise ValidationException(
                        f"Invalid row {line} in table {self.schema.name}"
                    ) from e
                key = self._key(record)
                if key in records:
                    logger.error(
                        "table_row_duplicate",
                        table=self.schema.name,
                        line=line,
                        key=str(key),
                    )
                    raise ValidationException(
                        f"Duplicate key {key!r} on row {line} in table {self.schema.name}"
                    )
                records[key] = record

            self._header = header or self.schema.header
            self._records = records
            self._signature = signature
            self._dirty = False
            ids = [i for i in (self._numeric_id(r) for r in records.values()) if i is not None]
            self._last_id = max(ids, default=self.id_floor)

            logger.debug("table_loaded", table=self.schema.name, rows=len(records))

    def flush(self) -> None:
        """
        Write the whole table.

        Raises:
            ConflictException: If the file changed on disk since the last load
            StorageException: If the file cannot be written
        """
        with self._lock:
            current = self.table.signature()
            if current != self._signature:
                logger.warning(
                    "table_modified_externally",
                    table=self.schema.name,
                    version=self.version,
                )
                raise ConflictException(
                    f"Table {self.schema.name} changed on disk; reload before retrying"
                )

            self.table.save_all(self._header, [self._to_row(r) for r in self._records.values()])
            self._signature = self.table.signature()
            self.version += 1

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Run a mutation as one critical section.

        The in-memory map is snapshotted first; if the body or the flush
        raises, the snapshot is restored and the exception propagates. Nested
        transactions on the same table join the outermost one, which flushes
        once, and only if something was put or deleted.
        """
        with self._lock:
            snapshot = copy.copy(self._records)
            last_id = self._last_id
            dirty = self._dirty
            self._depth += 1
            try:
                yield
                if self._depth == 1 and self._dirty:
                    self.flush()
                    self._dirty = False
            except Exception:
                self._records = snapshot
                self._last_id = last_id
                self._dirty = dirty
                raise
            finally:
                self._depth -= 1

    # Accessors

    def next_id(self) -> int:
        """Reserve the next id (max existing + 1, starting at 1)."""
        with self._lock:
            self._last_id += 1
            return self._last_id

    def get(self, key: K) -> M | None:
        """Get a record by key."""
        return self._records.get(key)

    def all(self) -> list[M]:
        """All records in table order."""
        with self._lock:
            return list(self._records.values())

    def filter(self, predicate: Callable[[M], bool]) -> list[M]:
        """Records matching predicate, in table order."""
        with self._lock:
            return [r for r in self._records.values() if predicate(r)]

    def put(self, record: M) -> M:
        """Insert or replace a record; call inside ``transaction()``."""
        self._records[self._key(record)] = record
        self._dirty = True
        return record

    def delete(self, key: K) -> M | None:
        """Remove a record; call inside ``transaction()``."""
        record = self._records.pop(key, None)
        if record is not None:
            self._dirty = True
        return record

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

