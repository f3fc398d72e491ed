"""Flat-file table storage.

Every table is a CSV file whose first row is a header. Tables are read whole
and written whole; a write lands in a temporary sibling file first and is
then renamed over the original, so readers only ever see the old or the new
content.
"""

import csv
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import structlog

from clinic_ledger.core.exceptions import StorageException, ValidationException

logger = structlog.get_logger(__name__)

Row = list[str]


@dataclass(frozen=True)
class TableSchema:
    """Name and header columns of a table."""

    name: str
    columns: tuple[str, ...]

    @property
    def header(self) -> Row:
        """Default header row for a new file."""
        return list(self.columns)

    def pad(self, row: Row) -> Row:
        """Right-pad a short row with empty cells up to the column count."""
        if len(row) >= len(self.columns):
            return row
        return row + [""] * (len(self.columns) - len(row))


@dataclass(frozen=True)
class FileSignature:
    """Modification time and size of a table file at a point in time."""

    mtime_ns: int
    size: int


def parse_int(cell: str, column: str = "value") -> int:
    """
    Parse an integer cell.

    Spreadsheet exports write whole numbers as decimals ("12.0"), so the cell
    is read as a float and truncated.

    Args:
        cell: Raw cell text
        column: Column name used in the error message

    Returns:
        Integer value

    Raises:
        ValidationException: If the cell is not numeric
    """
    try:
        return int(float(cell.strip()))
    except (AttributeError, ValueError) as e:
        raise ValidationException(f"Invalid integer in column {column}: {cell!r}") from e


def parse_optional_int(cell: str, column: str = "value") -> int | None:
    """Parse an integer cell that may be blank."""
    if cell is None or not cell.strip():
        return None
    return parse_int(cell, column)


class TabularFile:
    """Whole-table accessor over one CSV file."""

    def __init__(self, path: Path | str):
        """Initialize accessor for the file at path."""
        self.path = Path(path)

    def exists(self) -> bool:
        """Check if the backing file exists."""
        return self.path.is_file()

    def signature(self) -> FileSignature | None:
        """Current signature of the backing file, None if it is missing."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageException(f"Cannot stat table {self.path}: {e}") from e
        return FileSignature(mtime_ns=stat.st_mtime_ns, size=stat.st_size)

    def load_all(self) -> tuple[Row, list[Row]]:
        """
        Read the whole table.

        Returns:
            Header row and data rows. Blank lines are skipped.

        Raises:
            StorageException: If the file cannot be read
        """
        try:
            with self.path.open(newline="", encoding="utf-8") as fh:
                rows = [row for row in csv.reader(fh) if any(cell.strip() for cell in row)]
        except OSError as e:
            logger.error("table_read_failed", path=str(self.path), error=str(e))
            raise StorageException(f"Cannot read table {self.path}: {e}") from e
        except csv.Error as e:
            logger.error("table_parse_failed", path=str(self.path), error=str(e))
            raise StorageException(f"Malformed table {self.path}: {e}") from e

        if not rows:
            return [], []
        return rows[0], rows[1:]

    def save_all(self, header: Row, rows: list[Row]) -> None:
        """
        Replace the whole table.

        Args:
            header: Header row, written first
            rows: Data rows

        Raises:
            StorageException: If the file cannot be written; the previous
                content is left untouched
        """
        directory = self.path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh)
                writer.writerow(header)
                writer.writerows(rows)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            logger.error("table_write_failed", path=str(self.path), error=str(e))
            raise StorageException(f"Cannot write table {self.path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug("table_written", path=str(self.path), rows=len(rows))

    def create(self, header: Row) -> None:
        """Create the table with only a header row if it does not exist yet."""
        if not self.exists():
            self.save_all(header, [])
