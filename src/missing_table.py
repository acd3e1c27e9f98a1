import pandas as pd
import numpy as np
from enum import Enum
from typing import Any, List, NamedTuple, Union


class MissingDataError(Exception):
    """Base class for every error raised by the missing data toolkit."""


class OutOfRange(MissingDataError, IndexError):
    """A row or column position (or name) does not exist in the table."""


class UnknownColumn(MissingDataError, KeyError):
    """A referenced column (grouping column, target...) is not in the table."""

    def __str__(self):
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ''


class NameCollision(MissingDataError, ValueError):
    """Two columns would end up with the same name."""


class InvalidK(MissingDataError, ValueError):
    """Requested number of clusters is out of bounds."""


class ColumnType(Enum):
    NUMERIC = 'numeric'
    CATEGORICAL = 'categorical'
    DATE = 'date'


class Present(NamedTuple):
    value: Any


class _Absent:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return 'ABSENT'

    def __bool__(self):
        return False


ABSENT = _Absent()


def _infer_type(series: pd.Series) -> ColumnType:
    if pd.api.types.is_datetime64_any_dtype(series):
        return ColumnType.DATE
    if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
        return ColumnType.NUMERIC
    return ColumnType.CATEGORICAL


class Table:
    """
    Immutable tabular dataset with named, typed, equal-length columns.

    The table keeps a private copy of the frame it is built from, so later
    changes to that frame are not seen here. Every accessor hands out copies.

    Parameters:
    data : pd.DataFrame
        Source data. Cells that pandas considers missing (NaN, None, NaT, pd.NA)
        are ABSENT.
    """

    def __init__(self, data: pd.DataFrame):
        names = [str(c) for c in data.columns]
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise NameCollision(f"Duplicate column names: {duplicated}")

        frame = data.copy()
        frame.columns = names
        frame = frame.reset_index(drop=True)
        self._frame = frame
        self._types = {name: _infer_type(frame[name]) for name in names}

    @classmethod
    def from_records(cls, rows, columns):
        """Build a table from row tuples, using None (or NaN) for ABSENT cells."""
        rows = [list(r) for r in rows]
        for i, r in enumerate(rows):
            if len(r) != len(columns):
                raise OutOfRange(f"Row {i} has {len(r)} cells, expected {len(columns)}")
        return cls(pd.DataFrame(rows, columns=list(columns)))

    def __repr__(self):
        return f"Table(rows={self.row_count}, columns={self.column_names})"

    def __len__(self):
        return self.row_count

    @property
    def column_names(self) -> List[str]:
        return list(self._frame.columns)

    @property
    def row_count(self) -> int:
        return int(self._frame.shape[0])

    @property
    def column_count(self) -> int:
        return int(self._frame.shape[1])

    @property
    def column_types(self):
        return dict(self._types)

    def _resolve_column(self, column: Union[int, str]) -> str:
        if isinstance(column, (int, np.integer)) and not isinstance(column, bool):
            if not 0 <= column < self.column_count:
                raise OutOfRange(f"Column index {column} out of range [0, {self.column_count})")
            return self._frame.columns[column]
        if column not in self._types:
            raise OutOfRange(f"No column named '{column}'")
        return column

    def require_column(self, column: str) -> str:
        """Return `column` if it exists, raise UnknownColumn otherwise."""
        if column not in self._types:
            raise UnknownColumn(f"Column '{column}' not found in table")
        return column

    def get_cell(self, row: int, column: Union[int, str]):
        name = self._resolve_column(column)
        if isinstance(row, bool) or not isinstance(row, (int, np.integer)) or not 0 <= row < self.row_count:
            raise OutOfRange(f"Row {row} out of range [0, {self.row_count})")

        value = self._frame[name].iat[row]
        if pd.api.types.is_scalar(value) and pd.isna(value):
            return ABSENT
        return Present(value)

    def column_type(self, column: Union[int, str]) -> ColumnType:
        return self._types[self._resolve_column(column)]

    def to_frame(self) -> pd.DataFrame:
        return self._frame.copy()

    def column(self, column: Union[int, str]) -> pd.Series:
        return self._frame[self._resolve_column(column)].copy()

    def missing_mask(self) -> pd.DataFrame:
        """Boolean frame, True where the cell is ABSENT."""
        return self._frame.isna()

    def select(self, columns) -> 'Table':
        names = [self.require_column(c) for c in columns]
        return Table(self._frame[names])

    def drop(self, columns) -> 'Table':
        names = [self.require_column(c) for c in columns]
        return Table(self._frame.drop(columns=names))

    def take_rows(self, positions) -> 'Table':
        return Table(self._frame.iloc[list(positions)])


# functional accessors, same names as the table properties

def get_cell(table: Table, row: int, column: Union[int, str]):
    return table.get_cell(row, column)


def column_names(table: Table) -> List[str]:
    return table.column_names


def row_count(table: Table) -> int:
    return table.row_count


def column_count(table: Table) -> int:
    return table.column_count


def column_type(table: Table, column: Union[int, str]) -> ColumnType:
    return table.column_type(column)
