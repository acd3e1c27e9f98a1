import warnings

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans

from missing_table import Table, InvalidK, NameCollision, OutOfRange

SHADOW_SUFFIX = '_NA'
NOT_MISSING = '!NA'
MISSING = 'NA'
SHADOW_LABELS = [NOT_MISSING, MISSING]

DEFAULT_RANDOM_STATE = 42


def shadow_name(column: str) -> str:
    return f"{column}{SHADOW_SUFFIX}"


def _shadow_series(missing: pd.Series) -> pd.Series:
    labels = np.where(missing.to_numpy(), MISSING, NOT_MISSING)
    return pd.Series(pd.Categorical(labels, categories=SHADOW_LABELS), index=missing.index)


def to_shadow(table: Table) -> Table:
    """
    Build the shadow table: one `<column>_NA` column per original column.

    Every column gets a shadow column, complete ones included, so samples of
    the same dataset with different missingness share one schema. Cells are
    labelled "NA" where the original is ABSENT and "!NA" otherwise.
    """
    mask = table.missing_mask()
    shadow = pd.DataFrame(
        {shadow_name(name): _shadow_series(mask[name]) for name in table.column_names},
        index=mask.index,
    )
    return Table(shadow)


class NabularTable:
    """
    An original table bound to its shadow table, row aligned.

    The original columns are shared with the table passed in (`data`); the
    shadow columns (`shadow`) belong to this object and are never rewritten.
    Imputation goes through `with_imputed`, which swaps the data columns and
    carries the same shadow over.
    """

    def __init__(self, data: Table, shadow: Table):
        if data.row_count != shadow.row_count:
            raise OutOfRange(
                f"Shadow has {shadow.row_count} rows, data has {data.row_count}"
            )
        clash = set(data.column_names) & set(shadow.column_names)
        if clash:
            raise NameCollision(f"Shadow columns collide with data columns: {sorted(clash)}")
        self._data = data
        self._shadow = shadow

    def __repr__(self):
        return f"NabularTable(rows={self.row_count}, columns={self.column_names})"

    @property
    def data(self) -> Table:
        return self._data

    @property
    def shadow(self) -> Table:
        return self._shadow

    @property
    def column_names(self):
        return self._data.column_names + self._shadow.column_names

    @property
    def row_count(self) -> int:
        return self._data.row_count

    @property
    def column_count(self) -> int:
        return self._data.column_count + self._shadow.column_count

    def get_cell(self, row, column):
        if isinstance(column, (int, np.integer)) and not isinstance(column, bool):
            if column >= self._data.column_count:
                return self._shadow.get_cell(row, column - self._data.column_count)
            return self._data.get_cell(row, column)
        if column in self._shadow.column_names:
            return self._shadow.get_cell(row, column)
        return self._data.get_cell(row, column)

    def to_frame(self) -> pd.DataFrame:
        return pd.concat([self._data.to_frame(), self._shadow.to_frame()], axis=1)

    def with_imputed(self, frame: pd.DataFrame) -> 'NabularTable':
        """
        Return a new nabular table whose data columns come from `frame`.

        `frame` must hold exactly the data columns (same names, same order)
        and the same number of rows. The shadow table is reused unchanged.
        """
        if [str(c) for c in frame.columns] != self._data.column_names:
            raise NameCollision(
                f"Imputed columns {list(frame.columns)} do not match data columns {self._data.column_names}"
            )
        if len(frame) != self.row_count:
            raise OutOfRange(f"Imputed frame has {len(frame)} rows, expected {self.row_count}")
        return NabularTable(Table(frame), self._shadow)


def nabular(table: Table) -> NabularTable:
    """
    Bind the shadow columns to the right of the original columns.

    Raises NameCollision if a `<column>_NA` name is already a real column.
    """
    names = set(table.column_names)
    clash = [shadow_name(c) for c in table.column_names if shadow_name(c) in names]
    if clash:
        raise NameCollision(f"Shadow column names already exist in the table: {clash}")
    return NabularTable(table, to_shadow(table))


def add_label_missings(table: Table, missing='Missing', complete='Not Missing') -> pd.DataFrame:
    """Table as a frame plus an `any_missing` column labelling each row."""
    frame = table.to_frame()
    if 'any_missing' in frame.columns:
        raise NameCollision("Column 'any_missing' already exists")
    any_missing = table.missing_mask().any(axis=1).to_numpy()
    frame['any_missing'] = np.where(any_missing, missing, complete)
    return frame


def add_n_miss(table: Table) -> pd.DataFrame:
    """Table as a frame plus an `n_miss_all` column with the per-row missing count."""
    frame = table.to_frame()
    if 'n_miss_all' in frame.columns:
        raise NameCollision("Column 'n_miss_all' already exists")
    frame['n_miss_all'] = table.missing_mask().sum(axis=1).astype(int)
    return frame


def shadow_matrix(table: Table) -> np.ndarray:
    """Shadow patterns as a float matrix, 1.0 for MISSING and 0.0 otherwise."""
    return table.missing_mask().to_numpy(dtype=float)


def add_missingness_cluster(table: Table, k: int, random_state=DEFAULT_RANDOM_STATE) -> dict:
    """
    Cluster rows on their pattern of missing values.

    Each row is encoded as its shadow vector (1.0 where missing) and the
    vectors are clustered with k-means (k-means++ seeding, 10 restarts,
    seeded with `random_state`), so the same table, k and seed always give
    the same assignment.

    Parameters:
    table : Table
        Input table
    k : int
        Number of clusters, 1 <= k <= number of rows
    random_state : int
        Seed for the k-means initialisation

    Returns:
    dict
        Row position -> cluster id in [0, k)
    """
    n_rows = table.row_count
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or not 1 <= k <= n_rows:
        raise InvalidK(f"k must be an integer in [1, {n_rows}], got {k}")

    if table.column_count == 0:
        return {row: 0 for row in range(n_rows)}

    vectors = shadow_matrix(table)
    n_patterns = len(np.unique(vectors, axis=0))
    if n_patterns < k:
        warnings.warn(
            f"Only {n_patterns} distinct missingness patterns for k={k}; some clusters will be empty",
            UserWarning,
        )

    model = KMeans(n_clusters=k, n_init=10, random_state=random_state)
    with warnings.catch_warnings():
        # already reported above in our own terms
        warnings.filterwarnings('ignore', message='Number of distinct clusters')
        labels = model.fit_predict(vectors)

    return {row: int(label) for row, label in enumerate(labels)}


def bind_missingness_cluster(table: Table, assignment: dict, name='miss_cluster') -> pd.DataFrame:
    """Attach a cluster assignment to the table as a derived column."""
    frame = table.to_frame()
    if name in frame.columns:
        raise NameCollision(f"Column '{name}' already exists")
    if sorted(assignment) != list(range(table.row_count)):
        raise OutOfRange("Cluster assignment does not cover every row exactly once")
    frame[name] = [assignment[row] for row in range(table.row_count)]
    return frame
