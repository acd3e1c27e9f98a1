import functools

import numpy as np
import pandas as pd

from missing_table import Table, OutOfRange, NameCollision


def _split_groups(table: Table, group_by: str):
    """Yield (group value, original row positions, table without the grouping column)."""
    table.require_column(group_by)
    keys = table.column(group_by)
    rest = table.drop([group_by])

    # groups in first-seen order, missing group values last as their own group
    missing = keys.isna().to_numpy()
    for value in keys[~missing].unique():
        positions = np.flatnonzero((keys == value).to_numpy() & ~missing)
        yield value, positions, rest.take_rows(positions)
    if missing.any():
        positions = np.flatnonzero(missing)
        yield np.nan, positions, rest.take_rows(positions)


def groupable(func=None, case_column=None):
    """
    Add a `group_by` keyword to a profiling function.

    With `group_by` set, the function runs once per distinct value of that
    column (excluding the column itself) and the results are returned as a
    dict keyed by group value. `case_column` names a result column holding
    row positions; it is mapped back to positions in the full table.
    """
    if func is None:
        return functools.partial(groupable, case_column=case_column)

    @functools.wraps(func)
    def wrapper(table, *args, group_by=None, **kwargs):
        if group_by is None:
            return func(table, *args, **kwargs)
        results = {}
        for value, positions, sub in _split_groups(table, group_by):
            result = func(sub, *args, **kwargs)
            if case_column is not None:
                result = result.copy()
                result[case_column] = positions[result[case_column].to_numpy(dtype=int)]
            results[value] = result
        return results
    return wrapper


def _row_miss_counts(table: Table) -> np.ndarray:
    return table.missing_mask().sum(axis=1).to_numpy(dtype=int)


def _col_miss_counts(table: Table) -> pd.Series:
    return table.missing_mask().sum(axis=0).astype(int)


def _safe_ratio(num, den) -> float:
    return float(num) / den if den else 0.0


# COUNTS AND PROPORTIONS

@groupable
def n_miss(table: Table, column=None) -> int:
    """Number of ABSENT cells in the whole table, or in one column."""
    if column is not None:
        table.require_column(column)
        return int(table.column(column).isna().sum())
    return int(_col_miss_counts(table).sum())


@groupable
def n_complete(table: Table, column=None) -> int:
    """Number of PRESENT cells in the whole table, or in one column."""
    if column is not None:
        return table.row_count - n_miss(table, column)
    return table.row_count * table.column_count - n_miss(table)


@groupable
def prop_miss(table: Table) -> float:
    """Fraction of all cells that are ABSENT."""
    return _safe_ratio(n_miss(table), table.row_count * table.column_count)


@groupable
def pct_miss(table: Table) -> float:
    return 100 * prop_miss(table)


@groupable
def n_case_miss(table: Table) -> int:
    """Number of rows with at least one ABSENT cell."""
    return int((_row_miss_counts(table) > 0).sum())


@groupable
def n_case_complete(table: Table) -> int:
    return table.row_count - n_case_miss(table)


@groupable
def prop_miss_case(table: Table) -> float:
    """
    Fraction of rows that contain at least one ABSENT cell.

    This is a per-row existence test: a row with one missing value counts
    the same as a row where every value is missing.
    """
    return _safe_ratio(n_case_miss(table), table.row_count)


@groupable
def pct_miss_case(table: Table) -> float:
    return 100 * prop_miss_case(table)


@groupable
def prop_miss_var(table: Table) -> float:
    """Fraction of columns that contain at least one ABSENT cell."""
    return _safe_ratio(int((_col_miss_counts(table) > 0).sum()), table.column_count)


@groupable
def pct_miss_var(table: Table) -> float:
    return 100 * prop_miss_var(table)


# SUMMARIES

@groupable(case_column='case')
def miss_case_summary(table: Table) -> pd.DataFrame:
    """
    Missingness per case (row).

    Parameters:
    table : Table
        Input table

    Returns:
    pd.DataFrame
        Columns `case`, `n_miss`, `pct_miss`; one row per case, most missing
        first, ties kept in original row order.
    """
    counts = _row_miss_counts(table)
    n_cols = table.column_count
    summary = pd.DataFrame({
        'case': np.arange(table.row_count, dtype=int),
        'n_miss': counts,
        'pct_miss': [100 * _safe_ratio(c, n_cols) for c in counts],
    })
    summary = summary.sort_values('n_miss', ascending=False, kind='mergesort')
    return summary.reset_index(drop=True)


@groupable
def miss_case_table(table: Table) -> pd.DataFrame:
    """
    Tabulate how many cases have 0, 1, 2, ... missing values.

    Only counts actually observed appear, in ascending order.
    """
    counts = pd.Series(_row_miss_counts(table), dtype=int)
    histogram = counts.value_counts().sort_index()
    n_rows = table.row_count

    return pd.DataFrame({
        'n_miss_in_case': histogram.index.to_numpy(dtype=int),
        'n_cases': histogram.to_numpy(dtype=int),
        'pct_cases': [100 * _safe_ratio(n, n_rows) for n in histogram.to_numpy()],
    })


@groupable
def miss_var_summary(table: Table) -> pd.DataFrame:
    """
    Missingness per variable (column).

    Every column is listed, complete ones included with `n_miss` 0. Sorted by
    descending `n_miss`, ties kept in original column order.
    """
    counts = _col_miss_counts(table)
    n_rows = table.row_count
    summary = pd.DataFrame({
        'variable': table.column_names,
        'n_miss': counts.to_numpy(dtype=int),
        'pct_miss': [100 * _safe_ratio(c, n_rows) for c in counts.to_numpy()],
    })
    summary = summary.sort_values('n_miss', ascending=False, kind='mergesort')
    return summary.reset_index(drop=True)


@groupable
def miss_var_table(table: Table) -> pd.DataFrame:
    """Tabulate how many variables have 0, 1, 2, ... missing values."""
    counts = _col_miss_counts(table)
    histogram = counts.value_counts().sort_index()
    n_cols = table.column_count

    return pd.DataFrame({
        'n_miss_in_var': histogram.index.to_numpy(dtype=int),
        'n_vars': histogram.to_numpy(dtype=int),
        'pct_vars': [100 * _safe_ratio(n, n_cols) for n in histogram.to_numpy()],
    })


@groupable
def miss_var_span(table: Table, column: str, span_every: int) -> pd.DataFrame:
    """
    Missingness of one column over consecutive windows of `span_every` rows.

    The last window may be shorter than `span_every`.
    """
    table.require_column(column)
    if span_every < 1:
        raise OutOfRange(f"span_every must be >= 1, got {span_every}")

    missing = table.column(column).isna().to_numpy()
    records = []
    for counter, start in enumerate(range(0, len(missing), span_every), start=1):
        window = missing[start:start + span_every]
        n = int(window.sum())
        records.append({
            'span_counter': counter,
            'n_miss': n,
            'n_complete': len(window) - n,
            'prop_miss': n / len(window),
            'prop_complete': 1 - n / len(window),
        })

    return pd.DataFrame(records, columns=['span_counter', 'n_miss', 'n_complete', 'prop_miss', 'prop_complete'])


@groupable
def identify_missing_patterns(table: Table) -> pd.DataFrame:
    """
    Identify the distinct missingness patterns (which columns are missing together).

    Returns:
    pd.DataFrame
        One row per pattern: a 0/1 column per variable (1 = missing), plus
        `n_miss` (missing cells in the pattern), `n_cases` and `pct_cases`.
        Most frequent pattern first.
    """
    names = table.column_names
    clash = [c for c in ['n_miss', 'n_cases', 'pct_cases'] if c in names]
    if clash:
        raise NameCollision(f"Columns {clash} clash with the pattern summary columns")
    columns = names + ['n_miss', 'n_cases', 'pct_cases']
    if table.row_count == 0:
        return pd.DataFrame(columns=columns)

    mask = table.missing_mask().astype(int)
    if not names:
        return pd.DataFrame({'n_miss': [0], 'n_cases': [table.row_count], 'pct_cases': [100.0]})

    patterns = mask.groupby(names, sort=False).size().reset_index(name='n_cases')
    patterns['n_miss'] = patterns[names].sum(axis=1).astype(int)
    patterns['pct_cases'] = 100 * patterns['n_cases'] / table.row_count
    patterns = patterns.sort_values('n_cases', ascending=False, kind='mergesort')

    return patterns[columns].reset_index(drop=True)
