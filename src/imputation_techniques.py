import warnings

import pandas as pd
import numpy as np
from sklearn.impute import KNNImputer
from sklearn.experimental import enable_iterative_imputer  # noqa: F401
from sklearn.impute import IterativeImputer
from typing import List

from shadow_encoding import NabularTable, DEFAULT_RANDOM_STATE

# All imputers take a nabular table and give back a new one built with
# `with_imputed`: data columns are filled, shadow columns are left as the
# record of which values were missing.


def _numeric_columns(df: pd.DataFrame, fillable=True) -> List[str]:
    cols = df.select_dtypes(include=[np.number]).columns.tolist()
    if not fillable:
        return cols
    # a column with nothing observed cannot be filled
    empty = [c for c in cols if df[c].notna().sum() == 0]
    if empty:
        warnings.warn(f"Columns with no observed values are left missing: {empty}", UserWarning)
    return [c for c in cols if c not in empty]


def impute_mean(nab: NabularTable) -> NabularTable:
    """Impute missing values using the mean of the column."""

    # copy given data to avoid changing the original one
    df = nab.data.to_frame()
    for column in _numeric_columns(df):
        df[column] = df[column].fillna(df[column].mean())

    return nab.with_imputed(df)


def impute_median(nab: NabularTable) -> NabularTable:
    """Impute missing values using the median of the column."""

    df = nab.data.to_frame()
    for column in _numeric_columns(df):
        df[column] = df[column].fillna(df[column].median())

    return nab.with_imputed(df)


def impute_mode(nab: NabularTable) -> NabularTable:
    """Impute missing values of non numeric columns with their most frequent value."""

    df = nab.data.to_frame()
    numeric = set(df.select_dtypes(include=[np.number]).columns)
    for column in df.columns:
        if column in numeric:
            continue
        modes = df[column].mode(dropna=True)
        if modes.empty:
            continue
        df[column] = df[column].fillna(modes.iloc[0])

    return nab.with_imputed(df)


def impute_knn(nab: NabularTable, n_neighbors: int = 5) -> NabularTable:
    """Impute missing values using K-Nearest Neighbors algorithm."""

    df = nab.data.to_frame()
    cols = _numeric_columns(df)
    if cols:
        imputer = KNNImputer(n_neighbors=n_neighbors)
        df[cols] = imputer.fit_transform(df[cols])

    return nab.with_imputed(df)


def impute_below(
    nab: NabularTable,
    prop_below: float = 0.1,
    jitter: float = 0.05,
    random_state: int = DEFAULT_RANDOM_STATE
) -> NabularTable:
    """
    Replace missing values with values below the observed minimum of each column.

    Missing values are placed `prop_below` of the column range under the
    minimum, with uniform jitter of `jitter` of the range, so they show up
    apart from the observed data in a scatter plot coloured by shadow column.

    Parameters:
    -----------
    nab : NabularTable
        Table to impute.
    prop_below : float, default=0.1
        Distance below the minimum, as a fraction of the range.
    jitter : float, default=0.05
        Jitter amplitude, as a fraction of the range.
    random_state : int, default=42
        Random seed for the jitter.

    Returns:
    --------
    NabularTable
        Table with missing numeric values shifted below the minimum.
    """
    rng = np.random.default_rng(random_state)
    df = nab.data.to_frame()

    for column in _numeric_columns(df):
        missing = df[column].isna()
        if not missing.any():
            continue
        observed = df.loc[~missing, column]
        col_min, col_max = observed.min(), observed.max()
        col_range = col_max - col_min
        # a constant column still needs some distance from its value
        if col_range == 0:
            col_range = abs(col_min) if col_min != 0 else 1.0
        shift = col_min - prop_below * col_range
        noise = rng.uniform(-jitter, jitter, size=int(missing.sum())) * col_range
        df[column] = df[column].astype(float)
        df.loc[missing, column] = shift + noise

    return nab.with_imputed(df)


def impute_mice(
    nab: NabularTable,
    n_imputations: int = 5,
    max_iter: int = 20,
    random_state: int = DEFAULT_RANDOM_STATE
) -> List[NabularTable]:
    """
    Impute missing values using MICE (Multiple Imputation by Chained Equations) algorithm.

    MICE performs multiple imputations, creating several complete datasets.
    Each imputation uses an iterative approach where each feature is imputed
    using the others as predictors.

    Parameters:
    -----------
    nab : NabularTable
        Table with missing values to impute.
    n_imputations : int, default=5
        Number of imputed datasets to generate.
    max_iter : int, default=20
        Maximum number of imputation iterations per dataset.
    random_state : int, default=42
        Random seed for reproducibility. Each imputation will use
        random_state + i as its seed.

    Returns:
    --------
    List[NabularTable]
        List of n_imputations tables, each with imputed values and the
        same shadow.
    """
    imputed = []
    df = nab.data.to_frame()
    numeric_cols = _numeric_columns(df)

    if not numeric_cols:
        return [nab.with_imputed(df.copy()) for _ in range(n_imputations)]

    for i in range(n_imputations):
        df_imp = df.copy()
        seed = None if random_state is None else random_state + i

        # sample_posterior=True is important for proper multiple imputation
        imputer = IterativeImputer(
            max_iter=max_iter,
            random_state=seed,
            initial_strategy='mean',
            sample_posterior=True,
            verbose=0
        )
        df_imp[numeric_cols] = imputer.fit_transform(df_imp[numeric_cols])
        imputed.append(nab.with_imputed(df_imp))

    return imputed


def pool_mice_results(imputed: List[NabularTable]) -> NabularTable:
    """
    Pool results from multiple MICE imputations into a single table.

    For numeric columns, takes the mean across imputations.
    For other columns, takes the mode (most frequent value).
    """
    if not imputed:
        raise ValueError("No imputed datasets provided")

    if len(imputed) == 1:
        return imputed[0]

    frames = [nab.data.to_frame() for nab in imputed]
    pooled = frames[0].copy()
    numeric_cols = pooled.select_dtypes(include=[np.number]).columns

    for col in pooled.columns:
        if col in numeric_cols:
            values = np.array([df[col].to_numpy(dtype=float) for df in frames])
            pooled[col] = np.mean(values, axis=0)
        else:
            values = pd.DataFrame({i: df[col] for i, df in enumerate(frames)})
            modes = values.mode(axis=1)
            if not modes.empty:
                pooled[col] = modes[0]

    return imputed[0].with_imputed(pooled)
