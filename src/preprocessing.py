import warnings

import pandas as pd
import numpy as np
from sklearn.preprocessing import OrdinalEncoder

from missing_table import Table

# textual representations of a missing value found in raw files
MISSING_MARKERS = ['', ' ', 'NA', 'N/A', 'na', 'n/a', 'NaN', 'nan', 'None', 'none', 'NULL', 'null', '?', '-', '--', 'missing', 'MISSING']


def load_table(filepath, parse_dates=None, clean=True, drop_duplicates=False):
    """
    Load a dataset from a CSV file into a Table.

    Parameters:
    filepath : str
        Path to the CSV file
    parse_dates : list of str, optional
        Columns to parse as dates
    clean : bool
        Whether to run `clean_data` on the loaded frame
    drop_duplicates : bool
        Whether `clean_data` also drops fully duplicated rows. Off by default:
        two animals can have identical records.

    Returns:
    Table
        Loaded dataset

    Errors raised by pandas (missing file, malformed CSV) are not caught here.
    """
    data = pd.read_csv(filepath, na_values=MISSING_MARKERS, keep_default_na=True, parse_dates=parse_dates)
    if clean:
        data = clean_data(data, drop_duplicates=drop_duplicates)
    return Table(data)


def clean_data(data, drop_duplicates=True):
    """
    Standardize missing value representations in text columns and optionally drop duplicated rows.

    Parameters:
    data : pd.DataFrame
        Input dataset
    drop_duplicates : bool
        Drop fully duplicated rows, with a warning giving how many were dropped

    Returns:
    pd.DataFrame
        Cleaned copy of the dataset
    """
    data_clean = data.copy()

    if drop_duplicates:
        n_duplicates = int(data_clean.duplicated().sum())
        if n_duplicates > 0:
            warnings.warn(f"Dropped {n_duplicates} duplicated rows", UserWarning)
            data_clean = data_clean.drop_duplicates()

    for col in data_clean.columns:
        if pd.api.types.is_string_dtype(data_clean[col].dtype):
            present = data_clean[col].notna()
            # strip whitespace from string values only
            stripped = data_clean.loc[present, col].map(lambda v: v.strip() if isinstance(v, str) else v)
            data_clean[col] = data_clean[col].astype(object)
            data_clean.loc[present, col] = stripped
            data_clean[col] = data_clean[col].replace(MISSING_MARKERS, np.nan)

    return data_clean.reset_index(drop=True)


def encode_categorical_variables(data):
    """
    Ordinal-encode the non numeric columns, keeping missing cells missing.

    Dates are turned into days since the epoch so that tree models can split on them.

    Parameters:
    data : pd.DataFrame
        Input dataset

    Returns:
    tuple
        (encoded_data, encoding_info) where encoding_info maps each encoded
        column to its list of categories
    """
    data_encoded = data.copy()
    encoding_info = {}

    for col in data_encoded.columns:
        series = data_encoded[col]
        if pd.api.types.is_datetime64_any_dtype(series):
            data_encoded[col] = (series - pd.Timestamp('1970-01-01')).dt.days.astype(float)
        elif pd.api.types.is_bool_dtype(series) or not pd.api.types.is_numeric_dtype(series):
            encoder = OrdinalEncoder(encoded_missing_value=np.nan)
            values = series.astype(object).map(lambda v: np.nan if pd.isna(v) else str(v)).to_frame()
            data_encoded[col] = encoder.fit_transform(values)[:, 0]
            encoding_info[col] = [str(c) for c in encoder.categories_[0] if not pd.isna(c)]

    return data_encoded, encoding_info
