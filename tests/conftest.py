import numpy as np
import pandas as pd
import pytest

from missing_table import Table


@pytest.fixture
def small_table():
    # [[1, ABSENT], [ABSENT, ABSENT], [3, 4]]
    return Table.from_records([[1, None], [None, None], [3, 4]], columns=['col0', 'col1'])


@pytest.fixture
def rodents():
    return Table(pd.DataFrame({
        'date': pd.to_datetime(['2019-05-02', '2019-05-02', None, '2019-05-03', '2019-05-04', '2019-05-04']),
        'species': ['maniculatus', 'leucopus', 'maniculatus', None, 'leucopus', 'maniculatus'],
        'total_length': [165.0, np.nan, 172.0, 210.0, np.nan, 160.0],
        'tail_length': [75.0, np.nan, 80.0, 130.0, 38.0, np.nan],
        'weight': [21.5, 19.0, 24.1, np.nan, 29.8, 20.1],
        'sex': ['M', 'F', 'M', 'M', None, 'F'],
    }))


def random_tables():
    """A handful of tables with varied shapes and missing rates."""
    rng = np.random.default_rng(7)
    tables = []
    for n_rows, n_cols, rate in [(0, 3, 0.0), (1, 1, 1.0), (5, 4, 0.3), (12, 6, 0.5), (30, 2, 0.1)]:
        values = rng.normal(size=(n_rows, n_cols))
        values[rng.random((n_rows, n_cols)) < rate] = np.nan
        tables.append(Table(pd.DataFrame(values, columns=[f"v{i}" for i in range(n_cols)])))
    return tables
