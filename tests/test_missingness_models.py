import numpy as np
import pandas as pd
import pytest

from missing_table import Table, UnknownColumn, OutOfRange, MissingDataError
from shadow_encoding import add_missingness_cluster
from missingness_models import fit_missingness_tree, compare_by_missingness, MissingnessTree


@pytest.fixture
def weights_missing_for_small_animals():
    rng = np.random.default_rng(11)
    length = rng.uniform(100, 220, size=60)
    weight = 0.15 * length + rng.normal(0, 1, size=60)
    # small animals were not weighed
    weight[length < 140] = np.nan
    return Table(pd.DataFrame({
        'total_length': length,
        'weight': weight,
        'species': rng.choice(['maniculatus', 'leucopus'], size=60).astype(object),
    }))


def test_tree_explains_missing_column(weights_missing_for_small_animals):
    tree = fit_missingness_tree(weights_missing_for_small_animals, 'weight', max_depth=2)
    assert isinstance(tree, MissingnessTree)
    assert tree.target == 'weight missing'
    assert tree.features == ['total_length', 'species']
    assert tree.importances['variable'].iloc[0] == 'total_length'
    assert tree.importances['importance'].sum() == pytest.approx(1.0)
    assert 'total_length' in tree.rules


def test_tree_on_cluster_assignment(rodents):
    clusters = add_missingness_cluster(rodents, 2)
    tree = fit_missingness_tree(rodents, clusters)
    assert tree.target == 'miss_cluster'
    assert tree.features == rodents.column_names
    assert set(tree.model.classes_) <= {0, 1}


def test_tree_unknown_target(rodents):
    with pytest.raises(UnknownColumn):
        fit_missingness_tree(rodents, 'nope')


def test_tree_needs_a_predictor():
    table = Table.from_records([[1.0], [None], [3.0]], columns=['weight'])
    with pytest.raises(OutOfRange):
        fit_missingness_tree(table, 'weight')
    assert issubclass(OutOfRange, MissingDataError)


def test_compare_by_missingness(weights_missing_for_small_animals):
    result = compare_by_missingness(weights_missing_for_small_animals)
    assert list(result.columns) == ['missing_in', 'observed_variable', 'mean_when_missing',
                                    'mean_when_present', 't_statistic', 'p_value', 'significant']
    row = result[(result['missing_in'] == 'weight') & (result['observed_variable'] == 'total_length')].iloc[0]
    assert row['mean_when_missing'] < row['mean_when_present']
    assert bool(row['significant'])


def test_compare_by_missingness_complete_table():
    table = Table(pd.DataFrame({'a': [1.0, 2.0, 3.0], 'b': [2.0, 3.0, 5.0]}))
    assert compare_by_missingness(table).empty
