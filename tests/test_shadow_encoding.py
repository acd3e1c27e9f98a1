import pandas as pd
import pytest

from conftest import random_tables
from missing_table import Table, ABSENT, Present, NameCollision, InvalidK, OutOfRange
from shadow_encoding import (to_shadow, nabular, add_missingness_cluster, bind_missingness_cluster,
                             add_label_missings, add_n_miss, MISSING, NOT_MISSING, SHADOW_SUFFIX)


def test_to_shadow_labels(small_table):
    shadow = to_shadow(small_table)
    assert shadow.column_names == ['col0_NA', 'col1_NA']
    labels = shadow.to_frame().astype(str).values.tolist()
    assert labels == [[NOT_MISSING, MISSING], [MISSING, MISSING], [NOT_MISSING, NOT_MISSING]]


def test_shadow_matches_absent_cells():
    for table in random_tables():
        shadow = to_shadow(table)
        for r in range(table.row_count):
            for c in range(table.column_count):
                is_missing = shadow.get_cell(r, c) == Present(MISSING)
                assert is_missing == (table.get_cell(r, c) is ABSENT)


def test_complete_columns_get_a_shadow_too():
    table = Table(pd.DataFrame({'a': [1, 2], 'b': [None, 'x']}))
    shadow = to_shadow(table)
    assert shadow.column_names == ['a' + SHADOW_SUFFIX, 'b' + SHADOW_SUFFIX]
    assert list(shadow.column('a_NA').cat.categories) == [NOT_MISSING, MISSING]


def test_nabular_layout(rodents):
    nab = nabular(rodents)
    assert nab.column_count == 2 * rodents.column_count
    assert nab.row_count == rodents.row_count
    assert nab.column_names[:rodents.column_count] == rodents.column_names
    assert nab.column_names[rodents.column_count:] == [f"{c}_NA" for c in rodents.column_names]
    assert nab.data is rodents

    frame = nab.to_frame()
    assert frame.shape == (rodents.row_count, 2 * rodents.column_count)
    assert nab.get_cell(1, 'total_length_NA') == Present(MISSING)
    assert nab.get_cell(1, 'total_length') is ABSENT


def test_nabular_name_collision():
    table = Table(pd.DataFrame({'a': [1, None], 'a_NA': ['x', 'y']}))
    with pytest.raises(NameCollision):
        nabular(table)


def test_with_imputed_keeps_shadow(small_table):
    nab = nabular(small_table)
    filled = small_table.to_frame().fillna(0)
    imputed = nab.with_imputed(filled)

    assert imputed.shadow is nab.shadow
    assert imputed.get_cell(1, 'col0') == Present(0)
    assert imputed.get_cell(1, 'col0_NA') == Present(MISSING)
    # the original nabular table is untouched
    assert nab.get_cell(1, 'col0') is ABSENT


def test_with_imputed_rejects_other_layouts(small_table):
    nab = nabular(small_table)
    with pytest.raises(NameCollision):
        nab.with_imputed(small_table.to_frame()[['col1', 'col0']])
    with pytest.raises(OutOfRange):
        nab.with_imputed(small_table.to_frame().iloc[:2])


def test_label_and_count_columns(small_table):
    labelled = add_label_missings(small_table)
    assert labelled['any_missing'].tolist() == ['Missing', 'Missing', 'Not Missing']
    counted = add_n_miss(small_table)
    assert counted['n_miss_all'].tolist() == [1, 2, 0]


# -------------------------------
# Missingness clusters
# -------------------------------
def _two_pattern_table():
    rows = [[1.0, 2.0, 3.0]] * 3 + [[None, None, None]] * 3
    return Table.from_records(rows, columns=['a', 'b', 'c'])


def test_cluster_separates_patterns():
    assignment = add_missingness_cluster(_two_pattern_table(), 2)
    assert sorted(assignment) == list(range(6))
    assert assignment[0] == assignment[1] == assignment[2]
    assert assignment[3] == assignment[4] == assignment[5]
    assert assignment[0] != assignment[3]


def test_cluster_is_deterministic(rodents):
    first = add_missingness_cluster(rodents, 3, random_state=0)
    second = add_missingness_cluster(rodents, 3, random_state=0)
    assert first == second
    assert set(first.values()) <= {0, 1, 2}
    assert len(first) == rodents.row_count


def test_single_cluster():
    assert set(add_missingness_cluster(_two_pattern_table(), 1).values()) == {0}


def test_invalid_k(small_table):
    for k in [0, -1, 4]:
        with pytest.raises(InvalidK):
            add_missingness_cluster(small_table, k)


def test_fewer_patterns_than_k_warns():
    with pytest.warns(UserWarning, match='distinct missingness patterns'):
        assignment = add_missingness_cluster(_two_pattern_table(), 3)
    assert all(0 <= c < 3 for c in assignment.values())


def test_bind_missingness_cluster(small_table):
    assignment = add_missingness_cluster(small_table, 2)
    frame = bind_missingness_cluster(small_table, assignment)
    assert frame['miss_cluster'].tolist() == [assignment[i] for i in range(3)]

    with pytest.raises(OutOfRange):
        bind_missingness_cluster(small_table, {0: 0})
