import pandas as pd
import numpy as np
from dataclasses import dataclass
from scipy import stats
from sklearn.tree import DecisionTreeClassifier, export_text

from missing_table import Table, OutOfRange
from preprocessing import encode_categorical_variables
from shadow_encoding import DEFAULT_RANDOM_STATE, MISSING, NOT_MISSING


@dataclass
class MissingnessTree:
    """A fitted decision tree explaining a missingness outcome."""
    model: DecisionTreeClassifier
    target: str
    features: list
    importances: pd.DataFrame
    rules: str


def _target_labels(table: Table, target):
    if isinstance(target, dict):
        if sorted(target) != list(range(table.row_count)):
            raise OutOfRange("Cluster assignment does not cover every row exactly once")
        labels = pd.Series([target[row] for row in range(table.row_count)])
        return 'miss_cluster', labels, table.column_names

    table.require_column(target)
    labels = pd.Series(np.where(table.column(target).isna(), MISSING, NOT_MISSING))
    return f"{target} missing", labels, [c for c in table.column_names if c != target]


def fit_missingness_tree(table: Table, target, max_depth=3, random_state=DEFAULT_RANDOM_STATE):
    """
    Fit a decision tree that predicts a missingness outcome from the observed data.

    Parameters:
    table : Table
        Input table
    target : str or dict
        Column name (the tree predicts whether it is missing) or a cluster
        assignment from `add_missingness_cluster`
    max_depth : int
        Maximum depth of the tree
    random_state : int
        Seed for the tree

    Returns:
    MissingnessTree
        Fitted model, feature importances (most important first) and the rules as text
    """
    name, y, features = _target_labels(table, target)
    if not features:
        raise OutOfRange(f"No predictor columns left to explain '{name}'")

    X, _ = encode_categorical_variables(table.to_frame()[features])
    X = X.astype(float)

    # trees in scikit-learn route missing values themselves
    model = DecisionTreeClassifier(max_depth=max_depth, random_state=random_state)
    model.fit(X, y)

    importances = pd.DataFrame({
        'variable': features,
        'importance': model.feature_importances_,
    }).sort_values('importance', ascending=False, kind='mergesort').reset_index(drop=True)

    rules = export_text(model, feature_names=list(features))
    return MissingnessTree(model=model, target=name, features=list(features), importances=importances, rules=rules)


def compare_by_missingness(table: Table, alpha=0.05):
    """
    Test if observed values differ between rows where another variable is missing and where it is present.

    For each variable with missing values and each other numeric variable,
    runs a Welch t-test between the two groups of rows.

    Parameters:
    table : Table
        Input table
    alpha : float, default=0.05
        Significance level

    Returns:
    pd.DataFrame
        Columns `missing_in`, `observed_variable`, `mean_when_missing`,
        `mean_when_present`, `t_statistic`, `p_value`, `significant`,
        sorted by p-value
    """
    columns = ['missing_in', 'observed_variable', 'mean_when_missing', 'mean_when_present',
               't_statistic', 'p_value', 'significant']
    frame = table.to_frame()
    mask = table.missing_mask()
    numerical_cols = frame.select_dtypes(include=[np.number]).columns.tolist()
    cols_with_missing = [c for c in frame.columns if mask[c].any()]

    results = []
    for missing_col in cols_with_missing:
        for obs_col in numerical_cols:
            if obs_col == missing_col:
                continue

            when_missing = frame.loc[mask[missing_col], obs_col].dropna()
            when_present = frame.loc[~mask[missing_col], obs_col].dropna()

            if len(when_missing) < 2 or len(when_present) < 2:
                continue
            # constant groups give an undefined statistic
            if when_missing.std() == 0 and when_present.std() == 0:
                continue

            t_stat, p_value = stats.ttest_ind(when_missing, when_present, equal_var=False)
            results.append({
                'missing_in': missing_col,
                'observed_variable': obs_col,
                'mean_when_missing': when_missing.mean(),
                'mean_when_present': when_present.mean(),
                't_statistic': float(t_stat),
                'p_value': float(p_value),
                'significant': bool(p_value < alpha),
            })

    if not results:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(results, columns=columns).sort_values('p_value', kind='mergesort').reset_index(drop=True)
