import os
import warnings

import pandas as pd

# local imports
from missing_table import MissingDataError
from preprocessing import load_table
from missing_profile import (n_miss, n_complete, pct_miss, pct_miss_case, pct_miss_var,
                             miss_case_table, miss_var_summary, miss_var_table, identify_missing_patterns)
from shadow_encoding import nabular, add_missingness_cluster, bind_missingness_cluster
from imputation_techniques import impute_mean, impute_median, impute_knn, impute_below, impute_mice, pool_mice_results
from missingness_models import fit_missingness_tree, compare_by_missingness

warnings.filterwarnings("ignore", category=FutureWarning, module="sklearn")

# directories
RAW_DIR = '../data/raw'
PROCESSED_DIR = '../data/processed'

N_CLUSTERS = 3
RANDOM_STATE = 42
TREE_DEPTH = 3
DATE_COLUMNS = ['date']

# methods
METHODS = {
    'Mean': lambda nab: impute_mean(nab),
    'Median': lambda nab: impute_median(nab),
    'KNN': lambda nab: impute_knn(nab, n_neighbors=5),
    'Below': lambda nab: impute_below(nab, random_state=RANDOM_STATE),
    'MICE': lambda nab: pool_mice_results(impute_mice(nab, n_imputations=5, random_state=RANDOM_STATE)),
}


def banner(title):
    print("\n" + "="*100)
    print(f"\t\t {title}")
    print("="*100)


def run_exploration(file_path):
    filename = os.path.basename(file_path)
    dataset_name = os.path.splitext(filename)[0]

    print(f"\n{'-'*20}Switched to new Dataset{'-'*20}")
    print(f"\nPROCESSING: {filename}")

    with open(file_path) as f:
        header = f.readline().strip().split(',')
    parse_dates = [c for c in DATE_COLUMNS if c in header]

    try:
        table = load_table(file_path, parse_dates=parse_dates)
    except (OSError, pd.errors.ParserError, MissingDataError) as e:
        print(f"Skipping {filename}: {e}")
        return

    print(f"Shape: ({table.row_count}, {table.column_count})")

    banner("MISSING VALUES OVERVIEW")
    print(f"Missing cells: {n_miss(table)} | complete cells: {n_complete(table)} ({pct_miss(table):.2f}% missing)")
    print(f"Cases with at least one missing value: {pct_miss_case(table):.2f}%")
    print(f"Variables with at least one missing value: {pct_miss_var(table):.2f}%")

    banner("VARIABLES")
    print(miss_var_summary(table).round(2).to_string(index=False))
    print()
    print(miss_var_table(table).round(2).to_string(index=False))

    banner("CASES")
    print(miss_case_table(table).round(2).to_string(index=False))

    banner("MISSING DATA PATTERNS")
    print(identify_missing_patterns(table).round(2).to_string(index=False))

    try:
        nab = nabular(table)
    except MissingDataError as e:
        print(f"Skipping {filename}: {e}")
        return

    dataset_processed_dir = os.path.join(PROCESSED_DIR, dataset_name)
    os.makedirs(dataset_processed_dir, exist_ok=True)
    nab.to_frame().to_csv(os.path.join(dataset_processed_dir, f"{dataset_name}_nabular.csv"), index=False)

    if table.row_count >= N_CLUSTERS:
        banner(f"MISSINGNESS CLUSTERS (k={N_CLUSTERS})")
        clusters = add_missingness_cluster(table, N_CLUSTERS, random_state=RANDOM_STATE)
        clustered = bind_missingness_cluster(table, clusters)
        print(clustered['miss_cluster'].value_counts().sort_index().to_string())

        tree = fit_missingness_tree(table, clusters, max_depth=TREE_DEPTH, random_state=RANDOM_STATE)
        print(f"\nDecision tree for {tree.target}:")
        print(tree.rules)
        clustered.to_csv(os.path.join(dataset_processed_dir, f"{dataset_name}_clusters.csv"), index=False)
    else:
        print(f"Not enough cases for {N_CLUSTERS} clusters. Skipping.")

    banner("MISSINGNESS VS OBSERVED VALUES")
    comparison = compare_by_missingness(table)
    if comparison.empty:
        print("No testable pairs of variables")
    else:
        print(comparison.round(4).to_string(index=False))

    banner("IMPUTATION")
    for m_name, m_func in METHODS.items():
        imputed = m_func(nab)
        remaining = n_miss(imputed.data)
        print(f"  {m_name:<8} {remaining} missing values remaining")
        out_name = f"{dataset_name}_{m_name}.csv"
        imputed.to_frame().to_csv(os.path.join(dataset_processed_dir, out_name), index=False)

    print(f"\nPipeline Finished for {dataset_name}.")


if __name__ == "__main__":
    if not os.path.exists(PROCESSED_DIR): os.makedirs(PROCESSED_DIR)

    try:
        all_files = os.listdir(RAW_DIR)
        files = [os.path.join(RAW_DIR, f) for f in all_files if f.endswith('.csv')]
    except FileNotFoundError:
        files = []

    if not files:
        print(f"No CSV files found in {RAW_DIR}")
    else:
        print(f"Found {len(files)} datasets: {[os.path.basename(f) for f in files]}")
        for f in files: run_exploration(f)
